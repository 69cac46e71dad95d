from typing import Optional


class AvatarStudioError(Exception):
    """Base error. Rendered at the HTTP boundary as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(AvatarStudioError):
    status_code = 500


class InvalidRequest(AvatarStudioError):
    status_code = 400


class UpstreamError(AvatarStudioError):
    """Non-success from Gemini. Status and body are passed through as received."""

    status_code = 502


class NoImageReturned(AvatarStudioError):
    status_code = 502


class PolicyBlocked(AvatarStudioError):
    status_code = 400


class ImageLoadError(AvatarStudioError):
    status_code = 400


class CanvasUnsupportedError(AvatarStudioError):
    status_code = 500
