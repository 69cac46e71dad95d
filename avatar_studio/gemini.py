"""Thin client for the Gemini ``generateContent`` and model-listing REST endpoints.

Responses are decoded into typed parts (:class:`TextPart` or
:class:`InlineBinaryPart`). Anything that does not fit the expected shape is
reported as an :class:`~avatar_studio.errors.UpstreamError` instead of being
guessed at.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import Settings
from .errors import AvatarStudioError, ConfigurationError, NoImageReturned, PolicyBlocked, UpstreamError

logger = logging.getLogger("avatar_studio.gemini")

DEFAULT_PROMPT = (
    "Restyle this portrait into an ETHMumbai-branded avatar: BEST Red (#e2231a), Bus Black (#1c1c1c), "
    "ETH Blue (#3fa9f5), Bus Yellow (#ffd600), Bus Green (#00a859). Add subtle BEST bus or Mumbai skyline cues. "
    "Keep likeness. Bright, friendly finish."
)

SAFETY_BLOCK_REASONS = {"SAFETY", "IMAGE_SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_json(self) -> Dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class InlineBinaryPart:
    mime_type: str
    data: str  # base64

    def to_json(self) -> Dict[str, Any]:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


Part = Union[TextPart, InlineBinaryPart]


@dataclass(frozen=True)
class GenerationResult:
    mime_type: str
    image_base64: str

    def to_json(self) -> Dict[str, str]:
        return {"mimeType": self.mime_type, "imageBase64": self.image_base64}


# Wire shapes of the upstream response. Unknown fields are ignored.
class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _InlineData(_WireModel):
    mime_type: str = Field("", alias="mimeType")
    data: str = ""


class _Part(_WireModel):
    text: Optional[str] = None
    inline_data: Optional[_InlineData] = Field(None, alias="inlineData")


class _Content(_WireModel):
    role: Optional[str] = None
    parts: List[_Part] = Field(default_factory=list)


class _Candidate(_WireModel):
    content: _Content = Field(default_factory=_Content)
    finish_reason: Optional[str] = Field(None, alias="finishReason")


class _PromptFeedback(_WireModel):
    block_reason: Optional[str] = Field(None, alias="blockReason")


class GenerateContentResponse(_WireModel):
    candidates: List[_Candidate] = Field(default_factory=list)
    prompt_feedback: Optional[_PromptFeedback] = Field(None, alias="promptFeedback")


def require_api_key(settings: Settings) -> str:
    if not settings.api_key:
        raise ConfigurationError(
            "GEMINI_API_KEY is not configured. Please set it up in your environment variables."
        )
    return settings.api_key


def build_generate_payload(image_b64: str, mime_type: str, prompt: Optional[str] = None) -> Dict[str, Any]:
    parts: List[Part] = [
        TextPart(prompt or DEFAULT_PROMPT),
        InlineBinaryPart(mime_type=mime_type, data=image_b64),
    ]
    return {"contents": [{"role": "user", "parts": [p.to_json() for p in parts]}]}


def decode_response(data: Any) -> GenerateContentResponse:
    try:
        return GenerateContentResponse.model_validate(data)
    except ValidationError as e:
        logger.error("Unexpected response shape from Gemini: %s", e)
        raise UpstreamError("Unexpected response shape from Gemini", status_code=502)


def candidate_parts(candidate: _Candidate) -> List[Part]:
    parts: List[Part] = []
    for raw in candidate.content.parts:
        if raw.inline_data is not None:
            parts.append(InlineBinaryPart(mime_type=raw.inline_data.mime_type, data=raw.inline_data.data))
        elif raw.text is not None:
            parts.append(TextPart(raw.text))
    return parts


def extract_image(response: GenerateContentResponse) -> GenerationResult:
    """Return the first inline image, scanning candidates in order."""
    for cand in response.candidates:
        for part in candidate_parts(cand):
            if isinstance(part, InlineBinaryPart) and part.data and part.mime_type:
                return GenerationResult(mime_type=part.mime_type, image_base64=part.data)

    reasons = [c.finish_reason for c in response.candidates if c.finish_reason]
    if response.prompt_feedback and response.prompt_feedback.block_reason:
        reasons.append(response.prompt_feedback.block_reason)
    if reasons:
        logger.error("Image generation failed with reason(s): %s", ", ".join(reasons))
    if any(r in SAFETY_BLOCK_REASONS for r in reasons):
        raise PolicyBlocked("Image generation blocked due to safety settings.")
    raise NoImageReturned("No image returned from Gemini")


def _headers(settings: Settings) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-goog-api-key": settings.api_key,
    }


def generate_image(settings: Settings, image_b64: str, mime_type: str, prompt: Optional[str] = None) -> GenerationResult:
    require_api_key(settings)
    payload = build_generate_payload(image_b64, mime_type, prompt)
    logger.info("generateContent model=%s mime=%s img_len=%s", settings.model, mime_type, len(image_b64))

    try:
        resp = requests.post(
            settings.generate_endpoint,
            headers=_headers(settings),
            json=payload,
            timeout=settings.timeout,
        )
    except requests.RequestException as e:
        logger.exception("Upstream request error: %s", e)
        raise AvatarStudioError(str(e) or "Unknown error", status_code=500)

    if resp.status_code != 200:
        logger.error("Upstream non-200 status=%s body=%s", resp.status_code, resp.text[:400])
        raise UpstreamError(resp.text, status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError:
        logger.error("Upstream returned non-JSON body=%s", resp.text[:400])
        raise UpstreamError("Invalid JSON returned from Gemini", status_code=502)

    return extract_image(decode_response(data))


def list_models(settings: Settings) -> Tuple[int, Any]:
    """Return ``(status, body)`` from the upstream model listing, unmodified."""
    require_api_key(settings)
    try:
        resp = requests.get(settings.models_endpoint, headers=_headers(settings), timeout=settings.timeout)
    except requests.RequestException as e:
        logger.exception("Upstream request error: %s", e)
        raise AvatarStudioError(str(e) or "Unknown error", status_code=500)

    if resp.status_code != 200:
        logger.error("Model listing failed status=%s body=%s", resp.status_code, resp.text[:400])
        raise UpstreamError(resp.text, status_code=resp.status_code)
    try:
        return resp.status_code, resp.json()
    except ValueError:
        raise UpstreamError(resp.text, status_code=502)
