"""Client-side state for one user working on one avatar.

Every upload is tagged with a sequence number. Responses carrying any other
number than the latest one are dropped, so an older request that finishes
late can never overwrite the result of a newer upload.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .encoding import decode_image_b64
from .gemini import GenerationResult

logger = logging.getLogger("avatar_studio.session")


class SessionState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Upload:
    data: bytes
    mime_type: str


class DownloadNotAllowed(Exception):
    pass


class AvatarSession:
    def __init__(self):
        self.state = SessionState.IDLE
        self.upload: Optional[Upload] = None
        self.result: Optional[GenerationResult] = None
        self.error: Optional[str] = None
        self._seq = 0

    @property
    def latest_seq(self) -> int:
        return self._seq

    def begin_upload(self, upload: Upload) -> int:
        """Start a new generation. Clears any earlier result and error."""
        self._seq += 1
        self.upload = upload
        self.result = None
        self.error = None
        self.state = SessionState.LOADING
        return self._seq

    def _is_current(self, seq: int) -> bool:
        if seq != self._seq or self.state is not SessionState.LOADING:
            logger.info("discarding stale response seq=%s latest=%s", seq, self._seq)
            return False
        return True

    def resolve(self, seq: int, result: GenerationResult) -> bool:
        if not self._is_current(seq):
            return False
        self.result = result
        self.state = SessionState.READY
        return True

    def fail(self, seq: int, message: str) -> bool:
        if not self._is_current(seq):
            return False
        self.result = None
        self.error = message
        self.state = SessionState.FAILED
        return True

    @property
    def can_download(self) -> bool:
        return self.state in (SessionState.READY, SessionState.FAILED)

    def download_source(self) -> Upload:
        """Image to composite: the generated result when ready, else the original upload."""
        if not self.can_download:
            raise DownloadNotAllowed(f"Nothing to download in state {self.state.value}")
        if self.result is not None:
            return Upload(decode_image_b64(self.result.image_base64), self.result.mime_type)
        return self.upload
