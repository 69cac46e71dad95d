import base64
import binascii
import logging
from io import BytesIO
from typing import Tuple

from PIL import Image

from .errors import InvalidRequest

logger = logging.getLogger("avatar_studio.encoding")

# Gemini rejects very large inline payloads; compress anything above this.
MAX_INLINE_BYTES = 8 * 1024 * 1024
MAX_SIDE = 1600
JPEG_QUALITY = 90


def encode_image(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def strip_data_url(b64: str) -> str:
    # Accept data URL format: data:<mime>;base64,<payload>
    if b64.startswith("data:"):
        parts = b64.split(",", 1)
        return parts[1] if len(parts) == 2 else b64
    return b64


def decode_image_b64(b64: str) -> bytes:
    try:
        return base64.b64decode(strip_data_url(b64.strip()), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidRequest("Invalid image base64. Expect raw base64 (or data URL) of PNG/JPEG.")


def to_data_url(mime_type: str, b64: str) -> str:
    return f"data:{mime_type};base64,{b64}"


def normalize_mime(mime_type: str) -> str:
    mime = mime_type.strip().lower()
    if mime == "image/jpg":
        return "image/jpeg"
    return mime


def is_image_mime(mime_type: str) -> bool:
    return normalize_mime(mime_type).startswith("image/")


def shrink_for_upload(raw: bytes, mime_type: str) -> Tuple[bytes, str]:
    """Fit the photo within MAX_SIDE pixels and re-save it as JPEG.

    Undecodable input is forwarded as-is; Gemini reports its own error for it.
    """
    try:
        photo = Image.open(BytesIO(raw))
        photo.thumbnail((MAX_SIDE, MAX_SIDE), Image.LANCZOS)
        out = BytesIO()
        photo.convert("RGB").save(out, format="JPEG", quality=JPEG_QUALITY)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning("could not shrink %s upload of %s bytes: %s", mime_type, len(raw), e)
        return raw, mime_type
    return out.getvalue(), "image/jpeg"


def prepare_inline_image(b64: str, mime_type: str) -> Tuple[str, str]:
    """Validate a caller-supplied image and return ``(base64, mime)`` ready for Gemini."""
    mime = normalize_mime(mime_type)
    if not is_image_mime(mime):
        raise InvalidRequest("mimeType must be an image type")
    payload = strip_data_url(b64.strip())
    raw = decode_image_b64(payload)
    if not raw:
        raise InvalidRequest("Empty image payload")
    if len(raw) > MAX_INLINE_BYTES:
        before = len(raw)
        raw, mime = shrink_for_upload(raw, mime)
        logger.info("compressed input %s -> %s bytes, mime=%s", before, len(raw), mime)
        payload = encode_image(raw)
    return payload, mime
