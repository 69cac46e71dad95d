import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from .backgrounds import BG_OPTIONS, DEFAULT_BACKGROUND, get_background
from .compositor import DOWNLOAD_FILENAME, render_avatar
from .config import load_settings
from .encoding import decode_image_b64, prepare_inline_image
from .errors import AvatarStudioError, InvalidRequest
from .gemini import generate_image, list_models, require_api_key

logger = logging.getLogger("avatar_studio")
logger.setLevel(getattr(logging, load_settings().log_level.upper(), logging.INFO))

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateBody(_Body):
    # Optional at the schema level so a missing field yields our own 400 message.
    image_base64: Optional[str] = Field(None, alias="imageBase64")
    mime_type: Optional[str] = Field(None, alias="mimeType")
    prompt: Optional[str] = None


class CompositeBody(_Body):
    image_base64: Optional[str] = Field(None, alias="imageBase64")
    mime_type: Optional[str] = Field(None, alias="mimeType")
    background_id: Optional[str] = Field(None, alias="backgroundId")


app = FastAPI(title="ETHMumbai Avatar Studio API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AvatarStudioError)
async def avatar_studio_error_handler(request: Request, exc: AvatarStudioError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message[:300])
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message[:300])
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    invalid_json = next((e for e in errors if e.get("type") == "json_invalid"), None)
    if invalid_json is not None:
        # body could not be parsed at all
        message = (invalid_json.get("ctx") or {}).get("error") or invalid_json.get("msg") or "Unknown error"
        logger.error("%s %s -> 500: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=500, content={"error": str(message)})
    if any(e.get("type") == "missing" and tuple(e.get("loc", ())) == ("body",) for e in errors):
        message = "Missing request body"
    else:
        first = errors[0] if errors else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid request body: {loc} {first.get('msg', '')}".strip()
    logger.warning("%s %s -> 400: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


@app.get("/")
def index():
    return FileResponse(os.path.join(STATIC_DIR, "index.html"))


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/backgrounds")
def backgrounds():
    return [option.to_json() for option in BG_OPTIONS]


@app.post("/generate")
def generate(request: Request, body: Optional[GenerateBody] = None):
    try:
        settings = load_settings()
        require_api_key(settings)
        if body is None:
            raise InvalidRequest("Missing request body")
        if not body.image_base64 or not body.mime_type:
            raise InvalidRequest("imageBase64 and mimeType are required")
        image_b64, mime_type = prepare_inline_image(body.image_base64, body.mime_type)
        logger.info(
            "/generate from %s mime=%s img_len=%s custom_prompt=%s",
            request.client.host if request.client else "unknown",
            mime_type,
            len(image_b64),
            bool(body.prompt),
        )
        result = generate_image(settings, image_b64, mime_type, body.prompt)
    except AvatarStudioError:
        raise
    except Exception as e:
        logger.exception("/generate failed: %s", e)
        raise AvatarStudioError(str(e) or "Unknown error", status_code=500)
    return result.to_json()


@app.get("/models")
def models():
    try:
        status, data = list_models(load_settings())
    except AvatarStudioError:
        raise
    except Exception as e:
        logger.exception("/models failed: %s", e)
        raise AvatarStudioError(str(e) or "Unknown error", status_code=500)
    return JSONResponse(status_code=status, content=data)


@app.post("/composite")
async def composite(body: CompositeBody):
    if not body.image_base64:
        raise InvalidRequest("imageBase64 is required")
    background = get_background(body.background_id or DEFAULT_BACKGROUND)
    raw = decode_image_b64(body.image_base64)
    if not raw:
        raise InvalidRequest("Empty image payload")
    logger.info("/composite background=%s mime=%s img_len=%s", background.id, body.mime_type, len(raw))
    png = await render_avatar(raw, background.stops)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{DOWNLOAD_FILENAME}"'},
    )
