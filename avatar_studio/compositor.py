"""Render the shareable 1080x1080 avatar.

Layers, bottom to top: background gradient, cover-fit photo clipped to a
rounded rectangle, caption badge, decorative border. Both the clip and the
border are built from :func:`rounded_rect_path` so they share geometry.
"""
import logging
import math
from dataclasses import dataclass
from io import BytesIO
from typing import List, Sequence, Tuple

import anyio
import numpy as np
from PIL import Image, ImageChops, ImageDraw, ImageFont

from .backgrounds import parse_hex, stop_positions
from .encoding import encode_image, to_data_url
from .errors import CanvasUnsupportedError, ImageLoadError

logger = logging.getLogger("avatar_studio.compositor")

CANVAS_SIZE = 1080
IMAGE_RADIUS = 40

BADGE_X = 28
BADGE_OFFSET_Y = 88  # from the bottom edge
BADGE_WIDTH = 240
BADGE_HEIGHT = 54
BADGE_RADIUS = 16
BADGE_PADDING = 18
BADGE_FILL = (0, 0, 0, 191)  # 75% black
BADGE_TEXT = "ETHMumbai Style"
BADGE_FONT_SIZE = 24

BORDER_INSET = 12
BORDER_RADIUS = 32
BORDER_WIDTH = 8
BORDER_COLOR = (255, 255, 255, 166)

ARC_SEGMENTS = 8
DOWNLOAD_FILENAME = "ethmumbai-avatar.png"

Point = Tuple[float, float]


@dataclass(frozen=True)
class CoverFit:
    scale: float
    width: float
    height: float
    offset_x: float
    offset_y: float


def cover_fit(src_w: int, src_h: int, size: int = CANVAS_SIZE) -> CoverFit:
    if src_w <= 0 or src_h <= 0:
        raise ImageLoadError("Image has no pixels")
    scale = max(size / src_w, size / src_h)
    width = src_w * scale
    height = src_h * scale
    return CoverFit(scale, width, height, (size - width) / 2, (size - height) / 2)


def clamp_radius(width: float, height: float, radius: float) -> float:
    return max(0.0, min(radius, width / 2, height / 2))


def rounded_rect_path(x: float, y: float, width: float, height: float, radius: float,
                      segments: int = ARC_SEGMENTS) -> List[Point]:
    """Closed outline of a rounded rectangle, clockwise from the top edge.

    Four straight edges joined by quarter-circle arcs, each arc sampled with
    ``segments`` steps. The radius is clamped to half the shorter side.
    Consecutive duplicate vertices are dropped, so a fully rounded side
    collapses to a single point rather than a zero-length edge.
    """
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    r = clamp_radius(width, height, radius)
    corners = [
        (x + width - r, y + r, -90.0),
        (x + width - r, y + height - r, 0.0),
        (x + r, y + height - r, 90.0),
        (x + r, y + r, 180.0),
    ]
    points: List[Point] = []
    for cx, cy, start in corners:
        for i in range(segments + 1):
            theta = math.radians(start + 90.0 * i / segments)
            pt = (round(cx + r * math.cos(theta), 6) + 0.0, round(cy + r * math.sin(theta), 6) + 0.0)
            if not points or points[-1] != pt:
                points.append(pt)
    if len(points) > 1 and points[-1] == points[0]:
        points.pop()
    return points


def new_canvas(size: int) -> Image.Image:
    if size <= 0:
        raise CanvasUnsupportedError(f"Invalid canvas size: {size}")
    try:
        return Image.new("RGBA", (size, size), (0, 0, 0, 0))
    except (ValueError, MemoryError) as e:
        raise CanvasUnsupportedError(f"Could not allocate canvas: {e}")


def linear_gradient(size: int, stops: Sequence[str]) -> Image.Image:
    """Diagonal gradient from (0, 0) to (size, size) with evenly spaced stops."""
    if not stops:
        raise ValueError("at least one colour stop is required")
    colors = np.array([parse_hex(c) for c in stops], dtype=np.float64)
    if len(colors) == 1:
        arr = np.empty((size, size, 3), dtype=np.uint8)
        arr[:, :] = colors[0].astype(np.uint8)
    else:
        positions = stop_positions(len(colors))
        idx = np.arange(size, dtype=np.float64) + 0.5
        t = (idx[None, :] + idx[:, None]) / (2.0 * size)
        channels = [np.interp(t, positions, colors[:, ch]) for ch in range(3)]
        arr = np.clip(np.rint(np.stack(channels, axis=-1)), 0, 255).astype(np.uint8)
    alpha = np.full((size, size, 1), 255, dtype=np.uint8)
    return Image.fromarray(np.concatenate([arr, alpha], axis=-1))


def _badge_font(size: int = BADGE_FONT_SIZE) -> ImageFont.ImageFont:
    for name in ("DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"):
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def draw_image_clipped(canvas: Image.Image, source: Image.Image) -> Image.Image:
    size = canvas.size[0]
    fit = cover_fit(source.width, source.height, size)
    scaled = source.convert("RGBA").resize(
        (max(1, round(fit.width)), max(1, round(fit.height))), Image.LANCZOS
    )
    layer = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    layer.paste(scaled, (round(fit.offset_x), round(fit.offset_y)))

    mask = Image.new("L", (size, size), 0)
    ImageDraw.Draw(mask).polygon(rounded_rect_path(0, 0, size, size, IMAGE_RADIUS), fill=255)
    layer.putalpha(ImageChops.multiply(layer.getchannel("A"), mask))
    return Image.alpha_composite(canvas, layer)


def draw_badge(canvas: Image.Image, text: str = BADGE_TEXT) -> Image.Image:
    size = canvas.size[0]
    bx, by = BADGE_X, size - BADGE_OFFSET_Y
    overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    draw.polygon(rounded_rect_path(bx, by, BADGE_WIDTH, BADGE_HEIGHT, BADGE_RADIUS), fill=BADGE_FILL)

    font = _badge_font()
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    ty = by + (BADGE_HEIGHT - (bottom - top)) / 2 - top
    draw.text((bx + BADGE_PADDING - left, ty), text, font=font, fill=(255, 255, 255, 255))
    return Image.alpha_composite(canvas, overlay)


def draw_border(canvas: Image.Image) -> Image.Image:
    size = canvas.size[0]
    inner = size - 2 * BORDER_INSET
    path = rounded_rect_path(BORDER_INSET, BORDER_INSET, inner, inner, BORDER_RADIUS)
    overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    ImageDraw.Draw(overlay).line(path + [path[0]], fill=BORDER_COLOR, width=BORDER_WIDTH, joint="curve")
    return Image.alpha_composite(canvas, overlay)


def compose_avatar(source: Image.Image, stops: Sequence[str], size: int = CANVAS_SIZE) -> Image.Image:
    canvas = new_canvas(size)
    canvas = Image.alpha_composite(canvas, linear_gradient(size, stops))
    canvas = draw_image_clipped(canvas, source)
    canvas = draw_badge(canvas)
    return draw_border(canvas)


def decode_bitmap(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except Exception as e:
        logger.warning("image decode failed: %s", e)
        raise ImageLoadError(f"Failed to load image: {e}")
    if img.width == 0 or img.height == 0:
        raise ImageLoadError("Image has no pixels")
    return img


async def load_bitmap(data: bytes) -> Image.Image:
    """Decode off the event loop. Returns only once the bitmap is fully loaded."""
    return await anyio.to_thread.run_sync(decode_bitmap, data)


def to_png(image: Image.Image) -> bytes:
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def to_png_data_url(image: Image.Image) -> str:
    return to_data_url("image/png", encode_image(to_png(image)))


async def render_avatar(data: bytes, stops: Sequence[str], size: int = CANVAS_SIZE) -> bytes:
    source = await load_bitmap(data)
    image = await anyio.to_thread.run_sync(compose_avatar, source, stops, size)
    logger.info("composited avatar %sx%s from %sx%s source", size, size, source.width, source.height)
    return to_png(image)
