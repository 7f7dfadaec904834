"""
Layer compositing and PNG encoding.

The z-order is fixed: background at the bottom, photo overlays in the order
they are given, and the text markup layer on top. Nothing in here touches the
disk or the network.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from io import BytesIO
from typing import List, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from og_preview.api.v1.schemas import LayoutVariant
from og_preview.models.preview import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    PNG_CONTENT_TYPE,
    RGB,
    BackgroundLayer,
    MarkupOverlay,
    RasterOverlay,
    RenderResult,
)
from og_preview.services.errors import EncodeError


logger = logging.getLogger(__name__)

ELLIPSIS = "…"

_REGULAR_FONTS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/Library/Fonts/Arial.ttf",
    "C:/Windows/Fonts/arial.ttf",
    "DejaVuSans.ttf",
    "arial.ttf",
]

_BOLD_FONTS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
    "DejaVuSans-Bold.ttf",
    "arialbd.ttf",
]


@lru_cache(maxsize=None)
def _resolve_font_path(bold: bool) -> str | None:
    """First TrueType file that Pillow can open, or None when there is none."""
    candidates: List[str] = []
    custom = os.getenv("OG_BOLD_FONT_PATH" if bold else "OG_FONT_PATH")
    if custom:
        candidates.append(custom)
    candidates.extend(_BOLD_FONTS if bold else _REGULAR_FONTS)

    for path in candidates:
        try:
            ImageFont.truetype(path, size=12)
        except OSError:
            continue
        return path

    logger.warning("No %s TrueType font found; using Pillow's default font", "bold" if bold else "regular")
    return None


def load_font(size: int, bold: bool = False) -> Tuple[ImageFont.ImageFont, bool]:
    """
    Load a font of `size` pixels.

    Returns the font and whether it is a real bold face. When no bold file is
    available the regular face is returned and callers emulate the weight with
    a stroke.
    """
    path = _resolve_font_path(bold)
    if path is not None:
        return ImageFont.truetype(path, size=size), bold
    if bold:
        regular, _ = load_font(size, bold=False)
        return regular, False
    return ImageFont.load_default(size=size), False


def render_background(background: BackgroundLayer, size: Tuple[int, int]) -> Image.Image:
    """Flat fill, or a vertical gradient from `fill` to `gradient_to`."""
    width, height = size
    if background.gradient_to is None:
        return Image.new("RGBA", size, (*background.fill, 255))

    top = np.array(background.fill, dtype=np.float64)
    bottom = np.array(background.gradient_to, dtype=np.float64)
    t = np.linspace(0.0, 1.0, height)[:, None]
    rows = np.rint(top + (bottom - top) * t).astype(np.uint8)
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :, :3] = rows[:, None, :]
    pixels[:, :, 3] = 255
    return Image.fromarray(pixels)


def _paste_overlay(canvas: Image.Image, overlay: RasterOverlay) -> bool:
    """Alpha-composite `overlay` onto `canvas` in place, clipped to the canvas."""
    image = overlay.image.convert("RGBA")
    left, top = overlay.left, overlay.top

    x1 = max(0, -left)
    y1 = max(0, -top)
    x2 = min(image.width, canvas.width - left)
    y2 = min(image.height, canvas.height - top)
    if x2 <= x1 or y2 <= y1:
        logger.warning("Overlay at (%d, %d) lies outside the canvas; skipped", left, top)
        return False

    if (x1, y1, x2, y2) != (0, 0, image.width, image.height):
        image = image.crop((x1, y1, x2, y2))
    canvas.alpha_composite(image, dest=(left + x1, top + y1))
    return True


def _fit_line(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.ImageFont,
    max_width: int,
    stroke_width: int = 0,
) -> str:
    """Shorten `text` with an ellipsis until it fits in `max_width` pixels."""
    if draw.textlength(text, font=font) + 2 * stroke_width <= max_width:
        return text
    words = text.split()
    while words:
        words.pop()
        candidate = " ".join(words).rstrip(" ,.;:") + ELLIPSIS
        if draw.textlength(candidate, font=font) + 2 * stroke_width <= max_width:
            return candidate
    # A single word that is too long: cut characters instead.
    chars = text
    while chars:
        chars = chars[:-1]
        candidate = chars + ELLIPSIS
        if draw.textlength(candidate, font=font) + 2 * stroke_width <= max_width:
            return candidate
    return ELLIPSIS


def _draw_line(
    draw: ImageDraw.ImageDraw,
    xy: Tuple[int, int],
    text: str,
    size: int,
    fill: RGB,
    max_width: int,
    bold: bool = False,
) -> None:
    if not text:
        return
    font, real_bold = load_font(size, bold=bold)
    stroke = 1 if bold and not real_bold else 0
    line = _fit_line(draw, text, font, max_width, stroke_width=stroke)
    draw.text(
        xy,
        line,
        font=font,
        fill=(*fill, 255),
        anchor="ls",
        stroke_width=stroke,
        stroke_fill=(*fill, 255) if stroke else None,
    )


def rasterize_markup(markup: MarkupOverlay, size: Tuple[int, int]) -> Image.Image:
    """
    Render the markup description to a full-canvas transparent layer.

    Coordinates in the markup are left/baseline positions, so a run at
    `y=200` sits on the 200px baseline.
    """
    layer = Image.new("RGBA", size, (0, 0, 0, 0))

    if markup.panel is not None:
        panel_layer = Image.new("RGBA", size, (0, 0, 0, 0))
        ImageDraw.Draw(panel_layer).rounded_rectangle(
            [
                markup.panel.x,
                markup.panel.y,
                markup.panel.right - 1,
                markup.panel.bottom - 1,
            ],
            radius=markup.panel_radius,
            fill=markup.panel_fill,
        )
        layer = Image.alpha_composite(layer, panel_layer)

    text_layer = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(text_layer)

    _draw_line(
        draw,
        (markup.title_x, markup.title_y),
        markup.title,
        markup.title_size,
        markup.text_color,
        markup.text_width,
        bold=True,
    )
    for run in markup.runs:
        _draw_line(
            draw,
            (run.x, run.y),
            run.display_text,
            markup.body_size,
            markup.text_color,
            markup.text_width,
            bold=run.bold,
        )
    if markup.brand_label:
        _draw_line(
            draw,
            (markup.brand_x, markup.brand_y),
            markup.brand_label,
            markup.brand_size,
            markup.accent_color,
            markup.text_width,
            bold=True,
        )

    return Image.alpha_composite(layer, text_layer)


def encode_png(image: Image.Image) -> bytes:
    """Flatten to RGB and encode as a single-frame PNG."""
    buffer = BytesIO()
    try:
        image.convert("RGB").save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Failed to encode preview as PNG: {exc}") from exc
    return buffer.getvalue()


def compose(
    background: BackgroundLayer,
    overlays: Sequence[RasterOverlay],
    markup: MarkupOverlay,
    *,
    variant: LayoutVariant = LayoutVariant.DEFAULT,
    size: Tuple[int, int] = (CANVAS_WIDTH, CANVAS_HEIGHT),
) -> RenderResult:
    """
    Stack background, photo overlays and markup and encode the result.

    Args:
        background: Bottom layer fill.
        overlays: Photo layers, composited bottom to top in the given order.
        markup: Text layer, always composited last.
        variant: Recorded on the result for the caller.
        size: Canvas size in pixels.

    Returns:
        RenderResult with PNG bytes.

    Raises:
        EncodeError: when the composite cannot be encoded.
    """
    canvas = render_background(background, size)
    layers = ["background"]

    for overlay in overlays:
        if _paste_overlay(canvas, overlay):
            layers.append("photo")

    canvas = Image.alpha_composite(canvas, rasterize_markup(markup, size))
    layers.append("markup")

    content = encode_png(canvas)
    logger.info("Composited %s preview (%s), %d bytes", variant.value, " > ".join(layers), len(content))

    return RenderResult(
        content=content,
        variant=variant,
        width=size[0],
        height=size[1],
        has_photo="photo" in layers,
        content_type=PNG_CONTENT_TYPE,
        layers=tuple(layers),
    )
