"""
Tests for layer stacking, markup rasterization and PNG encoding.
"""

from io import BytesIO
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image, ImageDraw

from og_preview.api.v1.schemas import LayoutVariant
from og_preview.models.preview import BackgroundLayer, MarkupOverlay, RasterOverlay, Rect
from og_preview.services.compositor import (
    ELLIPSIS,
    _fit_line,
    compose,
    encode_png,
    load_font,
    rasterize_markup,
    render_background,
)
from og_preview.services.errors import EncodeError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _markup(**overrides) -> MarkupOverlay:
    values = dict(
        title="Launch",
        title_x=60,
        title_y=120,
        runs=(),
        text_color=(0, 0, 0),
        text_width=1080,
        brand_label=None,
    )
    values.update(overrides)
    return MarkupOverlay(**values)


def _decode(content: bytes) -> Image.Image:
    return Image.open(BytesIO(content))


def test_compose_encodes_a_canvas_sized_png():
    result = compose(BackgroundLayer(fill=(10, 20, 30)), [], _markup())

    assert result.content.startswith(PNG_SIGNATURE)
    assert result.content_type == "image/png"
    image = _decode(result.content)
    assert image.format == "PNG"
    assert image.size == (1200, 630)
    assert image.mode == "RGB"
    assert not result.has_photo
    assert result.layers == ("background", "markup")


def test_overlay_sits_between_background_and_markup():
    photo = Image.new("RGBA", (100, 100), (255, 0, 0, 255))
    markup = _markup(panel=Rect(0, 0, 50, 50), panel_fill=(0, 255, 0, 255), title="")

    result = compose(
        BackgroundLayer(fill=(0, 0, 255)),
        [RasterOverlay(photo, left=0, top=0)],
        markup,
        variant=LayoutVariant.SPLIT_VIEW,
    )
    image = _decode(result.content).convert("RGB")

    assert result.layers == ("background", "photo", "markup")
    assert result.has_photo
    assert result.variant is LayoutVariant.SPLIT_VIEW
    # Markup panel covers the photo, the photo covers the background.
    assert image.getpixel((25, 25)) == (0, 255, 0)
    assert image.getpixel((75, 75)) == (255, 0, 0)
    assert image.getpixel((150, 150)) == (0, 0, 255)


def test_overlays_stack_in_the_given_order():
    first = RasterOverlay(Image.new("RGBA", (40, 40), (255, 0, 0, 255)), left=500, top=300)
    second = RasterOverlay(Image.new("RGBA", (40, 40), (0, 255, 0, 255)), left=520, top=300)

    result = compose(BackgroundLayer(fill=(0, 0, 0)), [first, second], _markup(title=""))
    image = _decode(result.content).convert("RGB")

    assert image.getpixel((510, 310)) == (255, 0, 0)
    assert image.getpixel((530, 310)) == (0, 255, 0)


def test_overlay_outside_canvas_is_clipped():
    photo = RasterOverlay(Image.new("RGBA", (100, 100), (255, 255, 0, 255)), left=1150, top=600)

    result = compose(BackgroundLayer(fill=(0, 0, 0)), [photo], _markup(title=""))
    image = _decode(result.content).convert("RGB")

    assert image.size == (1200, 630)
    assert image.getpixel((1199, 629)) == (255, 255, 0)


def test_gradient_background_runs_top_to_bottom():
    background = render_background(BackgroundLayer(fill=(0, 0, 0), gradient_to=(200, 100, 50)), (20, 11))

    assert background.getpixel((5, 0)) == (0, 0, 0, 255)
    assert background.getpixel((5, 10)) == (200, 100, 50, 255)
    assert background.getpixel((5, 5)) == (100, 50, 25, 255)


def test_markup_layer_is_transparent_outside_panel_and_text():
    markup = _markup(panel=Rect(40, 40, 1120, 550), panel_fill=(255, 255, 255, 217), title="Hi")
    layer = rasterize_markup(markup, (1200, 630))

    assert layer.size == (1200, 630)
    assert layer.mode == "RGBA"
    assert layer.getpixel((5, 5))[3] == 0
    assert layer.getpixel((600, 610))[3] == 0
    assert layer.getpixel((600, 400)) == (255, 255, 255, 217)
    # Rounded corner leaves the very corner of the panel transparent.
    assert layer.getpixel((40, 40))[3] == 0


def test_text_is_drawn_in_the_markup_color():
    markup = _markup(title="HH", text_color=(255, 0, 0))
    layer = rasterize_markup(markup, (1200, 630))

    assert layer.getbbox() is not None
    left, top, right, bottom = layer.getbbox()
    # Title is anchored at its left baseline (60, 120).
    assert left >= 58
    assert 60 <= top < 120
    assert bottom <= 126
    pixels = np.asarray(layer)
    opaque = pixels[:, :, 3] == 255
    assert opaque.any()
    assert (pixels[opaque][:, :3] == (255, 0, 0)).all()


def test_long_lines_are_shortened_with_an_ellipsis():
    font, _ = load_font(30)
    draw = ImageDraw.Draw(Image.new("RGBA", (10, 10)))
    text = "word " * 100

    fitted = _fit_line(draw, text, font, 300)

    assert fitted.endswith(ELLIPSIS)
    assert draw.textlength(fitted, font=font) <= 300
    assert _fit_line(draw, "short", font, 300) == "short"


def test_encode_failures_raise_encode_error():
    image = Image.new("RGB", (4, 4))
    with patch.object(Image.Image, "save", side_effect=OSError("disk full")):
        with pytest.raises(EncodeError):
            encode_png(image)
