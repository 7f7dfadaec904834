from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from PIL import Image

from og_preview.api.v1.schemas import LayoutVariant


RGB = Tuple[int, int, int]
RGBA = Tuple[int, int, int, int]

CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 630
PNG_CONTENT_TYPE = "image/png"
BULLET_GLYPH = "•"


class FitMode(str, Enum):
    """How a photo is scaled into its overlay rectangle."""

    COVER = "cover"
    CONTAIN = "contain"


class Tone(str, Enum):
    """Visual lightness of an image, used to pick a contrasting text color."""

    LIGHT = "light"
    DARK = "dark"


@dataclass(frozen=True, slots=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def within(self, width: int, height: int) -> bool:
        """True when the rectangle lies entirely inside a `width` x `height` canvas."""
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.right <= width
            and self.bottom <= height
        )


@dataclass(frozen=True, slots=True)
class OverlayRect:
    """Placement of the photo layer on the canvas."""

    rect: Rect
    fit_mode: FitMode
    # Contain-fit never enlarges a small source unless the layout asks for it.
    # Cover-fit always fills its rectangle and ignores this flag.
    allow_upscale: bool = False


@dataclass(frozen=True, slots=True)
class BackgroundLayer:
    """
    Bottom-most layer of the composite.

    A flat fill when `gradient_to` is None, otherwise a vertical gradient from
    `fill` (top) to `gradient_to` (bottom).
    """

    fill: RGB
    gradient_to: RGB | None = None


@dataclass(frozen=True, slots=True)
class LayoutGeometry:
    """
    Per-variant placement decisions.

    This is the single place where variants differ; the render pipeline is
    the same for every variant and only reads these values.
    """

    variant: LayoutVariant
    overlay: OverlayRect | None
    text_origin_x: int
    text_origin_y: int
    text_width: int
    background: BackgroundLayer
    panel: Rect | None = None
    panel_fill: RGBA = (255, 255, 255, 217)
    panel_radius: int = 20
    uses_dominant_color: bool = False
    default_text_color: RGB = (31, 41, 55)
    # Solid color the photo is flattened against, or None to keep its alpha.
    flatten_color: RGB | None = None
    canvas_width: int = CANVAS_WIDTH
    canvas_height: int = CANVAS_HEIGHT

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (self.canvas_width, self.canvas_height)


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Validated input for one render. Built by the HTTP layer."""

    title: str
    content: str
    variant: LayoutVariant | str = LayoutVariant.DEFAULT
    source_image: str | None = None


@dataclass(frozen=True, slots=True)
class TextRun:
    """One positioned, styled line of body text."""

    text: str
    line_index: int
    x: int
    y: int
    bold: bool = False
    bullet: bool = False

    @property
    def display_text(self) -> str:
        if self.bullet:
            return f"{BULLET_GLYPH} {self.text}"
        return self.text


@dataclass(slots=True)
class RasterOverlay:
    """A decoded photo placed at `left`/`top` on the canvas."""

    image: Image.Image
    left: int
    top: int


@dataclass(frozen=True, slots=True)
class MarkupOverlay:
    """
    Vector description of the text layer.

    Nothing here is rasterized yet; the compositor turns it into a full-canvas
    transparent layer that always sits on top of every other layer.
    """

    title: str
    title_x: int
    title_y: int
    runs: Tuple[TextRun, ...]
    text_color: RGB
    text_width: int
    accent_color: RGB = (59, 130, 246)
    panel: Rect | None = None
    panel_fill: RGBA = (255, 255, 255, 217)
    panel_radius: int = 20
    brand_label: str | None = None
    brand_x: int = 0
    brand_y: int = 0
    title_size: int = 50
    body_size: int = 30
    brand_size: int = 24


@dataclass(frozen=True, slots=True)
class RenderResult:
    """Encoded output of one render, handed to the caller as-is."""

    content: bytes
    variant: LayoutVariant
    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT
    has_photo: bool = False
    content_type: str = PNG_CONTENT_TYPE
    layers: Tuple[str, ...] = field(default_factory=tuple)
