from __future__ import annotations

from typing import Dict

from og_preview.api.v1.schemas import LayoutVariant
from og_preview.models.preview import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    BackgroundLayer,
    FitMode,
    LayoutGeometry,
    OverlayRect,
    Rect,
)
from og_preview.services.errors import InvalidVariant


PANEL_INSET = 40
TEXT_PADDING = 60
THUMBNAIL_SIZE = 240

WHITE = (255, 255, 255)
SLATE_TEXT = (31, 41, 55)  # #1f2937


_GEOMETRIES: Dict[LayoutVariant, LayoutGeometry] = {
    # Flat background with an inset translucent rounded panel.
    LayoutVariant.DEFAULT: LayoutGeometry(
        variant=LayoutVariant.DEFAULT,
        overlay=None,
        text_origin_x=TEXT_PADDING,
        text_origin_y=120,
        text_width=CANVAS_WIDTH - 2 * TEXT_PADDING,
        background=BackgroundLayer(fill=(243, 244, 246)),
        panel=Rect(
            PANEL_INSET,
            PANEL_INSET,
            CANVAS_WIDTH - 2 * PANEL_INSET,
            CANVAS_HEIGHT - 2 * PANEL_INSET,
        ),
        default_text_color=SLATE_TEXT,
    ),
    # Full-bleed photo, flattened against white, with text colored from its content.
    LayoutVariant.IMAGE_BACKGROUND: LayoutGeometry(
        variant=LayoutVariant.IMAGE_BACKGROUND,
        overlay=OverlayRect(Rect(0, 0, CANVAS_WIDTH, CANVAS_HEIGHT), FitMode.COVER),
        text_origin_x=TEXT_PADDING,
        text_origin_y=120,
        text_width=CANVAS_WIDTH - 2 * TEXT_PADDING,
        background=BackgroundLayer(fill=(17, 24, 39)),
        panel=Rect(
            PANEL_INSET,
            PANEL_INSET,
            CANVAS_WIDTH - 2 * PANEL_INSET,
            CANVAS_HEIGHT - 2 * PANEL_INSET,
        ),
        panel_fill=(255, 255, 255, 64),
        uses_dominant_color=True,
        default_text_color=WHITE,
        flatten_color=WHITE,
    ),
    # Small contained square in the top-right corner; text keeps a static color.
    LayoutVariant.CORNER_THUMBNAIL: LayoutGeometry(
        variant=LayoutVariant.CORNER_THUMBNAIL,
        overlay=OverlayRect(
            Rect(
                CANVAS_WIDTH - PANEL_INSET - THUMBNAIL_SIZE,
                PANEL_INSET,
                THUMBNAIL_SIZE,
                THUMBNAIL_SIZE,
            ),
            FitMode.CONTAIN,
        ),
        text_origin_x=TEXT_PADDING,
        text_origin_y=120,
        text_width=CANVAS_WIDTH - PANEL_INSET - THUMBNAIL_SIZE - 2 * TEXT_PADDING,
        background=BackgroundLayer(fill=(30, 58, 138), gradient_to=(17, 24, 39)),
        default_text_color=WHITE,
    ),
    # Photo on the left half, text column from the midpoint.
    LayoutVariant.SPLIT_VIEW: LayoutGeometry(
        variant=LayoutVariant.SPLIT_VIEW,
        overlay=OverlayRect(Rect(0, 0, CANVAS_WIDTH // 2, CANVAS_HEIGHT), FitMode.COVER),
        text_origin_x=CANVAS_WIDTH // 2 + TEXT_PADDING,
        text_origin_y=120,
        text_width=CANVAS_WIDTH // 2 - 2 * TEXT_PADDING,
        background=BackgroundLayer(fill=(249, 250, 251)),
        default_text_color=SLATE_TEXT,
    ),
}


def parse_variant(variant: LayoutVariant | str) -> LayoutVariant:
    """
    Resolve a variant tag to the enum.

    Accepts the enum itself or its exact string value; anything else raises
    `InvalidVariant`.
    """
    if isinstance(variant, LayoutVariant):
        return variant
    try:
        return LayoutVariant(variant)
    except ValueError as exc:
        raise InvalidVariant(f"Unknown layout variant: {variant!r}") from exc


def select_geometry(variant: LayoutVariant | str) -> LayoutGeometry:
    """Return the placement geometry for a layout variant."""
    resolved = parse_variant(variant)
    return _GEOMETRIES[resolved]


def all_geometries() -> Dict[LayoutVariant, LayoutGeometry]:
    """All known variants with their geometry, in declaration order."""
    return {variant: _GEOMETRIES[variant] for variant in LayoutVariant}
