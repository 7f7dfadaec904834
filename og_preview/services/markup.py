from __future__ import annotations

import logging
import os

from og_preview.models.preview import RGB, LayoutGeometry, MarkupOverlay
from og_preview.services.text_layout import DEFAULT_LINE_HEIGHT, iter_runs


logger = logging.getLogger(__name__)

DEFAULT_BRAND_LABEL = "Your Brand"

TITLE_SIZE = 50
BODY_SIZE = 30
BRAND_SIZE = 24
# Distance between the title baseline and the first body baseline.
TITLE_GAP = 80
# Distance between the brand baseline and the bottom of the canvas.
BRAND_MARGIN = 60


def build_markup(
    title: str,
    content: str,
    geometry: LayoutGeometry,
    text_color: RGB,
    brand_label: str | None = None,
) -> MarkupOverlay:
    """
    Describe the text layer of a preview: panel, title, body runs and brand footer.

    The title and brand label are drawn as single lines, so any line breaks
    in them collapse to spaces. `brand_label=None` reads `OG_BRAND_LABEL`; an
    empty label disables the footer. Body runs that would collide with the
    brand footer are dropped.
    """
    if brand_label is None:
        brand_label = default_brand_label()
    title_y = geometry.text_origin_y
    brand_y = geometry.canvas_height - BRAND_MARGIN
    label = _single_line(brand_label) or None

    last_baseline = (brand_y - DEFAULT_LINE_HEIGHT) if label else (geometry.canvas_height - BRAND_MARGIN)
    runs = []
    for run in iter_runs(content.strip(), geometry.text_origin_x, origin_y=title_y + TITLE_GAP):
        if run.y > last_baseline:
            logger.warning(
                "Content has more lines than fit on the canvas; dropping from line %d",
                run.line_index,
            )
            break
        runs.append(run)

    return MarkupOverlay(
        title=_single_line(title),
        title_x=geometry.text_origin_x,
        title_y=title_y,
        runs=tuple(runs),
        text_color=text_color,
        text_width=geometry.text_width,
        panel=geometry.panel,
        panel_fill=geometry.panel_fill,
        panel_radius=geometry.panel_radius,
        brand_label=label,
        brand_x=geometry.text_origin_x,
        brand_y=brand_y,
        title_size=TITLE_SIZE,
        body_size=BODY_SIZE,
        brand_size=BRAND_SIZE,
    )


def default_brand_label() -> str:
    return os.getenv("OG_BRAND_LABEL", DEFAULT_BRAND_LABEL)


def _single_line(text: str) -> str:
    return " ".join(text.split())
