from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from PIL import Image

from og_preview.models.preview import LayoutGeometry, RasterOverlay, RenderRequest, RenderResult, RGB
from og_preview.services.color import classify, text_color_for
from og_preview.services.compositor import compose
from og_preview.services.errors import DecodeError, FetchError
from og_preview.services.fetcher import fetch_image
from og_preview.services.layouts import parse_variant, select_geometry
from og_preview.services.markup import build_markup
from og_preview.services.normalizer import normalize


logger = logging.getLogger(__name__)

Fetcher = Callable[..., bytes]


def load_photo(
    uri: str,
    geometry: LayoutGeometry,
    *,
    fetch: Optional[Fetcher] = None,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
) -> Image.Image | None:
    """
    Fetch and normalize the source image for `geometry`.

    Returns None when the photo cannot be used; the caller renders without it.
    """
    if geometry.overlay is None:
        logger.info("Variant %s has no photo slot; ignoring %s", geometry.variant.value, uri)
        return None

    try:
        raw = (fetch or fetch_image)(uri, timeout=timeout, cancel=cancel)
    except FetchError as exc:
        logger.warning("Source image unavailable, rendering without photo: %s", exc)
        return None

    try:
        return normalize(
            raw,
            geometry.overlay.rect,
            geometry.overlay.fit_mode,
            allow_upscale=geometry.overlay.allow_upscale,
            flatten_color=geometry.flatten_color,
        )
    except DecodeError as exc:
        logger.warning("Source image could not be decoded, rendering without photo: %s", exc)
        return None


def render_preview(
    request: RenderRequest,
    *,
    fetch: Optional[Fetcher] = None,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    brand_label: str | None = None,
) -> RenderResult:
    """
    Render one social preview.

    Steps run in order: geometry selection, optional photo fetch and
    normalization, text color selection, markup layout, compositing.

    Raises:
        InvalidVariant: the request names an unknown layout.
        EncodeError: the final image could not be encoded.
    """
    variant = parse_variant(request.variant)
    geometry = select_geometry(variant)

    photo: Image.Image | None = None
    if request.source_image:
        photo = load_photo(
            request.source_image,
            geometry,
            fetch=fetch,
            timeout=timeout,
            cancel=cancel,
        )

    text_color: RGB = geometry.default_text_color
    if photo is not None and geometry.uses_dominant_color:
        text_color = text_color_for(classify(photo))

    overlays: List[RasterOverlay] = []
    if photo is not None and geometry.overlay is not None:
        overlays.append(RasterOverlay(photo, left=geometry.overlay.rect.x, top=geometry.overlay.rect.y))

    markup = build_markup(
        request.title,
        request.content,
        geometry,
        text_color,
        brand_label=brand_label,
    )

    return compose(
        geometry.background,
        overlays,
        markup,
        variant=variant,
        size=geometry.canvas_size,
    )
