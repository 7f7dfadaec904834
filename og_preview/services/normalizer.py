from __future__ import annotations

import logging
from io import BytesIO
from typing import Tuple

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from og_preview.models.preview import RGB, FitMode, Rect
from og_preview.services.errors import DecodeError, UnsupportedFormat


logger = logging.getLogger(__name__)


def decode_image(raw_bytes: bytes) -> Image.Image:
    """
    Decode fetched bytes into an RGBA Pillow image with EXIF orientation applied.

    Raises:
        UnsupportedFormat: the bytes are not in any encoding Pillow recognizes.
        DecodeError: the encoding is recognized but the data is corrupt or truncated.
    """
    try:
        image = Image.open(BytesIO(raw_bytes))
    except UnidentifiedImageError as exc:
        raise UnsupportedFormat("Source image is not in a recognized image format.") from exc
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Failed to open source image: {exc}") from exc

    try:
        image.load()
        image = ImageOps.exif_transpose(image)
        return image.convert("RGBA")
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Failed to decode source image: {exc}") from exc


def _interpolation(scale: float) -> int:
    return cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LANCZOS4


def _resize(pixels: np.ndarray, size: Tuple[int, int], scale: float) -> np.ndarray:
    if (pixels.shape[1], pixels.shape[0]) == size:
        return pixels
    return cv2.resize(pixels, size, interpolation=_interpolation(scale))


def cover_fit(pixels: np.ndarray, target_w: int, target_h: int) -> np.ndarray:
    """
    Scale to fill the whole target and center-crop the overflow.

    The crop window is picked in source pixels and only that window is
    resized, so very thin or very wide sources never allocate more than the
    target. The result is always exactly `target_w` x `target_h`.
    """
    h, w = pixels.shape[:2]
    scale = max(target_w / w, target_h / h)
    crop_w = min(w, max(1, int(round(target_w / scale))))
    crop_h = min(h, max(1, int(round(target_h / scale))))

    x1 = (w - crop_w) // 2
    y1 = (h - crop_h) // 2
    cropped = np.ascontiguousarray(pixels[y1 : y1 + crop_h, x1 : x1 + crop_w])
    return _resize(cropped, (target_w, target_h), scale)


def contain_fit(
    pixels: np.ndarray,
    target_w: int,
    target_h: int,
    allow_upscale: bool = False,
) -> np.ndarray:
    """
    Scale to fit entirely inside the target, centered on transparent padding.

    Nothing is cropped. Sources smaller than the target keep their size unless
    `allow_upscale` is set.
    """
    h, w = pixels.shape[:2]
    scale = min(target_w / w, target_h / h)
    if not allow_upscale:
        scale = min(scale, 1.0)
    new_w = max(1, min(target_w, int(round(w * scale))))
    new_h = max(1, min(target_h, int(round(h * scale))))

    resized = _resize(pixels, (new_w, new_h), scale)

    output = np.zeros((target_h, target_w, 4), dtype=np.uint8)
    offset_x = (target_w - new_w) // 2
    offset_y = (target_h - new_h) // 2
    output[offset_y : offset_y + new_h, offset_x : offset_x + new_w] = resized
    return output


def flatten(image: Image.Image, color: RGB) -> Image.Image:
    """Composite `image` over a solid `color` so no transparency is left."""
    backdrop = Image.new("RGBA", image.size, (*color, 255))
    return Image.alpha_composite(backdrop, image.convert("RGBA"))


def normalize(
    raw_bytes: bytes,
    target: Rect,
    fit_mode: FitMode,
    *,
    allow_upscale: bool = False,
    flatten_color: RGB | None = None,
) -> Image.Image:
    """
    Decode fetched bytes and fit them to the overlay rectangle of a layout.

    Args:
        raw_bytes: Encoded image as downloaded.
        target: Overlay rectangle; only its size is used here.
        fit_mode: `cover` crops to fill, `contain` pads to fit.
        allow_upscale: Let contain-fit enlarge sources smaller than the target.
        flatten_color: When set, flatten transparency against this color.

    Returns:
        An RGBA image exactly `target.width` x `target.height`.
    """
    image = decode_image(raw_bytes)
    pixels = np.asarray(image, dtype=np.uint8)

    if fit_mode not in (FitMode.COVER, FitMode.CONTAIN):
        raise ValueError(f"Unknown fit mode: {fit_mode!r}")

    try:
        if fit_mode is FitMode.COVER:
            fitted = cover_fit(pixels, target.width, target.height)
        else:
            fitted = contain_fit(pixels, target.width, target.height, allow_upscale=allow_upscale)
    except (cv2.error, MemoryError) as exc:
        raise DecodeError(
            f"Failed to resample {image.width}x{image.height} source image: {exc}"
        ) from exc

    result = Image.fromarray(np.ascontiguousarray(fitted))
    if flatten_color is not None:
        result = flatten(result, flatten_color)

    logger.info(
        "Normalized source image %dx%d -> %dx%d (%s)",
        image.width,
        image.height,
        target.width,
        target.height,
        fit_mode.value,
    )
    return result
