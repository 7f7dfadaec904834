from __future__ import annotations

import logging

import numpy as np
from PIL import Image

from og_preview.models.preview import RGB, Tone


logger = logging.getLogger(__name__)

# Rec. 709 luma coefficients.
LUMA_R = 0.2126
LUMA_G = 0.7152
LUMA_B = 0.0722

DARK_THRESHOLD = 0.5

TEXT_ON_DARK: RGB = (255, 255, 255)
TEXT_ON_LIGHT: RGB = (17, 24, 39)


def dominant_color(image: Image.Image) -> RGB:
    """
    Average color of the visible pixels of `image`.

    Pixels are weighted by their alpha so transparent padding (e.g. around a
    contain-fitted photo) does not pull the average towards black. A fully
    transparent image yields black.
    """
    pixels = np.asarray(image.convert("RGBA"), dtype=np.float64)
    rgb = pixels[:, :, :3].reshape(-1, 3)
    alpha = pixels[:, :, 3].reshape(-1) / 255.0

    total = alpha.sum()
    if total <= 0:
        return (0, 0, 0)

    mean = (rgb * alpha[:, None]).sum(axis=0) / total
    r, g, b = (int(round(c)) for c in mean)
    return (r, g, b)


def relative_luminosity(color: RGB) -> float:
    """Perceptual brightness of an sRGB color in [0, 1]."""
    r, g, b = color
    return (LUMA_R * r + LUMA_G * g + LUMA_B * b) / 255.0


def classify(image: Image.Image) -> Tone:
    """Classify an image as visually light or dark."""
    color = dominant_color(image)
    luminosity = relative_luminosity(color)
    tone = Tone.DARK if luminosity <= DARK_THRESHOLD else Tone.LIGHT
    logger.debug("Dominant color %s, luminosity %.3f -> %s", color, luminosity, tone.value)
    return tone


def text_color_for(tone: Tone) -> RGB:
    """Foreground color that stays readable on top of an image of `tone`."""
    return TEXT_ON_DARK if tone is Tone.DARK else TEXT_ON_LIGHT
