"""
Per-pixel feature detectors.

Responsibility:
    Fill the skin, detail and saturation channels of an AnalysisBuffer
    from an RGBA PixelBuffer. Each pass reads only the immutable input
    and writes exactly one output channel.

Passes are vectorized with numpy, but every element-wise expression keeps
the operand order of the scalar formula so results are bit-identical to
a per-pixel loop.

Non-goals:
    - No normalization or clamping of detail values (they may be
      negative or exceed 255).
    - No color management beyond the fixed luma and HSL formulas.
"""

import logging
import warnings

import numpy as np

from smartclip.buffers import DETAIL, SATURATION, SKIN, AnalysisBuffer, PixelBuffer
from smartclip.config import CropConfig
from smartclip.errors import NumericDegeneracyWarning

logger = logging.getLogger(__name__)


def luma(r, g, b):
    """Fixed-weight brightness used throughout the engine.

    The weights sum to 1.3 and are not a broadcast luma; they are part
    of the scoring contract and must not be corrected.
    Works on scalars and numpy arrays alike.
    """
    return 0.0722 * r + 0.7152 * g + 0.5126 * b


def _rgb(pixels: PixelBuffer):
    return pixels.channel(0), pixels.channel(1), pixels.channel(2)


def detect_edges(pixels: PixelBuffer, analysis: AnalysisBuffer) -> None:
    """Write a 4-neighbour Laplacian of luma into the detail channel.

    Border pixels receive their own luma instead.
    """
    r, g, b = _rgb(pixels)
    lum = luma(r, g, b)

    detail = lum.copy()
    detail[1:-1, 1:-1] = (
        lum[1:-1, 1:-1] * 4
        - lum[:-2, 1:-1]   # up
        - lum[1:-1, :-2]   # left
        - lum[1:-1, 2:]    # right
        - lum[2:, 1:-1]    # down
    )

    analysis.write_channel(DETAIL, detail)


def skin_likeness(r, g, b, skin_color) -> np.ndarray:
    """Return ``1 - distance(normalize(rgb), skin_color)`` per pixel.

    Zero-magnitude pixels produce NaN.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        mag = np.sqrt(r * r + g * g + b * b)
        rd = r / mag - skin_color[0]
        gd = g / mag - skin_color[1]
        bd = b / mag - skin_color[2]
        d = np.sqrt(rd * rd + gd * gd + bd * bd)
    return 1 - d


def detect_skin(pixels: PixelBuffer, analysis: AnalysisBuffer, config: CropConfig) -> None:
    """Write thresholded skin likeness into the skin channel."""
    r, g, b = _rgb(pixels)
    lightness = luma(r, g, b) / 255
    skin = skin_likeness(r, g, b, config.skin_color)

    undefined = int(np.count_nonzero(np.isnan(skin)))
    if undefined:
        # NaN never passes the threshold, so these pixels score 0.
        warnings.warn(
            f"{undefined} zero-magnitude pixel(s) have undefined skin "
            f"likeness and were scored as 0.",
            NumericDegeneracyWarning,
            stacklevel=2,
        )
        logger.debug("Skin pass: %d pixel(s) with zero color magnitude.", undefined)

    threshold = config.skin_threshold
    with np.errstate(invalid="ignore"):
        mask = (
            (skin > threshold)
            & (lightness >= config.skin_brightness_min)
            & (lightness <= config.skin_brightness_max)
        )
        values = np.where(mask, (skin - threshold) * (255 / (1 / threshold)), 0.0)

    analysis.write_channel(SKIN, values)


def hsl_saturation(r, g, b) -> np.ndarray:
    """HSL saturation of 0-255 channel values, in [0, 1]."""
    r, g, b = r / 255, g / 255, b / 255
    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)

    with np.errstate(divide="ignore", invalid="ignore"):
        light = (mx + mn) / 2
        d = mx - mn
        sat = np.where(light > 0.5, d / (2 - mx - mn), d / (mx + mn))

    return np.where(mx == mn, 0.0, sat)


def detect_saturation(pixels: PixelBuffer, analysis: AnalysisBuffer, config: CropConfig) -> None:
    """Write thresholded HSL saturation into the saturation channel."""
    r, g, b = _rgb(pixels)
    lightness = luma(r, g, b) / 255
    sat = hsl_saturation(r, g, b)

    threshold = config.saturation_threshold
    mask = (
        (sat > threshold)
        & (lightness >= config.saturation_brightness_min)
        & (lightness <= config.saturation_brightness_max)
    )
    values = np.where(mask, (sat - threshold) * (255 / (1 - threshold)), 0.0)

    analysis.write_channel(SATURATION, values)


def analyze(pixels: PixelBuffer, config: CropConfig) -> AnalysisBuffer:
    """Run all feature passes and return the filled AnalysisBuffer.

    The boost channel is left at zero.
    """
    analysis = AnalysisBuffer(pixels.width, pixels.height)
    detect_edges(pixels, analysis)
    detect_skin(pixels, analysis, config)
    detect_saturation(pixels, analysis, config)

    logger.debug("Feature passes complete for %dx%d image.", pixels.width, pixels.height)
    return analysis
