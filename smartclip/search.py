"""
Exhaustive multi-scale crop search.

Responsibility:
    Derive the crop geometry for an image and target size, enumerate
    every candidate rectangle across scales and positions, score each
    one, and keep the best.

Ordering:
    Scales run from max_scale down, then y ascending, then x ascending.
    A candidate replaces the current best only when its total is
    strictly greater, so ties keep the earlier candidate. The scale is
    stepped by repeated float subtraction; the last scale may therefore
    land slightly above min_scale.

Failure behavior:
    If no candidate fits inside the image, DegenerateSearchError is
    raised. The search never clamps or invents a crop.
"""

import logging
import math
from dataclasses import dataclass

from smartclip.buffers import PixelBuffer, ReducedBuffer
from smartclip.config import CropConfig
from smartclip.crop import Crop, Rect
from smartclip.downsample import downsample
from smartclip.errors import DegenerateSearchError
from smartclip.features import analyze
from smartclip.scoring import score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchGeometry:
    """Crop dimensions and scale range derived once per image.

    Attributes:
        crop_width: Base candidate width in analysis pixels.
        crop_height: Base candidate height in analysis pixels.
        min_scale: Smallest scale searched.
        max_scale: Largest scale searched.
        prescale: Factor the analysis image was shrunk by (1.0 if not).
    """

    crop_width: int
    crop_height: int
    min_scale: float
    max_scale: float
    prescale: float = 1.0


def derive_geometry(
    source_width: int,
    source_height: int,
    config: CropConfig,
    prescale: float = 1.0,
) -> SearchGeometry:
    """Derive the largest target-aspect crop for a source image.

    Args:
        source_width: Width of the image before any prescale.
        source_height: Height of the image before any prescale.
        config: Crop tuning values.
        prescale: Factor the analysis image was shrunk by (<= 1).

    Returns:
        The SearchGeometry for the analysis image.
    """
    scale = min(source_width / config.resize_width, source_height / config.resize_height)
    crop_width = math.floor(config.resize_width * scale)
    crop_height = math.floor(config.resize_height * scale)
    min_scale = min(config.max_scale, max(1 / scale, config.min_scale))

    if prescale < 1:
        crop_width = math.floor(crop_width * prescale)
        crop_height = math.floor(crop_height * prescale)
    else:
        prescale = 1.0

    return SearchGeometry(
        crop_width=crop_width,
        crop_height=crop_height,
        min_scale=min_scale,
        max_scale=config.max_scale,
        prescale=prescale,
    )


def search(
    reduced: ReducedBuffer,
    geometry: SearchGeometry,
    config: CropConfig,
    image_width: int,
    image_height: int,
) -> Crop:
    """Return the highest-scoring candidate crop.

    Args:
        reduced: Downsampled feature buffer of the analysis image.
        geometry: Derived crop dimensions and scale range.
        config: Crop tuning values.
        image_width: Analysis image width.
        image_height: Analysis image height.

    Raises:
        DegenerateSearchError: If no candidate fits inside the image.
    """
    crop_width = geometry.crop_width
    crop_height = geometry.crop_height
    step = config.step

    if step <= 0 or config.scale_step <= 0:
        raise ValueError(
            f"step and scale_step must be positive, "
            f"got step={step}, scale_step={config.scale_step}."
        )

    if crop_width <= 0 or crop_height <= 0:
        raise DegenerateSearchError(
            f"Derived crop size {crop_width}x{crop_height} is empty."
        )

    best = None
    best_total = -math.inf
    evaluated = 0

    scale = geometry.max_scale
    while scale >= geometry.min_scale:
        width = crop_width * scale
        height = crop_height * scale

        y = 0
        while y + height <= image_height:
            x = 0
            while x + width <= image_width:
                rect = Rect(x, y, width, height)
                breakdown = score(reduced, rect, config)
                evaluated += 1

                if breakdown.total > best_total:
                    best = Crop(x, y, width, height, scale, breakdown)
                    best_total = breakdown.total

                x += step
            y += step

        scale -= config.scale_step

    if best is None:
        raise DegenerateSearchError(
            f"No {crop_width}x{crop_height} crop fits a "
            f"{image_width}x{image_height} image at scales "
            f"{geometry.min_scale}..{geometry.max_scale}."
        )

    logger.debug(
        "Search evaluated %d candidates; best at (%s, %s) %sx%s score=%.6f",
        evaluated, best.x, best.y, best.width, best.height, best_total,
    )
    return best


def find_best_crop(pixels: PixelBuffer, config: CropConfig, geometry: SearchGeometry) -> Crop:
    """Run feature analysis, downsampling and search on one image.

    Raises:
        DegenerateSearchError: If no candidate fits inside the image.
    """
    analysis = analyze(pixels, config)
    reduced = downsample(analysis, config.score_down_sample)
    return search(reduced, geometry, config, pixels.width, pixels.height)
