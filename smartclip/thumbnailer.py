"""
Thumbnail rendering for the smart-crop pipeline.

Responsibility:
    Turn a source image and its CropBox into the final thumbnail:
    crop, shrink to fit the target size (never enlarge), and pad onto a
    centered background canvas. Also picks the output format and the
    encoder parameters.

Non-goals:
    - No crop search or scoring.
    - No file writing (OutputHandler owns that).
"""

import logging
from pathlib import Path
from typing import List, Tuple

import cv2
import numpy as np

from smartclip.crop import CropBox

logger = logging.getLogger(__name__)


def crop_image(image: np.ndarray, box: CropBox) -> np.ndarray:
    """Return the region of ``image`` covered by ``box``."""
    return image[box.y:box.y2, box.x:box.x2]


def fit_within(image: np.ndarray, max_width: int, max_height: int) -> np.ndarray:
    """Shrink ``image`` to fit inside max_width x max_height.

    Aspect ratio is preserved. Images that already fit are returned
    unchanged.
    """
    h, w = image.shape[:2]
    if w <= max_width and h <= max_height:
        return image

    scale = min(max_width / w, max_height / h)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)


def extent(
    image: np.ndarray,
    width: int,
    height: int,
    background: Tuple[int, int, int],
) -> np.ndarray:
    """Center ``image`` on a width x height canvas filled with ``background``.

    Args:
        image: GRAY, BGR or BGRA image no larger than the canvas.
        width: Canvas width.
        height: Canvas height.
        background: BGR fill color. The alpha of a BGRA canvas is opaque.
    """
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

    channels = image.shape[2]
    fill = tuple(background) + ((255,) if channels == 4 else ())
    canvas = np.empty((height, width, channels), dtype=image.dtype)
    canvas[:, :] = fill

    h, w = image.shape[:2]
    top = (height - h) // 2
    left = (width - w) // 2
    canvas[top:top + h, left:left + w] = image
    return canvas


def render_thumbnail(
    image: np.ndarray,
    box: CropBox,
    width: int,
    height: int,
    background: Tuple[int, int, int],
) -> np.ndarray:
    """Crop, shrink-to-fit and pad ``image`` into a width x height thumbnail."""
    region = crop_image(image, box)
    region = fit_within(region, width, height)
    return extent(region, width, height, background)


def is_opaque(image: np.ndarray) -> bool:
    """True if the image has no alpha channel or every pixel is opaque."""
    if image.ndim < 3 or image.shape[2] < 4:
        return True
    return bool(np.all(image[:, :, 3] == 255))


def choose_extension(image: np.ndarray, source_path: str, optimize: bool) -> str:
    """Pick the output file extension.

    With optimization on, opaque images become JPEG and anything with
    transparency becomes PNG. Otherwise the source extension is kept.
    """
    if not optimize:
        return Path(source_path).suffix.lower() or ".png"
    return ".jpg" if is_opaque(image) else ".png"


def encode_params(extension: str, optimize: bool, jpeg_quality: int) -> List[int]:
    """cv2.imwrite parameters for the chosen format."""
    if not optimize:
        return []
    if extension in (".jpg", ".jpeg"):
        return [
            cv2.IMWRITE_JPEG_QUALITY, jpeg_quality,
            cv2.IMWRITE_JPEG_PROGRESSIVE, 1,
            cv2.IMWRITE_JPEG_SAMPLING_FACTOR, cv2.IMWRITE_JPEG_SAMPLING_FACTOR_420,
        ]
    if extension == ".png":
        return [cv2.IMWRITE_PNG_COMPRESSION, 9]
    return []


def prepare_for_encoding(image: np.ndarray, extension: str) -> np.ndarray:
    """Drop the alpha channel for formats that cannot store it."""
    if extension in (".jpg", ".jpeg") and image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image
