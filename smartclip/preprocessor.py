"""
Preprocessing for the smart-crop pipeline.

Responsibility:
    Shrink large images to the analysis size and convert a decoded
    OpenCV image (GRAY, BGR or BGRA numpy array) into the RGBA
    PixelBuffer the engine consumes.

Non-goals:
    - No decoding or orientation correction (handled at read time).
    - No feature analysis or cropping.

Hard-coded:
    - Downscaling uses INTER_AREA.
    - Images without alpha are treated as fully opaque.
"""

import math
from typing import Tuple

import cv2
import numpy as np

from smartclip.buffers import PixelBuffer


def compute_prescale(width: int, height: int, analysis_size: int) -> float:
    """Factor that brings the short side down to ``analysis_size``.

    Never enlarges: images already at or below the size return 1.0.
    """
    return min(max(analysis_size / width, analysis_size / height), 1.0)


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Convert a GRAY, BGR or BGRA image into an RGBA array.

    Raises:
        ValueError: If the channel count is not 1, 3 or 4.
    """
    if image.ndim == 2 or (image.ndim == 3 and image.shape[2] == 1):
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise ValueError(
        f"Unsupported channel count {image.shape[2]}. "
        f"Expected a GRAY, BGR or BGRA image."
    )


def preprocess(image: np.ndarray, analysis_size: int) -> Tuple[PixelBuffer, float]:
    """Prescale and convert an image for analysis.

    Args:
        image: Decoded image as returned by cv2.imread.
        analysis_size: Short-side size to shrink large images to.

    Returns:
        The RGBA PixelBuffer to analyze and the prescale factor applied.

    Raises:
        ValueError: If the image is empty.
    """
    if image is None or image.size == 0:
        raise ValueError(
            "Cannot preprocess an empty image. "
            "Ensure the input source is providing valid images."
        )

    h, w = image.shape[:2]
    prescale = compute_prescale(w, h, analysis_size)

    if prescale < 1:
        new_w = max(1, math.floor(w * prescale))
        new_h = max(1, math.floor(h * prescale))
        image = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)
    else:
        prescale = 1.0

    return PixelBuffer.from_array(to_rgba(image)), prescale
