"""
Cropper — the single public API for smart thumbnail cropping.

This module is the ONLY intended programmatic entry point for consumers
of the smart-crop library. All other modules are internal.

Public contract:
    Cropper.find_crop(image: np.ndarray) -> CropBox

Constraints:
    - Input must be a GRAY, BGR or BGRA numpy array (as returned by OpenCV).
    - The method is stateless per call and deterministic.

Non-goals:
    - No file reading or I/O of any kind.
    - No thumbnail rendering or output writing.
"""

import logging
from typing import Optional

import numpy as np

from smartclip.buffers import PixelBuffer
from smartclip.config import AppConfig, load_config
from smartclip.crop import Crop, CropBox
from smartclip.postprocessor import to_source_box
from smartclip.preprocessor import preprocess
from smartclip.search import SearchGeometry, derive_geometry, find_best_crop

logger = logging.getLogger(__name__)


class Cropper:
    """Content-aware crop finder.

    Wires the preprocessor, the feature/search engine and the
    postprocessor together.

    Usage:
        cropper = Cropper()                      # Uses safe defaults
        cropper = Cropper(config=my_config)      # Custom config
        box = cropper.find_crop(image)           # BGR numpy array
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        """Initialize the cropper.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
        """
        if config is None:
            config = load_config()

        self._config = config

        logger.info(
            "Cropper initialized (target=%dx%d, analysis_size=%d)",
            config.crop.resize_width,
            config.crop.resize_height,
            config.input.analysis_size,
        )

    def find_crop(self, image: np.ndarray) -> CropBox:
        """Find the best crop of a single image.

        Args:
            image: A GRAY, BGR or BGRA image as a numpy array with dtype
                   uint8. This is the format returned by cv2.imread().

        Returns:
            The winning crop in source image coordinates.

        Raises:
            TypeError: If image is not a numpy ndarray.
            ValueError: If image has incorrect shape or is empty.
            DegenerateSearchError: If no candidate crop fits the image.
        """
        self._validate_image(image)

        h, w = image.shape[:2]
        pixels, prescale = preprocess(image, self._config.input.analysis_size)
        geometry = derive_geometry(w, h, self._config.crop, prescale)

        crop = self.analyze(pixels, geometry)
        box = to_source_box(crop, prescale, w, h)

        logger.debug(
            "Crop for %dx%d image: (%d, %d) %dx%d, score=%.6f",
            w, h, box.x, box.y, box.width, box.height, box.score.total,
        )
        return box

    def analyze(self, pixels: PixelBuffer, geometry: SearchGeometry) -> Crop:
        """Run the engine on an already-prepared RGBA buffer.

        The returned Crop is in the buffer's coordinate space.

        Raises:
            DegenerateSearchError: If no candidate crop fits the buffer.
        """
        return find_best_crop(pixels, self._config.crop, geometry)

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @staticmethod
    def _validate_image(image: np.ndarray) -> None:
        """Validate that the input image meets the API contract.

        Raises:
            TypeError: If image is not a numpy ndarray.
            ValueError: If image is empty or has wrong dimensions.
        """
        if not isinstance(image, np.ndarray):
            raise TypeError(
                f"Expected image to be a numpy ndarray, "
                f"got {type(image).__name__}. "
                f"Use cv2.imread() to obtain images."
            )

        if image.size == 0:
            raise ValueError(
                "Image is empty (zero size). "
                "Ensure the input source is providing valid images."
            )

        if image.ndim not in (2, 3):
            raise ValueError(
                f"Expected a 2- or 3-dimensional image (H, W[, C]), "
                f"got {image.ndim} dimensions with shape {image.shape}."
            )

        if image.ndim == 3 and image.shape[2] not in (1, 3, 4):
            raise ValueError(
                f"Expected 1, 3 or 4 channels, got {image.shape[2]} channels. "
                f"Input must be a GRAY, BGR or BGRA image as returned by OpenCV."
            )

        if image.dtype != np.uint8:
            raise ValueError(
                f"Expected dtype uint8, got {image.dtype}. "
                f"Convert 16-bit or float images before cropping."
            )
