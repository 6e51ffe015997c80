"""
Input handling for the smart-crop pipeline.

Responsibility:
    Abstract away image acquisition from a single image file or a
    directory of images. Provides a uniform iterator interface yielding
    (image_id, path, image) tuples.

Non-goals:
    - No cropping, drawing, or output writing.
    - No video or camera sources.

Robustness:
    - Validates the source at initialization time.
    - Logs and skips unreadable images (never crashes the pipeline).
"""

import logging
import os
from pathlib import Path
from typing import Iterator, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


def _orient_like(unchanged: np.ndarray, oriented: np.ndarray) -> np.ndarray:
    """Apply to ``unchanged`` the rotation/flip that turns it into ``oriented``.

    IMREAD_UNCHANGED ignores EXIF orientation, while IMREAD_COLOR applies
    it. The color planes of both decodes are identical up to one of the
    eight rotations and flips, so finding that transform and applying it
    to all four channels orients the alpha plane too.
    """
    for k in range(4):
        rotated = np.rot90(unchanged, k)
        for candidate in (rotated, rotated[:, ::-1]):
            if candidate.shape[:2] == oriented.shape[:2] and np.array_equal(
                candidate[:, :, :3], oriented
            ):
                return np.ascontiguousarray(candidate)

    logger.warning(
        "Could not match EXIF orientation for an image with alpha; "
        "keeping it as stored."
    )
    return unchanged


def read_image(path: str, auto_orient: bool = True) -> Optional[np.ndarray]:
    """Decode an image, keeping its alpha channel when it has one.

    Images without alpha are decoded as BGR and images with alpha as
    BGRA. EXIF orientation is applied to both unless ``auto_orient`` is
    False.

    Returns:
        The decoded image, or None if it could not be read.
    """
    flags = cv2.IMREAD_COLOR
    if not auto_orient:
        flags |= cv2.IMREAD_IGNORE_ORIENTATION

    unchanged = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if unchanged is None:
        return None

    if unchanged.ndim == 3 and unchanged.shape[2] == 4:
        if unchanged.dtype != np.uint8:
            unchanged = cv2.convertScaleAbs(unchanged, alpha=255.0 / 65535.0)
        if not auto_orient:
            return unchanged
        oriented = cv2.imread(path, flags)
        if oriented is None:
            return unchanged
        return _orient_like(unchanged, oriented)

    return cv2.imread(path, flags)


class InputHandler:
    """Uniform image iterator for single files and directories.

    The source type is auto-detected at initialization:
        - File with image extension → single image
        - Directory path → all images in directory (sorted)

    Usage:
        handler = InputHandler(source="path/to/images/")
        for image_id, path, image in handler:
            # process image

    Invalid images are logged and skipped. The iterator never raises
    on a single bad image.
    """

    def __init__(self, source: str, auto_orient: bool = True) -> None:
        """Initialize the input handler and validate the source.

        Args:
            source: Path to an image file or a directory of images.
            auto_orient: Apply EXIF orientation when decoding.

        Raises:
            FileNotFoundError: If the source does not exist.
            ValueError: If the source is not a supported image or
                        the directory holds no images.
        """
        self._auto_orient = auto_orient
        source_str = str(source).strip()

        if os.path.isfile(source_str):
            ext = Path(source_str).suffix.lower()
            if ext not in _IMAGE_EXTENSIONS:
                raise ValueError(
                    f"Unrecognized file extension: '{ext}' for source '{source_str}'. "
                    f"Supported images: {_IMAGE_EXTENSIONS}."
                )
            self._mode = "image"
            self._image_paths = [source_str]
        elif os.path.isdir(source_str):
            self._mode = "directory"
            self._image_paths = sorted(
                str(p)
                for p in Path(source_str).iterdir()
                if p.suffix.lower() in _IMAGE_EXTENSIONS
            )
            if not self._image_paths:
                raise ValueError(
                    f"No image files found in directory: '{source_str}'. "
                    f"Supported extensions: {_IMAGE_EXTENSIONS}."
                )
            logger.info("Found %d images in directory: %s", len(self._image_paths), source_str)
        else:
            raise FileNotFoundError(
                f"Input source not found: '{source_str}'. "
                f"Provide a valid image file or directory."
            )

        logger.info("InputHandler initialized: mode=%s, source=%s", self._mode, source_str)

    def __len__(self) -> int:
        return len(self._image_paths)

    def __iter__(self) -> Iterator[Tuple[int, str, np.ndarray]]:
        """Iterate over images from the configured source.

        Yields:
            Tuples of (image_id, path, image) where image_id is a 0-based
            index and image is a BGR or BGRA numpy array.
        """
        for idx, path in enumerate(self._image_paths):
            image = read_image(path, self._auto_orient)
            if image is None:
                logger.warning(
                    "Skipping unreadable image (image_id=%d): %s", idx, path
                )
                continue

            yield idx, path, image
