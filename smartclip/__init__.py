"""
Smartclip — content-aware thumbnail cropping.

Public API:
    - Cropper: The single entry point for finding a crop.
    - CropBox: The chosen crop in source image coordinates.
    - DegenerateSearchError: Raised when no crop fits the image.

All other modules in this package are internal implementation details
and should not be imported directly by consumers.

Usage:
    from smartclip import Cropper

    cropper = Cropper()
    box = cropper.find_crop(image)
"""

from smartclip.crop import CropBox
from smartclip.cropper import Cropper
from smartclip.errors import DegenerateSearchError, InputShapeError

__all__ = ["Cropper", "CropBox", "DegenerateSearchError", "InputShapeError"]
