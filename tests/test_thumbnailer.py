"""
Tests for thumbnail rendering and format selection.
"""

import cv2
import numpy as np

from smartclip.crop import CropBox, ScoreBreakdown
from smartclip.thumbnailer import (
    choose_extension,
    encode_params,
    extent,
    fit_within,
    is_opaque,
    prepare_for_encoding,
    render_thumbnail,
)

_SCORE = ScoreBreakdown(0.0, 0.0, 0.0, 0.0, 0.0)


def test_small_crop_is_padded_not_enlarged():
    image = np.full((50, 100, 3), 200, dtype=np.uint8)
    box = CropBox(x=0, y=0, width=100, height=50, score=_SCORE)

    thumb = render_thumbnail(image, box, 210, 210, (34, 34, 34))

    assert thumb.shape == (210, 210, 3)
    assert tuple(thumb[0, 0]) == (34, 34, 34)
    assert tuple(thumb[105, 105]) == (200, 200, 200)
    # Content occupies exactly the crop's 100x50 area
    assert np.count_nonzero(np.all(thumb == 200, axis=2)) == 100 * 50


def test_large_crop_is_shrunk_to_fit():
    image = np.full((500, 500, 3), 10, dtype=np.uint8)
    box = CropBox(x=40, y=40, width=420, height=420, score=_SCORE)

    thumb = render_thumbnail(image, box, 210, 210, (0, 0, 255))

    assert thumb.shape == (210, 210, 3)
    assert np.all(thumb == 10)


def test_fit_within_preserves_aspect():
    image = np.zeros((100, 400, 3), dtype=np.uint8)

    fitted = fit_within(image, 200, 200)

    assert fitted.shape[:2] == (50, 200)


def test_extent_on_bgra_is_opaque():
    image = np.zeros((2, 2, 4), dtype=np.uint8)

    canvas = extent(image, 4, 4, (1, 2, 3))

    assert tuple(canvas[0, 0]) == (1, 2, 3, 255)
    assert tuple(canvas[1, 1]) == (0, 0, 0, 0)


def test_format_selection():
    bgr = np.zeros((2, 2, 3), dtype=np.uint8)
    opaque = np.full((2, 2, 4), 255, dtype=np.uint8)
    transparent = opaque.copy()
    transparent[0, 0, 3] = 0

    assert is_opaque(bgr)
    assert is_opaque(opaque)
    assert not is_opaque(transparent)

    assert choose_extension(bgr, "a.png", optimize=True) == ".jpg"
    assert choose_extension(transparent, "a.jpg", optimize=True) == ".png"
    assert choose_extension(transparent, "a.WEBP", optimize=False) == ".webp"


def test_encode_params():
    jpeg = encode_params(".jpg", optimize=True, jpeg_quality=60)
    assert jpeg[:2] == [cv2.IMWRITE_JPEG_QUALITY, 60]
    assert cv2.IMWRITE_JPEG_PROGRESSIVE in jpeg

    assert encode_params(".png", optimize=True, jpeg_quality=60) == [cv2.IMWRITE_PNG_COMPRESSION, 9]
    assert encode_params(".jpg", optimize=False, jpeg_quality=60) == []


def test_prepare_for_encoding_drops_alpha_for_jpeg():
    bgra = np.zeros((2, 2, 4), dtype=np.uint8)

    assert prepare_for_encoding(bgra, ".jpg").shape == (2, 2, 3)
    assert prepare_for_encoding(bgra, ".png").shape == (2, 2, 4)


def test_draw_crop_returns_annotated_bgr_copy():
    from smartclip.config import VisualizationConfig
    from smartclip.visualizer import draw_crop

    image = np.zeros((40, 60, 4), dtype=np.uint8)
    box = CropBox(x=10, y=5, width=30, height=20, score=_SCORE)

    annotated = draw_crop(image, box, VisualizationConfig(show_score=False))

    assert annotated.shape == (40, 60, 3)
    assert tuple(annotated[5, 20]) == (0, 255, 0)
    assert tuple(annotated[15, 25]) == (0, 0, 0)
    assert not image.any()
