"""
Tests for geometry derivation and the exhaustive crop search.
"""

import numpy as np
import pytest

from smartclip.buffers import DETAIL, SATURATION, PixelBuffer, ReducedBuffer
from smartclip.config import CropConfig
from smartclip.crop import Rect, ScoreBreakdown
from smartclip.downsample import downsample
from smartclip.errors import DegenerateSearchError
from smartclip.features import analyze
from smartclip.scoring import score
from smartclip.search import SearchGeometry, derive_geometry, find_best_crop, search


def test_derive_geometry_fits_target_aspect():
    geometry = derive_geometry(420, 210, CropConfig())

    assert geometry.crop_width == 210
    assert geometry.crop_height == 210
    assert geometry.min_scale == 1.0
    assert geometry.max_scale == 1.0
    assert geometry.prescale == 1.0


def test_derive_geometry_applies_prescale():
    geometry = derive_geometry(420, 210, CropConfig(), prescale=0.5)

    assert geometry.crop_width == 105
    assert geometry.crop_height == 105
    assert geometry.prescale == 0.5


def test_derive_geometry_min_scale():
    config = CropConfig(min_scale=0.5, max_scale=1.0)

    # Large image: configured min_scale is kept
    assert derive_geometry(420, 420, config).min_scale == 0.5

    # Image at target size: 1 / scale = 1.0 wins
    assert derive_geometry(210, 210, config).min_scale == 1.0

    # Image smaller than target: capped at max_scale
    assert derive_geometry(105, 105, config).min_scale == 1.0


def _record_candidates(monkeypatch):
    """Replace the scorer with one that records every candidate it sees."""
    seen = []

    def fake_score(reduced, crop, config):
        seen.append(crop)
        return ScoreBreakdown(0.0, 0.0, 0.0, 0.0, 0.0)

    monkeypatch.setattr("smartclip.search.score", fake_score)
    return seen


def test_candidates_stay_inside_image(monkeypatch):
    seen = _record_candidates(monkeypatch)
    config = CropConfig(min_scale=0.5, scale_step=0.1, step=8)
    geometry = SearchGeometry(crop_width=30, crop_height=20, min_scale=0.5, max_scale=1.0)

    search(ReducedBuffer(8, 6, factor=8), geometry, config, 64, 48)

    assert seen
    for rect in seen:
        assert rect.x >= 0 and rect.y >= 0
        assert rect.x + rect.width <= 64
        assert rect.y + rect.height <= 48


def test_candidate_order_is_scale_then_y_then_x(monkeypatch):
    seen = _record_candidates(monkeypatch)
    config = CropConfig(min_scale=0.5, scale_step=0.25, step=8)
    geometry = SearchGeometry(crop_width=16, crop_height=16, min_scale=0.5, max_scale=1.0)

    search(ReducedBuffer(4, 4, factor=8), geometry, config, 32, 32)

    keys = [(-rect.width, rect.y, rect.x) for rect in seen]
    assert keys == sorted(keys)
    assert {rect.width for rect in seen} == {16.0, 12.0, 8.0}


def test_scale_steps_accumulate_in_floating_point(monkeypatch):
    seen = _record_candidates(monkeypatch)
    config = CropConfig(min_scale=0.5, scale_step=0.1, step=64)
    geometry = SearchGeometry(crop_width=10, crop_height=10, min_scale=0.5, max_scale=1.0)

    search(ReducedBuffer(1, 1, factor=8), geometry, config, 10, 10)

    # 1.0 minus 0.1 five times lands just above 0.5, so six scales run.
    scales = [rect.width / 10 for rect in seen]
    assert len(scales) == 6
    assert scales[0] == 1.0
    assert scales[-1] == pytest.approx(0.5)
    assert scales[-1] >= 0.5


def test_ties_keep_first_candidate():
    """All-zero features give every candidate the same score."""
    config = CropConfig(min_scale=0.5, scale_step=0.25)
    geometry = SearchGeometry(crop_width=16, crop_height=16, min_scale=0.5, max_scale=1.0)

    best = search(ReducedBuffer(4, 4, factor=8), geometry, config, 32, 32)

    assert (best.x, best.y) == (0, 0)
    assert best.scale == 1.0
    assert best.width == 16.0
    assert best.score.total == 0.0


def test_tie_at_smaller_scale_keeps_smallest_y_then_x():
    """Saturation is position independent, so the smallest scale wins at its first origin."""
    config = CropConfig(min_scale=0.5, scale_step=0.25)
    geometry = SearchGeometry(crop_width=16, crop_height=16, min_scale=0.5, max_scale=1.0)
    reduced = ReducedBuffer(4, 4, factor=8)
    reduced.channel(SATURATION)[:, :] = 255.0

    best = search(reduced, geometry, config, 32, 32)

    assert best.scale == 0.5
    assert best.width == 8.0
    assert (best.x, best.y) == (0, 0)


def test_search_moves_toward_detail():
    config = CropConfig()
    geometry = SearchGeometry(crop_width=32, crop_height=32, min_scale=1.0, max_scale=1.0)
    reduced = ReducedBuffer(8, 4, factor=8)
    reduced.channel(DETAIL)[2, 6] = 255.0  # sampled at (48, 16)

    best = search(reduced, geometry, config, 64, 32)

    assert (best.x, best.y) == (32, 0)
    assert best.score.total > 0


def test_degenerate_search_fails_closed():
    config = CropConfig(min_scale=1.0, max_scale=1.0)
    geometry = SearchGeometry(crop_width=64, crop_height=64, min_scale=1.0, max_scale=1.0)

    with pytest.raises(DegenerateSearchError, match="64x64"):
        search(ReducedBuffer(4, 4, factor=8), geometry, config, 32, 32)


def test_empty_crop_size_is_degenerate():
    geometry = SearchGeometry(crop_width=0, crop_height=10, min_scale=1.0, max_scale=1.0)

    with pytest.raises(DegenerateSearchError):
        search(ReducedBuffer(4, 4, factor=8), geometry, CropConfig(), 32, 32)


def _uniform_gray(width, height, value=128):
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[:, :, :3] = value
    rgba[:, :, 3] = 255
    return PixelBuffer.from_array(rgba)


def test_uniform_image_keeps_first_interior_candidate():
    """Border luma makes edge cells costly; every interior cell ties.

    An 8x8 crop covers one sample point, so all interior positions score
    the same and the first one in scan order wins, not the center.
    """
    config = CropConfig()
    geometry = SearchGeometry(crop_width=8, crop_height=8, min_scale=1.0, max_scale=1.0)
    pixels = _uniform_gray(64, 64)

    best = find_best_crop(pixels, config, geometry)

    assert (best.x, best.y) == (8, 8)
    assert (best.width, best.height) == (8.0, 8.0)

    reduced = downsample(analyze(pixels, config), config.score_down_sample)
    for x, y in [(32, 32), (48, 8), (8, 48)]:
        assert score(reduced, Rect(x, y, 8.0, 8.0), config).total == best.score.total
    for x, y in [(0, 0), (56, 8), (8, 56)]:
        assert score(reduced, Rect(x, y, 8.0, 8.0), config).total < best.score.total
