"""
Candidate scoring.

Responsibility:
    Weight the reduced feature maps by a spatial importance function and
    collapse them into a single, area-normalized score per candidate.

The importance function favors a crop's center and its rule-of-thirds
lines, penalizes detail near its edges, and applies a constant penalty
to everything outside it. Its constants are tuning values and are kept
exactly as written.
"""

import numpy as np

from smartclip.buffers import BOOST, DETAIL, SATURATION, SKIN, ReducedBuffer
from smartclip.config import CropConfig
from smartclip.crop import Rect, ScoreBreakdown

_SQRT2 = 1.4142135623730951


def thirds(v):
    """Bump centered on the third-lines of a mirrored [0, 2] coordinate."""
    t = ((v - 1 / 3 + 1.0) % 2.0 * 0.5 - 0.5) * 16
    return np.maximum(1.0 - t * t, 0)


def importance(crop: Rect, x, y, config: CropConfig):
    """Spatial weight of the sample point(s) (x, y) for ``crop``.

    ``x`` and ``y`` may be scalars or broadcastable numpy arrays, in the
    same coordinate space as the crop.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    outside = (
        (crop.x > x)
        | (x >= crop.x + crop.width)
        | (crop.y > y)
        | (y >= crop.y + crop.height)
    )

    lx = (x - crop.x) / crop.width
    ly = (y - crop.y) / crop.height
    px = np.abs(0.5 - lx) * 2
    py = np.abs(0.5 - ly) * 2
    dx = np.maximum(px - 1.0 + config.edge_radius, 0)
    dy = np.maximum(py - 1.0 + config.edge_radius, 0)
    d = (dx * dx + dy * dy) * config.edge_weight
    s = _SQRT2 - np.sqrt(px * px + py * py)
    s = s + (np.maximum(0, s + d + 0.5) * 1.2) * (thirds(px) + thirds(py))

    return np.where(outside, config.outside_importance, s + d)


def _ordered_sum(values: np.ndarray) -> float:
    """Left-to-right sum in row-major order (numpy's sum is pairwise)."""
    flat = values.reshape(-1)
    if flat.size == 0:
        return 0.0
    return float(np.cumsum(flat)[-1])


def score(reduced: ReducedBuffer, crop: Rect, config: CropConfig) -> ScoreBreakdown:
    """Score ``crop`` against every cell of the reduced buffer.

    Cell (cx, cy) is sampled at (cx * factor, cy * factor), i.e. in the
    full-resolution space the crop is expressed in.
    """
    factor = reduced.factor
    ys, xs = np.mgrid[0:reduced.height, 0:reduced.width]
    weight = importance(crop, xs * factor, ys * factor, config)

    detail = reduced.channel(DETAIL) / 255
    skin = reduced.channel(SKIN) / 255
    saturation = reduced.channel(SATURATION) / 255
    boost = reduced.channel(BOOST) / 255

    detail_sum = _ordered_sum(detail * weight)
    skin_sum = _ordered_sum(skin * (detail + config.skin_bias) * weight)
    saturation_sum = _ordered_sum(saturation * (detail + config.saturation_bias))
    boost_sum = _ordered_sum(boost * weight)

    total = (
        detail_sum * config.detail_weight
        + skin_sum * config.skin_weight
        + saturation_sum * config.saturation_weight
        + boost_sum * config.boost_weight
    ) / (crop.width * crop.height)

    return ScoreBreakdown(
        detail=detail_sum,
        saturation=saturation_sum,
        skin=skin_sum,
        boost=boost_sum,
        total=total,
    )
