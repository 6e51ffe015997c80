"""
Crop data transfer objects.

This module defines the result types of the crop search: the score
breakdown, the winning Crop in analysis coordinates, and the CropBox
mapped back onto the source image. They are intentionally minimal:
frozen, serializable containers with no behavior beyond data access.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation methods (that belongs in postprocessor).
"""

from dataclasses import dataclass
from typing import NamedTuple


class Rect(NamedTuple):
    """An unscored candidate rectangle in analysis space."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Per-feature contributions to a candidate's score.

    Attributes:
        detail: Importance-weighted edge/detail sum.
        saturation: Detail-biased saturation sum (not importance-weighted).
        skin: Importance-weighted, detail-biased skin sum.
        boost: Importance-weighted boost sum.
        total: Weighted sum of the above divided by the crop area.
    """

    detail: float
    saturation: float
    skin: float
    boost: float
    total: float

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "detail": self.detail,
            "saturation": self.saturation,
            "skin": self.skin,
            "boost": self.boost,
            "total": self.total,
        }


@dataclass(frozen=True, slots=True)
class Crop:
    """A scored candidate rectangle in analysis (possibly prescaled) space.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Rectangle width (crop width times scale).
        height: Rectangle height (crop height times scale).
        scale: Scale the candidate was generated at.
        score: Score breakdown for this rectangle.
    """

    x: float
    y: float
    width: float
    height: float
    scale: float
    score: ScoreBreakdown


@dataclass(frozen=True, slots=True)
class CropBox:
    """The winning crop mapped onto the source image.

    Attributes:
        x: Left edge (absolute source pixels).
        y: Top edge (absolute source pixels).
        width: Width in source pixels.
        height: Height in source pixels.
        score: Score breakdown of the crop that produced this box.

    The box always lies inside the source image.
    """

    x: int
    y: int
    width: int
    height: int
    score: ScoreBreakdown

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "score": round(self.score.total, 6),
        }

    @property
    def x2(self) -> int:
        """Right edge (exclusive) in pixels."""
        return self.x + self.width

    @property
    def y2(self) -> int:
        """Bottom edge (exclusive) in pixels."""
        return self.y + self.height
