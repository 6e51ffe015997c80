"""
Pixel and feature buffers for the smart-crop engine.

Responsibility:
    Hold the decoded RGBA input and the per-pixel feature maps derived
    from it. Storage is a flat, row-major numpy array; callers address
    single values through the typed ``get(x, y, channel)`` accessor and
    whole channels through ``channel()`` views.

Non-goals:
    - No decoding, resizing, or color conversion.
    - No feature computation.
"""

from dataclasses import dataclass, field

import numpy as np

from smartclip.errors import InputShapeError

# Channel layout of analysis buffers
SKIN = 0
DETAIL = 1
SATURATION = 2
BOOST = 3

CHANNELS = 4


def _check_bounds(width: int, height: int, x: int, y: int, channel: int) -> None:
    if not (0 <= x < width and 0 <= y < height):
        raise IndexError(
            f"Pixel ({x}, {y}) is outside the {width}x{height} buffer."
        )
    if not (0 <= channel < CHANNELS):
        raise IndexError(f"Channel must be in [0, {CHANNELS}), got {channel}.")


@dataclass(frozen=True)
class PixelBuffer:
    """Immutable RGBA input image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        data: Flat uint8 array of length ``width * height * 4`` holding
              R, G, B, A interleaved, row-major, top-to-bottom.
    """

    width: int
    height: int
    data: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InputShapeError(
                f"Pixel buffer dimensions must be positive, "
                f"got {self.width}x{self.height}."
            )

        data = np.asarray(self.data, dtype=np.uint8).reshape(-1)
        expected = self.width * self.height * CHANNELS
        if data.size != expected:
            raise InputShapeError(
                f"Pixel buffer holds {data.size} values, expected "
                f"{expected} for a {self.width}x{self.height} RGBA image."
            )

        data = data.copy()
        data.setflags(write=False)
        object.__setattr__(self, "data", data)

    @classmethod
    def from_array(cls, rgba: np.ndarray) -> "PixelBuffer":
        """Build a buffer from an (H, W, 4) RGBA array."""
        if rgba.ndim != 3 or rgba.shape[2] != CHANNELS:
            raise InputShapeError(
                f"Expected an (H, W, 4) RGBA array, got shape {rgba.shape}."
            )
        h, w = rgba.shape[:2]
        return cls(width=w, height=h, data=rgba)

    def get(self, x: int, y: int, channel: int) -> int:
        """Return a single channel value at (x, y)."""
        _check_bounds(self.width, self.height, x, y, channel)
        return int(self.data[(y * self.width + x) * CHANNELS + channel])

    def channel(self, channel: int) -> np.ndarray:
        """Return one channel as a new (H, W) float64 array."""
        view = self.data.reshape(self.height, self.width, CHANNELS)[:, :, channel]
        return view.astype(np.float64)


class AnalysisBuffer:
    """Per-pixel feature maps with the same dimensions as the input.

    Channels are independent scalar maps: skin (0), detail (1),
    saturation (2) and boost (3). The buffer starts zero-filled; each
    detector writes exactly one channel.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.data = np.zeros(width * height * CHANNELS, dtype=np.float64)

    def get(self, x: int, y: int, channel: int) -> float:
        """Return a single feature value at (x, y)."""
        _check_bounds(self.width, self.height, x, y, channel)
        return float(self.data[(y * self.width + x) * CHANNELS + channel])

    def channel(self, channel: int) -> np.ndarray:
        """Return a writable (H, W) view of one channel."""
        return self.data.reshape(self.height, self.width, CHANNELS)[:, :, channel]

    def write_channel(self, channel: int, values: np.ndarray) -> None:
        """Overwrite one channel with an (H, W) array."""
        if values.shape != (self.height, self.width):
            raise InputShapeError(
                f"Channel data shape {values.shape} does not match "
                f"buffer {self.height}x{self.width}."
            )
        self.channel(channel)[:, :] = values

    def as_grid(self) -> np.ndarray:
        """Return the (H, W, 4) view of the whole buffer."""
        return self.data.reshape(self.height, self.width, CHANNELS)


class ReducedBuffer(AnalysisBuffer):
    """Block-aggregated analysis buffer produced by the downsampler.

    Attributes:
        factor: Edge length of the square block each cell aggregates.
    """

    def __init__(self, width: int, height: int, factor: int) -> None:
        super().__init__(width, height)
        self.factor = factor
