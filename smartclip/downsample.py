"""
Block reduction of an AnalysisBuffer.

Each output cell aggregates a factor x factor block. Skin and detail
blend the block mean with the block maximum so a small, strong signal
survives the reduction; saturation and boost use the mean only.
Remainder pixels on the right and bottom edges are discarded.
"""

import numpy as np

from smartclip.buffers import BOOST, DETAIL, SATURATION, SKIN, AnalysisBuffer, ReducedBuffer


def downsample(analysis: AnalysisBuffer, factor: int) -> ReducedBuffer:
    """Reduce ``analysis`` by an integer ``factor``.

    Returns:
        A ReducedBuffer of ``floor(w / factor) x floor(h / factor)`` cells.

    Raises:
        ValueError: If factor is smaller than 1.
    """
    if factor < 1:
        raise ValueError(f"Downsample factor must be >= 1, got {factor}.")

    width = analysis.width // factor
    height = analysis.height // factor
    reduced = ReducedBuffer(width, height, factor)
    if width == 0 or height == 0:
        return reduced

    grid = analysis.as_grid()[: height * factor, : width * factor, :]
    blocks = grid.reshape(height, factor, width, factor, 4)

    sums = np.zeros((height, width, 4), dtype=np.float64)
    # Maxima start at 0, so negative-only blocks report a maximum of 0.
    max_skin = np.zeros((height, width), dtype=np.float64)
    max_detail = np.zeros((height, width), dtype=np.float64)

    # Row-major walk over the block keeps the summation order per cell.
    for v in range(factor):
        for u in range(factor):
            cell = blocks[:, v, :, u, :]
            sums += cell
            max_skin = np.maximum(max_skin, cell[:, :, SKIN])
            max_detail = np.maximum(max_detail, cell[:, :, DETAIL])

    inv_area = 1 / (factor * factor)
    reduced.write_channel(SKIN, sums[:, :, SKIN] * inv_area * 0.5 + max_skin * 0.5)
    reduced.write_channel(DETAIL, sums[:, :, DETAIL] * inv_area * 0.7 + max_detail * 0.3)
    reduced.write_channel(SATURATION, sums[:, :, SATURATION] * inv_area)
    reduced.write_channel(BOOST, sums[:, :, BOOST] * inv_area)

    return reduced
