from __future__ import annotations

"""Block-matching optical flow.

The image is tiled into block_size x block_size blocks. For every block an
exhaustive search over displacements in [-search_range, search_range]^2
picks the one with the smallest sum of squared differences; all pixels of
the block share that vector. Candidate samples that fall outside the frame
are charged a fixed OUT_OF_BOUNDS_PENALTY instead of being skipped.

The search is vectorised over blocks: one pass per candidate displacement
scores every block at once. Candidates are visited dy-major, dx-minor and
only a strictly smaller error replaces the current best, so ties resolve
to the first candidate in that order.
"""

import numpy as np
from PIL import Image

from services.inspection.buffer import InvalidBufferError
from services.inspection.types import FlowField


DEFAULT_BLOCK_SIZE = 8
DEFAULT_SEARCH_RANGE = 8
OUT_OF_BOUNDS_PENALTY = 10000.0


def _block_origins(length: int, block_size: int) -> int:
    """Number of blocks along an axis (blocks start while start < length - block_size)."""
    return len(range(0, max(0, length - block_size), block_size))


def compute_block_flow(
    prev_gray: np.ndarray,
    curr_gray: np.ndarray,
    block_size: int = DEFAULT_BLOCK_SIZE,
    search_range: int = DEFAULT_SEARCH_RANGE,
) -> FlowField:
    prev = np.asarray(prev_gray, dtype=np.float64)
    curr = np.asarray(curr_gray, dtype=np.float64)
    if prev.ndim != 2 or prev.shape != curr.shape:
        raise InvalidBufferError(
            f"Flow needs two grayscale frames of equal shape, got {prev.shape} and {curr.shape}"
        )

    height, width = prev.shape
    flow_x = np.zeros((height, width), dtype=np.float32)
    flow_y = np.zeros((height, width), dtype=np.float32)

    nby = _block_origins(height, block_size)
    nbx = _block_origins(width, block_size)
    if nby == 0 or nbx == 0:
        return FlowField(flow_x=flow_x, flow_y=flow_y, width=width, height=height, block_size=block_size)

    ch, cw = nby * block_size, nbx * block_size
    r = search_range
    padded = np.full((height + 2 * r, width + 2 * r), np.nan, dtype=np.float64)
    padded[r:r + height, r:r + width] = curr
    reference = prev[:ch, :cw]

    best_error = np.full((nby, nbx), np.inf)
    best_dx = np.zeros((nby, nbx), dtype=np.int32)
    best_dy = np.zeros((nby, nbx), dtype=np.int32)

    for dy in range(-r, r + 1):
        for dx in range(-r, r + 1):
            candidate = padded[r + dy:r + dy + ch, r + dx:r + dx + cw]
            outside = np.isnan(candidate)
            sq = np.where(outside, OUT_OF_BOUNDS_PENALTY, (reference - np.nan_to_num(candidate)) ** 2)
            error = sq.reshape(nby, block_size, nbx, block_size).sum(axis=(1, 3))

            better = error < best_error
            best_error = np.where(better, error, best_error)
            best_dx = np.where(better, dx, best_dx)
            best_dy = np.where(better, dy, best_dy)

    flow_x[:ch, :cw] = np.kron(best_dx, np.ones((block_size, block_size), dtype=np.int32))
    flow_y[:ch, :cw] = np.kron(best_dy, np.ones((block_size, block_size), dtype=np.int32))

    return FlowField(flow_x=flow_x, flow_y=flow_y, width=width, height=height, block_size=block_size)


def _hsl_to_rgb(h: np.ndarray, s: float, l: np.ndarray) -> np.ndarray:
    """Vectorised HSL -> RGB. h in degrees [0, 360], s and l in percent."""
    s = s / 100.0
    l = l / 100.0
    c = (1 - np.abs(2 * l - 1)) * s
    x = c * (1 - np.abs((h / 60.0) % 2 - 1))
    m = l - c / 2
    zero = np.zeros_like(h)

    sector = np.minimum((h // 60).astype(np.int64), 5)
    r = np.choose(sector, [c, x, zero, zero, x, c])
    g = np.choose(sector, [x, c, c, x, zero, zero])
    b = np.choose(sector, [zero, zero, x, c, c, x])

    rgb = np.stack([r + m, g + m, b + m], axis=-1) * 255
    return np.floor(rgb + 0.5).astype(np.uint8)


def visualize_flow(flow: FlowField, scale: float = 1.0) -> Image.Image:
    """Colour-code a flow field: hue = direction, lightness = magnitude (capped at 50%)."""
    fx = flow.flow_x.astype(np.float64)
    fy = flow.flow_y.astype(np.float64)

    magnitude = np.sqrt(fx * fx + fy * fy)
    angle = np.arctan2(fy, fx)
    hue = (angle + np.pi) / (2 * np.pi) * 360
    lightness = np.minimum(magnitude * scale * 10, 50)

    rgb = _hsl_to_rgb(hue, 100.0, lightness)
    alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
    return Image.fromarray(np.concatenate([rgb, alpha], axis=2))
