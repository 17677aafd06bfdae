from __future__ import annotations

"""Crack width estimation.

A coarse proxy: for a sample of defect pixels, grow a search window
sideways one pixel at a time and stop at the first offset where no other
defect pixel lies within the window.

The sampled pixel never counts as its own neighbour, so an isolated sample
reads 1 px; a self-matching search would report 9 px for every sample.
"""

from typing import Sequence

import numpy as np

from services.inspection.types import Point, WidthEstimate


MAX_SAMPLES = 100
MAX_OFFSET = 9
ROW_TOLERANCE = 1
DEFAULT_PIXEL_TO_MM = 0.1


def _local_width(xs: np.ndarray, ys: np.ndarray, index: int) -> int:
    x, y = xs[index], ys[index]
    others = np.ones(len(xs), dtype=bool)
    others[index] = False
    near_row = others & (np.abs(ys - y) <= ROW_TOLERANCE)
    if not near_row.any():
        return 1
    nearest_dx = int(np.abs(xs[near_row] - x).min())

    width = 1
    for offset in range(1, MAX_OFFSET + 1):
        if nearest_dx <= offset:
            width = offset
        else:
            break
    return width


def estimate_width(defect_pixels: Sequence[Point], pixel_to_mm: float = DEFAULT_PIXEL_TO_MM) -> WidthEstimate:
    """Estimate min/max/avg crack width (mm) from the first MAX_SAMPLES defect pixels."""
    if len(defect_pixels) < 2:
        return WidthEstimate(min=0.0, max=0.0, avg=0.0, samples=0)

    pts = np.asarray(defect_pixels, dtype=np.int64).reshape(-1, 2)
    xs, ys = pts[:, 0], pts[:, 1]

    sample_count = min(len(pts), MAX_SAMPLES)
    widths = [_local_width(xs, ys, i) * pixel_to_mm for i in range(sample_count)]

    return WidthEstimate(
        min=float(min(widths)),
        max=float(max(widths)),
        avg=float(sum(widths) / len(widths)),
        samples=sample_count,
    )
