from __future__ import annotations

"""Defect pattern and orientation classification.

Each defect pixel is compared with the centroid of all defect pixels and
labelled horizontal-, vertical- or diagonal-leaning. A label holding more
than DOMINANT_SHARE of the pixels decides the pattern; otherwise a large
defect area reads as a network and anything else as complex.
"""

from typing import Sequence

import numpy as np

from services.inspection.types import PatternResult, Point


# A direction "leans" when its distance is more than this multiple of the other.
LEANING_FACTOR = 2.0
DOMINANT_SHARE = 0.6
# Defect area (fraction of image) above which an undirected pattern is a network.
NETWORK_AREA_FRACTION = 0.1

EMPTY_PATTERN = PatternResult(pattern_type="None", orientation="N/A", connectivity=0.0)


def analyze_pattern(defect_pixels: Sequence[Point], width: int, height: int) -> PatternResult:
    if len(defect_pixels) == 0:
        return EMPTY_PATTERN

    pts = np.asarray(defect_pixels, dtype=np.float64).reshape(-1, 2)
    mean_x = pts[:, 0].mean()
    mean_y = pts[:, 1].mean()
    dx = np.abs(pts[:, 0] - mean_x)
    dy = np.abs(pts[:, 1] - mean_y)

    horizontal = dx > dy * LEANING_FACTOR
    vertical = ~horizontal & (dy > dx * LEANING_FACTOR)
    horizontal_count = int(horizontal.sum())
    vertical_count = int(vertical.sum())
    total = len(pts)
    diagonal_count = total - horizontal_count - vertical_count

    if horizontal_count > total * DOMINANT_SHARE:
        pattern_type, orientation = "Linear", "Horizontal"
    elif vertical_count > total * DOMINANT_SHARE:
        pattern_type, orientation = "Linear", "Vertical"
    elif diagonal_count > total * DOMINANT_SHARE:
        pattern_type, orientation = "Diagonal", "Diagonal"
    elif total > width * height * NETWORK_AREA_FRACTION:
        pattern_type, orientation = "Network", "Random"
    else:
        pattern_type, orientation = "Complex", "Multi-directional"

    return PatternResult(
        pattern_type=pattern_type,
        orientation=orientation,
        connectivity=total / (width * height) * 100,
    )
