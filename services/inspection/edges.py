from __future__ import annotations

"""Sobel edge magnitude.

Grayscale is the unweighted RGB mean. The 3x3 Sobel kernels are applied to
interior pixels only: the outer 1-pixel border is never computed and stays
0, so border pixels can never be flagged by anything built on this map.
"""

import numpy as np

try:
    import cv2
except ImportError as e:
    raise ImportError(
        "opencv-python is required for edge detection. "
        "Install with: pip install opencv-python"
    ) from e

from services.inspection.buffer import PixelBuffer


SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.float64)


def grayscale(buffer: PixelBuffer) -> np.ndarray:
    """(R + G + B) / 3 as float64, shape (H, W)."""
    return buffer.rgb.astype(np.float64).sum(axis=2) / 3.0


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """Unclamped sqrt(gx^2 + gy^2) over the interior; border is 0."""
    gray = np.asarray(gray, dtype=np.float64)
    h, w = gray.shape
    magnitude = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return magnitude

    # cv2.Sobel correlates with exactly SOBEL_X / SOBEL_Y for ksize=3.
    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
    interior = np.sqrt(gx * gx + gy * gy)
    magnitude[1:h - 1, 1:w - 1] = interior[1:h - 1, 1:w - 1]
    return magnitude


def compute_edge_magnitude(buffer: PixelBuffer) -> np.ndarray:
    """Edge map of a buffer, stored the way an 8-bit clamped canvas stores it.

    Values are rounded half-to-even and clipped to [0, 255].
    """
    magnitude = sobel_magnitude(grayscale(buffer))
    return np.clip(np.rint(magnitude), 0, 255).astype(np.uint8)
