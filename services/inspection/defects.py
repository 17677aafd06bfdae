from __future__ import annotations

"""Edge-based defect (crack) detection.

A pixel is a defect pixel when it is both high-contrast and dark:

    edge_magnitude > threshold AND (R + G + B) / 3 < DARK_BRIGHTNESS_LIMIT

The sensitivity names map to edge thresholds where a *higher* threshold is
used for "high", so "low" flags the most pixels.

All thresholds are fixed constants for determinism and explainability.
"""

import logging

import numpy as np

from services.inspection.buffer import InvalidBufferError, PixelBuffer
from services.inspection.edges import compute_edge_magnitude, grayscale
from services.inspection.types import DefectResult


logger = logging.getLogger(__name__)


SENSITIVITY_THRESHOLDS = {
    "low": 60,
    "medium": 100,
    "high": 140,
}
DEFAULT_SENSITIVITY = "medium"

# Only dark pixels can be cracks.
DARK_BRIGHTNESS_LIMIT = 150

HIGHLIGHT_RGBA = (220, 38, 38, 180)

ANNOTATION_FAILED_MESSAGE = "Failed to create output image"


def resolve_threshold(sensitivity: str) -> tuple[str, int]:
    """Map a sensitivity name to its edge threshold, falling back to medium."""
    if sensitivity not in SENSITIVITY_THRESHOLDS:
        logger.debug("Unknown sensitivity %r, using %s", sensitivity, DEFAULT_SENSITIVITY)
        sensitivity = DEFAULT_SENSITIVITY
    return sensitivity, SENSITIVITY_THRESHOLDS[sensitivity]


def _annotate(buffer: PixelBuffer, mask: np.ndarray) -> PixelBuffer:
    out = buffer.data.copy()
    out[mask] = HIGHLIGHT_RGBA
    return PixelBuffer(width=buffer.width, height=buffer.height, data=out)


def detect_defects(buffer: PixelBuffer, sensitivity: str = DEFAULT_SENSITIVITY) -> DefectResult:
    """Flag dark, high-contrast pixels and paint them onto a copy of the buffer.

    Args:
        buffer: RGBA buffer (not modified)
        sensitivity: "low", "medium" or "high"

    Returns:
        DefectResult. If the annotated copy cannot be built, ``annotated`` is
        None and ``error`` holds a message; the counts are still filled in.
    """
    sensitivity, threshold = resolve_threshold(sensitivity)

    edges = compute_edge_magnitude(buffer)
    brightness = grayscale(buffer)
    mask = (edges > threshold) & (brightness < DARK_BRIGHTNESS_LIMIT)

    # np.nonzero walks the mask row by row, giving raster order.
    ys, xs = np.nonzero(mask)
    defect_pixels = tuple((int(x), int(y)) for y, x in zip(ys, xs))

    annotated = None
    error = None
    try:
        annotated = _annotate(buffer, mask)
    except (InvalidBufferError, ValueError, MemoryError):
        logger.exception("Annotated buffer creation failed (%dx%d)", buffer.width, buffer.height)
        error = ANNOTATION_FAILED_MESSAGE

    return DefectResult(
        annotated=annotated,
        defect_pixel_count=len(defect_pixels),
        total_pixel_count=buffer.total_pixels,
        defect_pixels=defect_pixels,
        sensitivity=sensitivity,
        threshold=threshold,
        error=error,
    )
