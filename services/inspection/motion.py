from __future__ import annotations

"""Frame-differencing motion detection.

A MotionDetector keeps exactly one previous frame. Use one instance per
capture session: two sessions sharing a detector would diff each other's
frames.
"""

import logging
from typing import Optional

import numpy as np

from services.inspection.buffer import PixelBuffer
from services.inspection.types import MotionResult


logger = logging.getLogger(__name__)


DEFAULT_MOTION_THRESHOLD = 25  # mean |dR|,|dG|,|dB| above this = motion pixel
DEFAULT_MIN_MOTION_PIXELS = 100  # absolute count, not a percentage


class MotionDetector:
    def __init__(
        self,
        threshold: float = DEFAULT_MOTION_THRESHOLD,
        min_motion_pixels: int = DEFAULT_MIN_MOTION_PIXELS,
    ) -> None:
        self._previous: Optional[np.ndarray] = None
        self.threshold = 0.0
        self.min_motion_pixels = int(min_motion_pixels)
        self.set_threshold(threshold)

    def set_threshold(self, threshold: float) -> None:
        self.threshold = float(max(0, min(255, threshold)))

    def reset(self) -> None:
        self._previous = None

    def _seed(self, frame: np.ndarray) -> MotionResult:
        self._previous = frame
        return MotionResult(
            has_motion=False,
            motion_percentage=0.0,
            motion_pixel_count=0,
            first_frame=True,
        )

    def detect_motion(self, buffer: PixelBuffer) -> MotionResult:
        current = buffer.rgb.astype(np.int16)

        if self._previous is None:
            return self._seed(current)

        if self._previous.shape != current.shape:
            logger.warning(
                "Frame size changed from %s to %s; restarting motion history",
                self._previous.shape[:2],
                current.shape[:2],
            )
            return self._seed(current)

        mean_diff = np.abs(current - self._previous).sum(axis=2) / 3.0
        moving = mean_diff > self.threshold
        motion_pixel_count = int(moving.sum())

        self._previous = current

        return MotionResult(
            has_motion=motion_pixel_count > self.min_motion_pixels,
            motion_percentage=motion_pixel_count / buffer.total_pixels * 100,
            motion_pixel_count=motion_pixel_count,
            first_frame=False,
            motion_map=np.where(moving, 255, 0).astype(np.uint8),
        )
