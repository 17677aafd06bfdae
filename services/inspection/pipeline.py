from __future__ import annotations

"""Inspection orchestration.

inspect_image() runs the still-image path used by every inspection page:
defect detection, pattern, width and severity. InspectionSession adds the
live-capture path on top, owning the stateful motion history for exactly
one capture session.
"""

import logging
from typing import Optional

import numpy as np

from domain.types import InspectionSummary
from services.inspection.buffer import PixelBuffer
from services.inspection.defects import DEFAULT_SENSITIVITY, detect_defects
from services.inspection.edges import grayscale
from services.inspection.flow import compute_block_flow
from services.inspection.motion import MotionDetector
from services.inspection.particles import ParticleDetector
from services.inspection.pattern import analyze_pattern
from services.inspection.severity import grade_defects
from services.inspection.types import FlowField, FrameReport, InspectionReport, MotionResult
from services.inspection.width import DEFAULT_PIXEL_TO_MM, estimate_width


logger = logging.getLogger(__name__)


def inspect_image(
    buffer: PixelBuffer,
    sensitivity: str = DEFAULT_SENSITIVITY,
    pixel_to_mm: float = DEFAULT_PIXEL_TO_MM,
) -> InspectionReport:
    defects = detect_defects(buffer, sensitivity)
    pattern = analyze_pattern(defects.defect_pixels, buffer.width, buffer.height)
    width = estimate_width(defects.defect_pixels, pixel_to_mm)
    severity = grade_defects(defects)

    logger.debug(
        "Inspected %dx%d buffer: %d defect pixels (%s), pattern=%s",
        buffer.width,
        buffer.height,
        defects.defect_pixel_count,
        defects.sensitivity,
        pattern.pattern_type,
    )

    details = {
        "dimensions": {"width": buffer.width, "height": buffer.height},
        "pixel_to_mm": pixel_to_mm,
    }

    return InspectionReport(
        defects=defects,
        pattern=pattern,
        width=width,
        severity=severity,
        details=details,
    )


def build_summary(
    report: InspectionReport,
    inspection_type: str,
    motion: Optional[MotionResult] = None,
) -> InspectionSummary:
    """Condense a report into the fields a host keeps in its history log."""
    return InspectionSummary(
        inspection_type=inspection_type,
        coverage=report.severity.coverage,
        condition=report.severity.condition,
        defect_percentage=f"{report.severity.defect_percentage:.2f}",
        pattern_type=report.pattern.pattern_type,
        has_motion=None if motion is None else bool(motion.has_motion),
    )


class InspectionSession:
    """Per-capture-session state: motion history and the previous flow frame.

    Never share a session between two video streams.
    """

    def __init__(
        self,
        motion_detector: Optional[MotionDetector] = None,
        particle_detector: Optional[ParticleDetector] = None,
        with_flow: bool = False,
    ) -> None:
        self.motion_detector = motion_detector or MotionDetector()
        self.particle_detector = particle_detector or ParticleDetector()
        self.with_flow = with_flow
        self._previous_gray: Optional[np.ndarray] = None
        self.last_flow: Optional[FlowField] = None

    def reset(self) -> None:
        self.motion_detector.reset()
        self._previous_gray = None
        self.last_flow = None

    def _update_flow(self, buffer: PixelBuffer) -> None:
        gray = grayscale(buffer)
        if self._previous_gray is not None and self._previous_gray.shape == gray.shape:
            self.last_flow = compute_block_flow(self._previous_gray, gray)
        else:
            self.last_flow = None
        self._previous_gray = gray

    def process_frame(
        self,
        buffer: PixelBuffer,
        sensitivity: str = DEFAULT_SENSITIVITY,
        pixel_to_mm: float = DEFAULT_PIXEL_TO_MM,
    ) -> FrameReport:
        motion = self.motion_detector.detect_motion(buffer)
        particles = self.particle_detector.detect_particles(buffer)
        if self.with_flow:
            self._update_flow(buffer)
        else:
            self._previous_gray = None
            self.last_flow = None
        inspection = inspect_image(buffer, sensitivity, pixel_to_mm)
        return FrameReport(
            inspection=inspection,
            motion=motion,
            particles=particles,
            flow=self.last_flow,
        )
