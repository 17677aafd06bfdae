from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from services.inspection.buffer import PixelBuffer


Point = tuple[int, int]


@dataclass(frozen=True)
class DefectResult:
    annotated: Optional[PixelBuffer]
    defect_pixel_count: int
    total_pixel_count: int
    defect_pixels: tuple[Point, ...]
    sensitivity: str
    threshold: int
    error: Optional[str] = None

    @property
    def defect_percentage(self) -> float:
        if self.total_pixel_count == 0:
            return 0.0
        return self.defect_pixel_count / self.total_pixel_count * 100

    def to_dict(self) -> dict[str, Any]:
        d = {
            "defect_pixel_count": int(self.defect_pixel_count),
            "total_pixel_count": int(self.total_pixel_count),
            "defect_percentage": f"{self.defect_percentage:.2f}",
            "sensitivity": self.sensitivity,
            "threshold": int(self.threshold),
            "annotated": self.annotated is not None,
        }
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass(frozen=True)
class PatternResult:
    pattern_type: str  # "None", "Linear", "Diagonal", "Network", "Complex"
    orientation: str
    connectivity: float  # percent of image area

    @property
    def is_empty(self) -> bool:
        return self.pattern_type == "None"

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern_type": self.pattern_type,
            "orientation": self.orientation,
            # The empty case reports a bare 0, everything else a 2-decimal string.
            "connectivity": 0 if self.is_empty else f"{self.connectivity:.2f}",
        }


@dataclass(frozen=True)
class WidthEstimate:
    min: float
    max: float
    avg: float
    samples: int

    def to_dict(self) -> dict[str, Any]:
        if self.samples == 0:
            return {"min": 0, "max": 0, "avg": 0}
        return {
            "min": f"{self.min:.2f}",
            "max": f"{self.max:.2f}",
            "avg": f"{self.avg:.2f}",
        }


@dataclass(frozen=True)
class SeverityGrade:
    defect_percentage: float
    coverage: str  # "Minor", "Moderate", "Severe"
    condition: str  # "Good", "Fair", "Poor", "Critical"

    def to_dict(self) -> dict[str, Any]:
        return {
            "defect_percentage": f"{self.defect_percentage:.2f}",
            "coverage": self.coverage,
            "condition": self.condition,
        }


@dataclass(frozen=True)
class MotionResult:
    has_motion: bool
    motion_percentage: float
    motion_pixel_count: int
    first_frame: bool
    motion_map: Optional[np.ndarray] = None  # (H, W) uint8, 255 = motion

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_motion": bool(self.has_motion),
            # First-frame results carry a bare 0, later frames a 2-decimal string.
            "motion_percentage": 0 if self.first_frame else f"{self.motion_percentage:.2f}",
            "motion_pixel_count": int(self.motion_pixel_count),
        }


@dataclass(frozen=True)
class BoundingBox:
    x: int
    y: int
    width: int
    height: int

    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Particle:
    size: int
    centroid: tuple[float, float]
    bounding_box: BoundingBox

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": int(self.size),
            "centroid": {"x": float(self.centroid[0]), "y": float(self.centroid[1])},
            "bounding_box": self.bounding_box.to_dict(),
        }


@dataclass(frozen=True)
class ParticleResult:
    particle_count: int
    particles: tuple[Particle, ...]
    total_area: int
    particle_density: float  # particles per 10,000 pixels

    def to_dict(self) -> dict[str, Any]:
        return {
            "particle_count": int(self.particle_count),
            "particles": [p.to_dict() for p in self.particles],
            "total_area": int(self.total_area),
            "particle_density": f"{self.particle_density:.4f}",
        }


@dataclass(frozen=True)
class FlowField:
    flow_x: np.ndarray  # (H, W) float32
    flow_y: np.ndarray
    width: int
    height: int
    block_size: int

    def magnitude(self) -> np.ndarray:
        return np.sqrt(self.flow_x.astype(np.float64) ** 2 + self.flow_y.astype(np.float64) ** 2)

    def to_dict(self) -> dict[str, Any]:
        mag = self.magnitude()
        return {
            "width": self.width,
            "height": self.height,
            "block_size": self.block_size,
            "mean_magnitude": round(float(mag.mean()), 4),
            "max_magnitude": round(float(mag.max()), 4),
        }


@dataclass(frozen=True)
class InspectionReport:
    defects: DefectResult
    pattern: PatternResult
    width: WidthEstimate
    severity: SeverityGrade
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "defects": self.defects.to_dict(),
            "pattern": self.pattern.to_dict(),
            "crack_width_mm": self.width.to_dict(),
            "severity": self.severity.to_dict(),
            "details": self.details,
        }


@dataclass(frozen=True)
class FrameReport:
    inspection: InspectionReport
    motion: MotionResult
    particles: ParticleResult
    flow: Optional[FlowField] = None

    def to_dict(self) -> dict[str, Any]:
        d = {
            "inspection": self.inspection.to_dict(),
            "motion": self.motion.to_dict(),
            "particles": self.particles.to_dict(),
        }
        if self.flow is not None:
            d["flow"] = self.flow.to_dict()
        return d
