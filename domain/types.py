"""
Railscan Core Domain Types

Shared vocabulary between the inspection services and the API layer.
All types are JSON-serialisable and designed for Lambda-style responses.

IMPORTANT: Outputs are heuristic screening signals for a human inspector.
They do not certify track, rolling stock or structures as safe.
"""

from dataclasses import dataclass, asdict
from typing import Optional
from enum import Enum


class Sensitivity(str, Enum):
    """
    Named defect-detection levels.

    Each maps to an edge-magnitude threshold that increases from LOW to
    HIGH, so LOW flags the most pixels.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(s.value for s in cls)


@dataclass(frozen=True)
class InspectionSummary:
    """
    The few fields a host records per analysis (e.g. in a recent-history log).

    The inspection services never read or write that history themselves.
    """

    inspection_type: str
    """Which inspection produced this (e.g. 'track', 'crack', 'frame')."""

    coverage: str
    """Coverage grade: 'Minor', 'Moderate' or 'Severe'."""

    condition: str
    """Condition grade: 'Good', 'Fair', 'Poor' or 'Critical'."""

    defect_percentage: str
    """Defect share of the image, 2-decimal string."""

    pattern_type: str
    """Defect pattern: 'None', 'Linear', 'Diagonal', 'Network' or 'Complex'."""

    has_motion: Optional[bool] = None
    """Live frames only: whether the motion detector fired."""

    def to_dict(self) -> dict:
        """Convert to JSON-serialisable dictionary."""
        d = asdict(self)
        if self.has_motion is None:
            d.pop("has_motion")
        return d
