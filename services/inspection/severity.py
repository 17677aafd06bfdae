from __future__ import annotations

"""Severity grading from defect metrics.

Two fixed tables used by the inspection pages:
- coverage: share of the image flagged as defect (percent)
- condition: absolute number of defect pixels
"""

from services.inspection.types import DefectResult, SeverityGrade


# Coverage grading (percent of image area)
COVERAGE_MODERATE = 2.0
COVERAGE_SEVERE = 5.0

# Condition grading (defect pixel count)
CONDITION_FAIR = 1000
CONDITION_POOR = 5000
CONDITION_CRITICAL = 15000


def grade_coverage(defect_percentage: float) -> str:
    if defect_percentage < COVERAGE_MODERATE:
        return "Minor"
    elif defect_percentage < COVERAGE_SEVERE:
        return "Moderate"
    return "Severe"


def grade_condition(defect_pixel_count: int) -> str:
    if defect_pixel_count < CONDITION_FAIR:
        return "Good"
    elif defect_pixel_count < CONDITION_POOR:
        return "Fair"
    elif defect_pixel_count < CONDITION_CRITICAL:
        return "Poor"
    return "Critical"


def grade_defects(result: DefectResult) -> SeverityGrade:
    # Pages grade on the 2-decimal percentage they display.
    percentage = round(result.defect_percentage, 2)
    return SeverityGrade(
        defect_percentage=percentage,
        coverage=grade_coverage(percentage),
        condition=grade_condition(result.defect_pixel_count),
    )
