"""Tests for pattern classification, crack width estimation and severity grading."""

import numpy as np
import pytest

from services.inspection.buffer import PixelBuffer
from services.inspection.defects import detect_defects
from services.inspection.pattern import EMPTY_PATTERN, analyze_pattern
from services.inspection.severity import grade_condition, grade_coverage, grade_defects
from services.inspection.types import DefectResult
from services.inspection.width import MAX_SAMPLES, estimate_width


def _grid(n: int) -> list[tuple[int, int]]:
    return [(x, y) for y in range(n) for x in range(n)]


def _defect_result(count: int, total: int) -> DefectResult:
    return DefectResult(
        annotated=None,
        defect_pixel_count=count,
        total_pixel_count=total,
        defect_pixels=(),
        sensitivity="medium",
        threshold=100,
    )


# ---------------------------------------------------------------------------
# Pattern
# ---------------------------------------------------------------------------


class TestPatternAnalyzer:

    def test_empty_input(self):
        result = analyze_pattern([], 100, 100)
        assert result == EMPTY_PATTERN
        assert result.to_dict() == {"pattern_type": "None", "orientation": "N/A", "connectivity": 0}

    def test_horizontal_row(self):
        points = [(x, 50) for x in range(20)]
        result = analyze_pattern(points, 100, 100)

        assert result.pattern_type == "Linear"
        assert result.orientation == "Horizontal"
        assert result.to_dict()["connectivity"] == "0.20"

    def test_vertical_column(self):
        points = [(10, y) for y in range(30)]
        result = analyze_pattern(points, 100, 100)

        assert result.pattern_type == "Linear"
        assert result.orientation == "Vertical"

    def test_diagonal_line(self):
        points = [(i, i) for i in range(40)]
        result = analyze_pattern(points, 100, 100)

        assert result.pattern_type == "Diagonal"
        assert result.orientation == "Diagonal"

    def test_dense_grid_is_network(self):
        # 24 horizontal, 24 vertical, 52 diagonal: no direction dominates,
        # and 100 points cover the whole 10x10 image.
        result = analyze_pattern(_grid(10), 10, 10)

        assert result.pattern_type == "Network"
        assert result.orientation == "Random"
        assert result.to_dict()["connectivity"] == "100.00"

    def test_sparse_grid_is_complex(self):
        result = analyze_pattern(_grid(10), 1000, 1000)

        assert result.pattern_type == "Complex"
        assert result.orientation == "Multi-directional"

    def test_single_point_is_diagonal(self):
        # dx == dy == 0: neither direction leans.
        result = analyze_pattern([(5, 5)], 10, 10)
        assert result.pattern_type == "Diagonal"


# ---------------------------------------------------------------------------
# Width
# ---------------------------------------------------------------------------


class TestWidthEstimator:

    @pytest.mark.parametrize("points", [[], [(3, 3)]])
    def test_fewer_than_two_pixels(self, points):
        result = estimate_width(points)
        assert result.samples == 0
        assert result.to_dict() == {"min": 0, "max": 0, "avg": 0}

    def test_adjacent_pair_reaches_max_offset(self):
        result = estimate_width([(0, 0), (1, 0)])

        assert result.min == pytest.approx(0.9)
        assert result.max == pytest.approx(0.9)
        assert result.to_dict() == {"min": "0.90", "max": "0.90", "avg": "0.90"}

    def test_distant_pair_has_unit_width(self):
        result = estimate_width([(0, 0), (5, 0)])
        assert result.avg == pytest.approx(0.1)

    def test_rows_beyond_tolerance_are_ignored(self):
        result = estimate_width([(0, 0), (0, 2)])
        assert result.max == pytest.approx(0.1)

    def test_pixel_scale(self):
        result = estimate_width([(0, 0), (1, 0)], pixel_to_mm=0.5)
        assert result.max == pytest.approx(4.5)

    def test_only_first_samples_considered(self):
        sparse = [(10 * i, 0) for i in range(MAX_SAMPLES)]
        dense_tail = [(1000 + j, 5) for j in range(50)]
        result = estimate_width(sparse + dense_tail)

        assert result.samples == MAX_SAMPLES
        assert result.max == pytest.approx(0.1)

    def test_ordering(self):
        points = [(0, 0), (1, 0), (40, 40)]
        result = estimate_width(points)
        assert result.min <= result.avg <= result.max
        assert result.min == pytest.approx(0.1)
        assert result.max == pytest.approx(0.9)


# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------


class TestSeverityGrading:

    @pytest.mark.parametrize(
        "percentage,expected",
        [(0.0, "Minor"), (1.99, "Minor"), (2.0, "Moderate"), (4.99, "Moderate"), (5.0, "Severe"), (60.0, "Severe")],
    )
    def test_coverage(self, percentage, expected):
        assert grade_coverage(percentage) == expected

    @pytest.mark.parametrize(
        "count,expected",
        [(0, "Good"), (999, "Good"), (1000, "Fair"), (4999, "Fair"), (5000, "Poor"), (14999, "Poor"), (15000, "Critical")],
    )
    def test_condition(self, count, expected):
        assert grade_condition(count) == expected

    def test_grades_on_displayed_percentage(self):
        # 19960 of 1,000,000 pixels is 1.996%, displayed as "2.00".
        grade = grade_defects(_defect_result(19960, 1000000))
        assert grade.coverage == "Moderate"
        assert grade.to_dict()["defect_percentage"] == "2.00"

    def test_from_detector(self):
        buf = PixelBuffer.from_array(np.zeros((50, 50, 3), dtype=np.uint8))
        grade = grade_defects(detect_defects(buf))

        assert grade.coverage == "Minor"
        assert grade.condition == "Good"
