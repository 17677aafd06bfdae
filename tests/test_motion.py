"""Tests for the frame-differencing motion detector."""

import numpy as np

from services.inspection.buffer import PixelBuffer
from services.inspection.motion import MotionDetector


def _frame(value: int = 0, width: int = 20, height: int = 20) -> np.ndarray:
    return np.full((height, width, 3), value, dtype=np.uint8)


def _buf(arr: np.ndarray) -> PixelBuffer:
    return PixelBuffer.from_array(arr)


def _with_changed_pixels(count: int, delta: int = 100, width: int = 20, height: int = 20) -> PixelBuffer:
    arr = _frame(0, width, height).reshape(-1, 3)
    arr[:count] = delta
    return _buf(arr.reshape(height, width, 3))


class TestMotionDetector:

    def test_first_frame_never_reports_motion(self):
        detector = MotionDetector()
        result = detector.detect_motion(_buf(_frame(0)))

        assert result.first_frame is True
        assert result.has_motion is False
        assert result.motion_pixel_count == 0
        assert result.to_dict() == {"has_motion": False, "motion_percentage": 0, "motion_pixel_count": 0}

    def test_identical_frame(self):
        detector = MotionDetector()
        detector.detect_motion(_buf(_frame(40)))
        result = detector.detect_motion(_buf(_frame(40)))

        assert result.first_frame is False
        assert result.has_motion is False
        assert result.to_dict()["motion_percentage"] == "0.00"

    def test_threshold_is_strict(self):
        detector = MotionDetector(threshold=25, min_motion_pixels=0)
        detector.detect_motion(_buf(_frame(0)))

        at_threshold = detector.detect_motion(_buf(_frame(25)))
        assert at_threshold.motion_pixel_count == 0

        above = detector.detect_motion(_buf(_frame(51)))
        assert above.motion_pixel_count == 400
        assert above.motion_percentage == 100.0

    def test_mean_over_channels(self):
        detector = MotionDetector(threshold=25, min_motion_pixels=0)
        detector.detect_motion(_buf(_frame(0)))

        arr = _frame(0)
        arr[:, :, 0] = 78  # mean diff 26 on a single channel change
        result = detector.detect_motion(_buf(arr))
        assert result.motion_pixel_count == 400

    def test_min_motion_pixels_is_strict(self):
        detector = MotionDetector()

        detector.detect_motion(_buf(_frame(0, 40, 40)))
        result = detector.detect_motion(_with_changed_pixels(100, width=40, height=40))
        assert result.motion_pixel_count == 100
        assert result.has_motion is False

        detector.reset()
        detector.detect_motion(_buf(_frame(0, 40, 40)))
        result = detector.detect_motion(_with_changed_pixels(101, width=40, height=40))
        assert result.motion_pixel_count == 101
        assert result.has_motion is True
        assert result.to_dict()["motion_percentage"] == "6.31"

    def test_motion_map_marks_changed_pixels(self):
        detector = MotionDetector(min_motion_pixels=0)
        detector.detect_motion(_buf(_frame(0)))
        result = detector.detect_motion(_with_changed_pixels(3))

        assert result.motion_map.shape == (20, 20)
        assert result.motion_map.dtype == np.uint8
        assert list(result.motion_map[0, :4]) == [255, 255, 255, 0]
        assert int((result.motion_map == 255).sum()) == 3

    def test_set_threshold_clamps(self):
        detector = MotionDetector()
        detector.set_threshold(300)
        assert detector.threshold == 255
        detector.set_threshold(-5)
        assert detector.threshold == 0

        clamped = MotionDetector(threshold=1000)
        assert clamped.threshold == 255

    def test_reset_returns_to_first_frame(self):
        detector = MotionDetector()
        detector.detect_motion(_buf(_frame(0)))
        detector.reset()

        result = detector.detect_motion(_buf(_frame(200)))
        assert result.first_frame is True
        assert result.has_motion is False

    def test_compares_against_latest_frame_only(self):
        detector = MotionDetector(min_motion_pixels=0)
        detector.detect_motion(_buf(_frame(0)))
        detector.detect_motion(_buf(_frame(200)))
        result = detector.detect_motion(_buf(_frame(200)))

        assert result.motion_pixel_count == 0

    def test_size_change_restarts_history(self):
        detector = MotionDetector()
        detector.detect_motion(_buf(_frame(0, 20, 20)))
        result = detector.detect_motion(_buf(_frame(255, 30, 10)))

        assert result.first_frame is True
        assert result.has_motion is False

        follow_up = detector.detect_motion(_buf(_frame(255, 30, 10)))
        assert follow_up.first_frame is False
        assert follow_up.motion_pixel_count == 0

    def test_instances_are_independent(self):
        a = MotionDetector(min_motion_pixels=0)
        b = MotionDetector(min_motion_pixels=0)

        a.detect_motion(_buf(_frame(0)))
        first_b = b.detect_motion(_buf(_frame(255)))
        second_a = a.detect_motion(_buf(_frame(0)))

        assert first_b.first_frame is True
        assert second_a.motion_pixel_count == 0
