"""Tests for particle detection and connected component labelling."""

import numpy as np
import pytest

from services.inspection.buffer import PixelBuffer
from services.inspection.particles import ParticleDetector, find_connected_components


def _white(width: int = 100, height: int = 100) -> np.ndarray:
    return np.full((height, width, 3), 255, dtype=np.uint8)


class TestConnectedComponents:

    def test_empty_mask(self):
        assert find_connected_components(np.zeros((5, 5), dtype=bool)) == []

    def test_four_connectivity(self):
        mask = np.zeros((5, 5), dtype=bool)
        mask[0, 0] = True
        mask[1, 1] = True  # diagonal neighbour only: separate component

        particles = find_connected_components(mask)
        assert [p.size for p in particles] == [1, 1]

    def test_raster_order_and_geometry(self):
        mask = np.zeros((10, 10), dtype=bool)
        mask[6:8, 1:4] = True
        mask[1, 5:9] = True

        first, second = find_connected_components(mask)

        assert first.size == 4
        assert first.bounding_box.to_dict() == {"x": 5, "y": 1, "width": 4, "height": 1}
        assert first.centroid == (6.5, 1.0)

        assert second.size == 6
        assert second.bounding_box.to_dict() == {"x": 1, "y": 6, "width": 3, "height": 2}
        assert second.centroid == (2.0, 6.5)

    def test_large_region_does_not_recurse(self):
        mask = np.ones((400, 400), dtype=bool)
        (particle,) = find_connected_components(mask)
        assert particle.size == 160000

    def test_min_size(self):
        mask = np.zeros((5, 5), dtype=bool)
        mask[0, 0] = True
        mask[3, 1:4] = True
        particles = find_connected_components(mask, min_size=2)
        assert [p.size for p in particles] == [3]


class TestParticleDetector:

    def test_uniform_image_has_no_particles(self):
        result = ParticleDetector().detect_particles(PixelBuffer.from_array(_white()))

        assert result.particle_count == 0
        assert result.total_area == 0
        assert result.to_dict()["particle_density"] == "0.0000"

    def test_dark_block_outline(self):
        arr = _white()
        arr[40:50, 40:50] = 0
        result = ParticleDetector().detect_particles(PixelBuffer.from_array(arr))

        assert result.particle_count == 1
        (particle,) = result.particles
        # 12x12 edge ring around the block minus its flat 8x8 interior.
        assert particle.size == 80
        assert particle.bounding_box.to_dict() == {"x": 39, "y": 39, "width": 12, "height": 12}
        assert particle.centroid == pytest.approx((44.5, 44.5))
        assert result.total_area == 80
        assert result.to_dict()["particle_density"] == "1.0000"

    def test_single_dark_pixel(self):
        arr = _white()
        arr[20, 30] = 0
        result = ParticleDetector().detect_particles(PixelBuffer.from_array(arr))

        assert result.particle_count == 1
        assert result.particles[0].size == 8
        assert result.particles[0].centroid == pytest.approx((30.0, 20.0))

    def test_oversized_components_are_dropped(self):
        arr = _white()
        arr[20:80, 20:80] = 0
        result = ParticleDetector().detect_particles(PixelBuffer.from_array(arr))

        assert result.particle_count == 0
        assert result.particles == ()

    def test_size_bounds_are_configurable(self):
        arr = _white()
        arr[20:80, 20:80] = 0
        detector = ParticleDetector(max_particle_size=1000)
        result = detector.detect_particles(PixelBuffer.from_array(arr))

        assert result.particle_count == 1
        assert result.particles[0].size == 480

    def test_edge_threshold_uses_truncated_gray(self):
        # A 7-level step yields magnitude 28, under the default threshold of 30.
        arr = np.full((20, 20, 3), 100, dtype=np.uint8)
        arr[:, 10:] = 107
        detector = ParticleDetector()
        assert not detector.edge_mask(PixelBuffer.from_array(arr)).any()

        # 100, 100, 101 truncates to 100: still no edge.
        arr = np.full((20, 20, 3), 100, dtype=np.uint8)
        arr[:, 10:] = (100, 100, 101)
        assert not detector.edge_mask(PixelBuffer.from_array(arr)).any()

    def test_to_dict(self):
        arr = _white()
        arr[20, 30] = 0
        d = ParticleDetector().detect_particles(PixelBuffer.from_array(arr)).to_dict()

        assert d["particle_count"] == 1
        assert d["total_area"] == 8
        assert d["particles"][0]["centroid"] == {"x": 30.0, "y": 20.0}
        assert d["particles"][0]["bounding_box"] == {"x": 29, "y": 19, "width": 3, "height": 3}
