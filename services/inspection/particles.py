from __future__ import annotations

"""Particle (connected component) detection.

Pipeline:
1. 8-bit grayscale (RGB mean, truncated).
2. Sobel edge magnitude, binarized at its own fixed threshold. This is
   independent of the defect detector's sensitivity thresholds.
3. 4-connected labelling with an explicit-stack flood fill, so large
   connected regions cannot exhaust the call stack.
4. Keep components whose pixel count lies in [min_size, max_size].
"""

from dataclasses import dataclass

import numpy as np

from services.inspection.buffer import PixelBuffer
from services.inspection.edges import sobel_magnitude
from services.inspection.types import BoundingBox, Particle, ParticleResult


DEFAULT_EDGE_THRESHOLD = 30
DEFAULT_MIN_PARTICLE_SIZE = 5
DEFAULT_MAX_PARTICLE_SIZE = 200

# Density is reported per this many pixels.
DENSITY_AREA = 10000


def _grayscale_u8(buffer: PixelBuffer) -> np.ndarray:
    return (buffer.rgb.astype(np.uint16).sum(axis=2) // 3).astype(np.uint8)


def _flood_fill(binary: np.ndarray, visited: np.ndarray, start_x: int, start_y: int) -> Particle:
    h, w = binary.shape
    stack = [(start_x, start_y)]
    count = 0
    sum_x = 0
    sum_y = 0
    min_x = max_x = start_x
    min_y = max_y = start_y

    while stack:
        x, y = stack.pop()
        if x < 0 or x >= w or y < 0 or y >= h:
            continue
        if visited[y, x] or not binary[y, x]:
            continue

        visited[y, x] = True
        count += 1
        sum_x += x
        sum_y += y
        if x < min_x:
            min_x = x
        elif x > max_x:
            max_x = x
        if y < min_y:
            min_y = y
        elif y > max_y:
            max_y = y

        stack.append((x + 1, y))
        stack.append((x - 1, y))
        stack.append((x, y + 1))
        stack.append((x, y - 1))

    return Particle(
        size=count,
        centroid=(sum_x / count, sum_y / count),
        bounding_box=BoundingBox(
            x=min_x,
            y=min_y,
            width=max_x - min_x + 1,
            height=max_y - min_y + 1,
        ),
    )


def find_connected_components(binary: np.ndarray, min_size: int = 1) -> list[Particle]:
    """Label 4-connected foreground regions of a boolean mask, in raster order."""
    binary = np.asarray(binary, dtype=bool)
    visited = np.zeros(binary.shape, dtype=bool)
    width = binary.shape[1]

    particles = []
    for idx in np.flatnonzero(binary):
        y, x = divmod(int(idx), width)
        if visited[y, x]:
            continue
        particle = _flood_fill(binary, visited, x, y)
        if particle.size >= min_size:
            particles.append(particle)
    return particles


@dataclass
class ParticleDetector:
    edge_threshold: float = DEFAULT_EDGE_THRESHOLD
    min_particle_size: int = DEFAULT_MIN_PARTICLE_SIZE
    max_particle_size: int = DEFAULT_MAX_PARTICLE_SIZE

    def edge_mask(self, buffer: PixelBuffer) -> np.ndarray:
        magnitude = sobel_magnitude(_grayscale_u8(buffer))
        return magnitude > self.edge_threshold

    def detect_particles(self, buffer: PixelBuffer) -> ParticleResult:
        components = find_connected_components(self.edge_mask(buffer), min_size=self.min_particle_size)
        valid = tuple(
            p for p in components
            if self.min_particle_size <= p.size <= self.max_particle_size
        )

        return ParticleResult(
            particle_count=len(valid),
            particles=valid,
            total_area=sum(p.size for p in valid),
            particle_density=len(valid) / buffer.total_pixels * DENSITY_AREA,
        )
