from __future__ import annotations

"""RGBA pixel buffers shared by every inspection detector.

A PixelBuffer is the decoded image the detectors consume: an (H, W, 4)
uint8 array, row-major, origin top-left. Decoding and downscaling live here
so the detectors themselves never touch file formats.
"""

import base64
import io
from dataclasses import dataclass

import numpy as np
from PIL import Image


# Live frames and uploads are capped to this size before analysis.
MAX_ANALYSIS_WIDTH = 1200
MAX_ANALYSIS_HEIGHT = 900


class InvalidBufferError(ValueError):
    """Raised when pixel data does not describe a width x height RGBA image."""


@dataclass(frozen=True)
class PixelBuffer:
    width: int
    height: int
    data: np.ndarray  # (height, width, 4) uint8

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidBufferError(f"Invalid dimensions: {self.width}x{self.height}")
        if not isinstance(self.data, np.ndarray) or self.data.dtype != np.uint8:
            raise InvalidBufferError("Pixel data must be a uint8 numpy array")
        if self.data.shape != (self.height, self.width, 4):
            raise InvalidBufferError(
                f"Pixel data shape {self.data.shape} does not match "
                f"{self.width}x{self.height} RGBA"
            )

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @property
    def rgb(self) -> np.ndarray:
        return self.data[:, :, :3]

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelBuffer":
        """Wrap an (H, W, 3) or (H, W, 4) array. RGB input gets opaque alpha."""
        arr = np.asarray(arr)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise InvalidBufferError(f"Expected an (H, W, 3|4) array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        h, w = arr.shape[:2]
        return cls(width=w, height=h, data=np.ascontiguousarray(arr))

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        return cls.from_array(np.array(image.convert("RGBA")))

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.data)


def load_image_from_bytes(image_bytes: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(image_bytes))
    img.load()
    return img.convert("RGBA")


def load_image_from_base64(data: str) -> bytes:
    """Strict base64 decode; raises binascii.Error on non-alphabet input."""
    return base64.b64decode(data, validate=True)


def fit_dimensions(
    width: int,
    height: int,
    max_width: int = MAX_ANALYSIS_WIDTH,
    max_height: int = MAX_ANALYSIS_HEIGHT,
) -> tuple[int, int]:
    """Scale (width, height) down to fit the caps, keeping aspect ratio.

    Images already inside the caps are returned unchanged; scaled sizes are
    floored.
    """
    if width > max_width or height > max_height:
        ratio = min(max_width / width, max_height / height)
        return int(width * ratio), int(height * ratio)
    return width, height


def prepare_buffer(
    image: Image.Image,
    max_width: int = MAX_ANALYSIS_WIDTH,
    max_height: int = MAX_ANALYSIS_HEIGHT,
) -> PixelBuffer:
    """Downscale an image to the analysis cap and convert it to a PixelBuffer."""
    rgba = image.convert("RGBA")
    target = fit_dimensions(rgba.width, rgba.height, max_width, max_height)
    if target != rgba.size:
        rgba = rgba.resize(target)
    return PixelBuffer.from_image(rgba)
