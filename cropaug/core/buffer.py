"""
Pixel buffer and rectangle value types.

A PixelBuffer stores packed 8-bit RGBA samples in a flat, read-only numpy
array. Transforms never write into an existing buffer; they allocate a new
one, so the same buffer can be shared between worker threads and processes.
"""

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .errors import InvalidBuffer

CHANNELS = 4


class ColorSpace(str, Enum):
    SRGB = "srgb"
    DISPLAY_P3 = "display-p3"


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    Image as width, height and packed RGBA samples.

    The sample count is checked lazily by as_array()/validate() so that a
    malformed buffer can still be constructed and rejected by the stage that
    receives it.
    """

    width: int
    height: int
    samples: np.ndarray
    color_space: ColorSpace = ColorSpace.SRGB

    def __post_init__(self):
        samples = np.asarray(self.samples, dtype=np.uint8).reshape(-1).view()
        samples.flags.writeable = False
        object.__setattr__(self, "samples", samples)
        object.__setattr__(self, "color_space", ColorSpace(self.color_space))

    @classmethod
    def from_array(cls, array: np.ndarray, color_space: ColorSpace = ColorSpace.SRGB) -> "PixelBuffer":
        """
        Build a buffer from an HxWx4, HxWx3 or HxW uint8 array (RGB order).

        Three-channel input gets an opaque alpha channel; grayscale input is
        replicated into R, G and B.
        """
        array = np.asarray(array)
        if array.ndim == 2:
            array = np.repeat(array[:, :, None], 3, axis=2)
        if array.ndim != 3 or array.shape[2] not in (3, CHANNELS):
            raise InvalidBuffer(f"Expected HxW, HxWx3 or HxWx4 array, got shape {array.shape}")

        h, w = array.shape[:2]
        if array.shape[2] == 3:
            rgba = np.empty((h, w, CHANNELS), dtype=np.uint8)
            rgba[:, :, :3] = array
            rgba[:, :, 3] = 255
        else:
            rgba = np.array(array, dtype=np.uint8, copy=True)
        return cls(w, h, rgba, color_space)

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        fill: tuple[int, int, int, int] = (0, 0, 0, 255),
        color_space: ColorSpace = ColorSpace.SRGB,
    ) -> "PixelBuffer":
        """Buffer of the given size with every pixel set to fill"""
        if width < 0 or height < 0:
            raise InvalidBuffer(f"Buffer dimensions must be non-negative, got {width}x{height}")
        data = np.empty((height, width, CHANNELS), dtype=np.uint8)
        data[:, :] = fill
        return cls(width, height, data, color_space)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def validate(self) -> None:
        """Raise InvalidBuffer if the stated dimensions disagree with the samples"""
        if self.width < 0 or self.height < 0:
            raise InvalidBuffer(f"Buffer dimensions must be non-negative, got {self.width}x{self.height}")
        expected = self.width * self.height * CHANNELS
        if self.samples.size != expected:
            raise InvalidBuffer(
                f"Buffer {self.width}x{self.height} needs {expected} samples, "
                f"got {self.samples.size}"
            )

    def as_array(self) -> np.ndarray:
        """Read-only (height, width, 4) view of the samples"""
        self.validate()
        return self.samples.reshape(self.height, self.width, CHANNELS)

    def with_array(self, array: np.ndarray) -> "PixelBuffer":
        """New buffer holding array (HxWx4 uint8) with this buffer's color space"""
        h, w = array.shape[:2]
        return PixelBuffer(w, h, np.ascontiguousarray(array, dtype=np.uint8), self.color_space)

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.samples.copy(), self.color_space)

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height}, {self.color_space.value})"


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned rectangle in source image pixel coordinates"""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, cx: float, cy: float, width: float, height: float) -> "Rectangle":
        return cls(cx - width / 2, cy - height / 2, width, height)

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def expanded(self, expansion_percent: float) -> "Rectangle":
        """
        Grow (or shrink, for negative percent) around the same center.

        Size is clamped to zero when the percent drops below -100.
        """
        factor = 1 + expansion_percent / 100
        cx, cy = self.center
        return Rectangle.from_center(
            cx, cy, max(0.0, self.width * factor), max(0.0, self.height * factor)
        )

    def intersects(self, image_width: float, image_height: float) -> bool:
        """True if the rectangle overlaps [0, image_width] x [0, image_height]"""
        return (
            self.x < image_width
            and self.y < image_height
            and self.right > 0
            and self.bottom > 0
        )

    def is_within(self, image_width: float, image_height: float, tolerance: float = 1e-9) -> bool:
        return (
            self.x >= -tolerance
            and self.y >= -tolerance
            and self.right <= image_width + tolerance
            and self.bottom <= image_height + tolerance
        )

    def as_tuple(self) -> tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    @classmethod
    def parse(cls, text: str) -> "Rectangle":
        """Parse 'x,y,width,height'"""
        parts = [p.strip() for p in str(text).split(",")]
        if len(parts) != 4:
            raise ValueError(f"Rectangle must be in format x,y,width,height, got '{text}'")
        x, y, w, h = (float(p) for p in parts)
        if not all(math.isfinite(v) for v in (x, y, w, h)):
            raise ValueError(f"Rectangle values must be finite, got '{text}'")
        return cls(x, y, w, h)
