"""
Image statistics.

Per-channel mean, population standard deviation and 256-bin histograms of
the R, G and B channels. Alpha is ignored.
"""

from dataclasses import dataclass

import numpy as np

from cropaug.core import PixelBuffer

CHANNEL_NAMES = ("red", "green", "blue")


@dataclass(frozen=True, eq=False)
class ImageStats:
    mean: tuple[float, float, float]
    std: tuple[float, float, float]
    histogram: dict[str, np.ndarray]
    width: int
    height: int

    def to_dict(self) -> dict:
        """Plain-Python representation for YAML/JSON reports"""
        return {
            "width": self.width,
            "height": self.height,
            "mean": [float(v) for v in self.mean],
            "std": [float(v) for v in self.std],
            "histogram": {name: self.histogram[name].tolist() for name in CHANNEL_NAMES},
        }


def compute_stats(buffer: PixelBuffer) -> ImageStats:
    """
    Compute channel statistics in two passes (sums, then squared deviations).

    The standard deviation divides by the pixel count, not N - 1. An empty
    buffer yields zero means and deviations and all-zero histograms.

    Args:
        buffer: Input buffer

    Returns:
        ImageStats for the buffer

    Raises:
        InvalidBuffer: If the buffer is malformed
    """
    rgb = buffer.as_array()[:, :, :3].reshape(-1, 3)
    pixel_count = rgb.shape[0]

    histogram = {
        name: np.bincount(rgb[:, c], minlength=256).astype(np.int64)
        for c, name in enumerate(CHANNEL_NAMES)
    }

    if pixel_count == 0:
        zeros = (0.0, 0.0, 0.0)
        return ImageStats(zeros, zeros, histogram, buffer.width, buffer.height)

    values = rgb.astype(np.float64)
    mean = values.sum(axis=0) / pixel_count
    std = np.sqrt(((values - mean) ** 2).sum(axis=0) / pixel_count)

    return ImageStats(
        mean=tuple(float(v) for v in mean),
        std=tuple(float(v) for v in std),
        histogram=histogram,
        width=buffer.width,
        height=buffer.height,
    )
