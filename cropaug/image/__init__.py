"""
Image processing module

Provides the pure pixel and geometry operations of the engine:
- Filter kernels (brightness, contrast, saturation, hue, blur, sharpen, noise,
  flips, rotation)
- Filter pipeline with a fixed stage order
- Crop rectangle geometry (expansion, aspect-ratio jitter, boundary clamping)
- Crop-and-pad with black fill
- Channel statistics
"""

from .crop import crop_and_pad, output_size
from .filters import (
    add_noise,
    adjust_brightness,
    adjust_contrast,
    adjust_hue,
    adjust_saturation,
    flip_horizontal,
    flip_vertical,
    gaussian_blur,
    rotate,
    sharpen,
)
from .geometry import constrain_to_image, derive_variant, jitter_aspect_ratio, validate_anchor
from .pipeline import FilterPipeline, ProcessingOptions, apply_processing, random_augmentation
from .stats import ImageStats, compute_stats

__all__ = [
    "crop_and_pad",
    "output_size",
    "adjust_brightness",
    "adjust_contrast",
    "adjust_saturation",
    "adjust_hue",
    "gaussian_blur",
    "sharpen",
    "add_noise",
    "flip_horizontal",
    "flip_vertical",
    "rotate",
    "derive_variant",
    "constrain_to_image",
    "jitter_aspect_ratio",
    "validate_anchor",
    "FilterPipeline",
    "ProcessingOptions",
    "apply_processing",
    "random_augmentation",
    "ImageStats",
    "compute_stats",
]
