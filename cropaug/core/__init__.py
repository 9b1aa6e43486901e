"""
Core types and utilities shared by the image and engine modules.
"""

from .buffer import CHANNELS, ColorSpace, PixelBuffer, Rectangle
from .errors import (
    BatchCancelled,
    BatchGenerationError,
    ConfigError,
    CropAugError,
    ExecutionFailure,
    InvalidAnchor,
    InvalidBuffer,
    PoolShutdown,
)
from .io import IMAGE_EXTENSIONS, load_image, save_image
from .logger import get_logger, setup_logger

__all__ = [
    "CHANNELS",
    "ColorSpace",
    "PixelBuffer",
    "Rectangle",
    "CropAugError",
    "InvalidAnchor",
    "InvalidBuffer",
    "PoolShutdown",
    "ExecutionFailure",
    "ConfigError",
    "BatchCancelled",
    "BatchGenerationError",
    "IMAGE_EXTENSIONS",
    "load_image",
    "save_image",
    "get_logger",
    "setup_logger",
]
