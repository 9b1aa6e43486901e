"""
cropaug - anchor-based crop augmentation engine

Generates randomized crop variants around a user-selected anchor region,
with an optional pixel filter pipeline and channel statistics.

Examples:
    >>> from cropaug import GenerationRequest, Rectangle, generate_batch, load_image
    >>> source = load_image("photo.png")
    >>> request = GenerationRequest(Rectangle(10, 10, 100, 50), expansion_range=(0, 50), count=20)
    >>> variants = generate_batch(source, request)
"""

__version__ = "0.1.0"

from .core import (
    BatchCancelled,
    BatchGenerationError,
    ColorSpace,
    CropAugError,
    ExecutionFailure,
    InvalidAnchor,
    InvalidBuffer,
    PixelBuffer,
    PoolShutdown,
    Rectangle,
    load_image,
    save_image,
)
from .engine import (
    CropAugmentationOrchestrator,
    GeneratedVariant,
    GenerationRequest,
    WorkerPool,
    generate_batch,
)
from .image import (
    FilterPipeline,
    ImageStats,
    ProcessingOptions,
    apply_processing,
    compute_stats,
    derive_variant,
    random_augmentation,
)

__all__ = [
    "__version__",
    "PixelBuffer",
    "Rectangle",
    "ColorSpace",
    "CropAugError",
    "InvalidAnchor",
    "InvalidBuffer",
    "PoolShutdown",
    "ExecutionFailure",
    "BatchGenerationError",
    "BatchCancelled",
    "load_image",
    "save_image",
    "ProcessingOptions",
    "FilterPipeline",
    "apply_processing",
    "random_augmentation",
    "ImageStats",
    "compute_stats",
    "derive_variant",
    "WorkerPool",
    "GenerationRequest",
    "GeneratedVariant",
    "CropAugmentationOrchestrator",
    "generate_batch",
]
