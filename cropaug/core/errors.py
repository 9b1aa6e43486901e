"""
Exception hierarchy for the augmentation engine.

All engine failures derive from CropAugError so callers can catch one type.
Invalid parameter ranges still raise ValueError.
"""


class CropAugError(Exception):
    """Base class for all engine errors"""


class InvalidAnchor(CropAugError):
    """Anchor rectangle has zero size or lies outside the image"""


class InvalidBuffer(CropAugError):
    """Pixel buffer dimensions do not match its sample count"""


class PoolShutdown(CropAugError):
    """Job submitted to, or still pending in, a terminated worker pool"""


class ExecutionFailure(CropAugError):
    """An execution unit raised an internal fault while running a job"""


class ConfigError(CropAugError):
    """Configuration file content is malformed"""


class BatchCancelled(CropAugError):
    """Batch generation was cancelled before every variant resolved"""


class BatchGenerationError(CropAugError):
    """
    One or more variants of a batch failed.

    Attributes:
        cause: First failure in submission order
        completed: Number of variants that succeeded
        total: Number of variants requested
        variants: Successful variants in submission order
    """

    def __init__(self, cause: BaseException, completed: int, total: int, variants=None):
        super().__init__(f"Batch failed after {completed}/{total} variants succeeded: {cause}")
        self.cause = cause
        self.completed = completed
        self.total = total
        self.variants = list(variants or [])
