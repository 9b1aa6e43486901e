"""
Concurrent batch engine

Provides:
- Worker pool with id-based result correlation
- Batch orchestration of crop variants
"""

from .orchestrator import (
    CropAugmentationOrchestrator,
    GeneratedVariant,
    GenerationRequest,
    generate_batch,
)
from .pool import Job, WorkerPool, get_default_pool

__all__ = [
    "Job",
    "WorkerPool",
    "get_default_pool",
    "GenerationRequest",
    "GeneratedVariant",
    "CropAugmentationOrchestrator",
    "generate_batch",
]
