"""
Batch generation of crop variants.

For each requested variant the orchestrator derives a crop rectangle, submits
a crop-and-pad job to the worker pool, then waits for every job. Results are
returned in submission order whatever order the pool completes them in.

Failure policy:
- one job failing never cancels its siblings
- after every job has settled, the first failure in submission order is
  raised as BatchGenerationError, which also carries the successful variants
- cancel() stops waiting, discards unfinished jobs and raises BatchCancelled

Examples:
    >>> request = GenerationRequest(
    ...     anchor=Rectangle(10, 10, 100, 50),
    ...     expansion_range=(0, 50),
    ...     aspect_ratio_jitter=(0.5, 2.0),
    ...     allow_out_of_bounds=True,
    ...     count=20,
    ... )
    >>> variants = generate_batch(source, request, rng=np.random.default_rng(0))
    >>> print(len(variants), variants[0].aspect_ratio)
"""

import math
import threading
from concurrent.futures import FIRST_COMPLETED, wait
from dataclasses import dataclass

import numpy as np
from tqdm import tqdm

from cropaug.core import (
    BatchCancelled,
    BatchGenerationError,
    CropAugError,
    PixelBuffer,
    Rectangle,
    get_logger,
)
from cropaug.image.geometry import derive_variant, validate_anchor

from .pool import WorkerPool, get_default_pool

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    """
    Parameters for one batch.

    Args:
        anchor: User-selected rectangle in source coordinates
        expansion_range: (min, max) expansion percent; min may be negative
        aspect_ratio_jitter: Optional (low, high) width/height ratio range
        allow_out_of_bounds: Let crops extend past the image (black fill)
        count: Number of variants to generate
    """

    anchor: Rectangle
    expansion_range: tuple[float, float] = (0.0, 0.0)
    aspect_ratio_jitter: tuple[float, float] | None = None
    allow_out_of_bounds: bool = True
    count: int = 1

    def __post_init__(self):
        if int(self.count) != self.count or self.count < 0:
            raise ValueError(f"count must be a non-negative integer, got {self.count}")
        object.__setattr__(self, "count", int(self.count))

        low, high = (float(v) for v in self.expansion_range)
        if low > high:
            raise ValueError(f"Expansion range min must not exceed max, got ({low}, {high})")
        object.__setattr__(self, "expansion_range", (low, high))

        if self.aspect_ratio_jitter is not None:
            lo, hi = (float(v) for v in self.aspect_ratio_jitter)
            if lo <= 0 or lo > hi:
                raise ValueError(f"Aspect ratio range must satisfy 0 < low <= high, got ({lo}, {hi})")
            object.__setattr__(self, "aspect_ratio_jitter", (lo, hi))

    def validate(self, image_size: tuple[int, int]) -> None:
        """
        Raises:
            InvalidAnchor: If the anchor has zero size or misses the image
        """
        validate_anchor(self.anchor, image_size)


@dataclass(frozen=True, eq=False)
class GeneratedVariant:
    """One generated crop; owned by the caller"""

    buffer: PixelBuffer
    aspect_ratio: float
    index: int
    rect: Rectangle
    expansion_percent: float

    @classmethod
    def from_buffer(
        cls, buffer: PixelBuffer, index: int, rect: Rectangle, expansion_percent: float
    ) -> "GeneratedVariant":
        ratio = buffer.width / buffer.height if buffer.height > 0 else math.nan
        return cls(buffer, ratio, index, rect, expansion_percent)


class CropAugmentationOrchestrator:
    """
    Drives batch generation against a worker pool.

    Args:
        pool: Worker pool (default: shared process pool)
        rng: Random source for expansion and aspect-ratio draws
        show_progress: Display a tqdm progress bar while waiting
        poll_interval: Seconds between cancellation checks while waiting
    """

    def __init__(
        self,
        pool: WorkerPool | None = None,
        rng: np.random.Generator | None = None,
        show_progress: bool = True,
        poll_interval: float = 0.1,
    ):
        self.pool = pool
        self.rng = rng if rng is not None else np.random.default_rng()
        self.show_progress = show_progress
        self.poll_interval = poll_interval
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Stop the running batch, or the next one if none is running; thread-safe"""
        self._cancel_event.set()

    def generate(
        self,
        source: PixelBuffer,
        request: GenerationRequest,
        preprocessed: PixelBuffer | None = None,
        progress=None,
    ) -> list[GeneratedVariant]:
        """
        Generate request.count variants.

        Args:
            source: Source image buffer
            request: Batch parameters
            preprocessed: Filter pipeline output to crop from instead of source
            progress: Optional callback(completed, total) invoked as each
                variant settles, successful or not

        Returns:
            Variants in submission order

        Raises:
            InvalidAnchor: If the anchor has zero size or misses the image
            InvalidBuffer: If a buffer is malformed
            BatchGenerationError: If any variant failed
            BatchCancelled: If cancel() was called before all variants settled
        """
        try:
            return self._generate(source, request, preprocessed, progress)
        finally:
            # A cancel() issued before or during this batch is consumed by it
            self._cancel_event.clear()

    def _generate(self, source, request, preprocessed, progress) -> list[GeneratedVariant]:
        source.validate()
        request.validate(source.size)

        target = source
        if preprocessed is not None:
            preprocessed.validate()
            target = preprocessed

        pool = self.pool if self.pool is not None else get_default_pool()
        total = request.count

        logger.info(
            f"Generating {total} variants from {target.width}x{target.height} image, "
            f"expansion {request.expansion_range[0]:g}%..{request.expansion_range[1]:g}%, "
            f"out of bounds {'allowed' if request.allow_out_of_bounds else 'clamped'}"
        )

        # Submit everything first; submission failures count as job failures
        jobs = []
        errors: dict[int, BaseException] = {}
        for i in range(total):
            rect, expansion = derive_variant(
                request.anchor,
                request.expansion_range,
                request.aspect_ratio_jitter,
                request.allow_out_of_bounds,
                target.size,
                self.rng,
            )
            dispatch_expansion = expansion if request.allow_out_of_bounds else 0.0
            try:
                future = pool.submit(target, rect, dispatch_expansion)
            except CropAugError as e:
                logger.error(f"Failed to submit variant {i}: {e}")
                errors[i] = e
                future = None
            jobs.append((i, future, rect, expansion))

        completed = len(errors)
        if progress is not None:
            for settled in range(1, completed + 1):
                progress(settled, total)

        waiting = {future: i for i, future, _, _ in jobs if future is not None}
        with tqdm(
            total=total,
            initial=completed,
            desc="Generating variants",
            unit="img",
            disable=not self.show_progress,
        ) as bar:
            while waiting:
                if self._cancel_event.is_set():
                    discarded = sum(pool.discard(f.job_id) for f in waiting)
                    logger.warning(
                        f"Batch cancelled after {completed}/{total} variants, "
                        f"discarded {discarded} pending job(s)"
                    )
                    raise BatchCancelled(f"Batch cancelled after {completed}/{total} variants")

                done, _ = wait(list(waiting), timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                for future in done:
                    waiting.pop(future)
                    completed += 1
                    bar.update(1)
                    if progress is not None:
                        progress(completed, total)

        variants = []
        for i, future, rect, expansion in jobs:
            if future is None:
                continue
            if future.cancelled():
                errors[i] = BatchCancelled(f"Variant {i} was cancelled")
                continue
            error = future.exception()
            if error is not None:
                errors[i] = error
                continue
            variants.append(GeneratedVariant.from_buffer(future.result(), i, rect, expansion))

        if errors:
            first = errors[min(errors)]
            logger.error(f"{len(errors)} of {total} variants failed; first failure: {first}")
            raise BatchGenerationError(first, completed=len(variants), total=total, variants=variants)

        logger.info(f"Generated {len(variants)} variants")
        return variants


def generate_batch(
    source: PixelBuffer,
    request: GenerationRequest,
    preprocessed: PixelBuffer | None = None,
    *,
    pool: WorkerPool | None = None,
    rng: np.random.Generator | None = None,
    progress=None,
    show_progress: bool = False,
) -> list[GeneratedVariant]:
    """
    Generate request.count crop variants; see CropAugmentationOrchestrator.generate.

    Args:
        source: Source image buffer
        request: Batch parameters
        preprocessed: Filter pipeline output to crop from instead of source
        pool: Worker pool (default: shared process pool)
        rng: Random source for geometry draws
        progress: Optional callback(completed, total)
        show_progress: Display a tqdm progress bar

    Returns:
        Variants in submission order
    """
    orchestrator = CropAugmentationOrchestrator(pool=pool, rng=rng, show_progress=show_progress)
    return orchestrator.generate(source, request, preprocessed, progress=progress)
