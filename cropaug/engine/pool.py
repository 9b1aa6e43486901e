"""
Worker pool for crop-and-pad jobs.

A fixed set of execution units (processes by default, threads on request)
each runs one job at a time. Jobs are assigned round-robin and complete in
any order, so every job carries a unique id that the unit echoes back with
its result; the collector thread resolves the pending future by that id,
never by arrival order.

Lifecycle:
- submit() returns a concurrent.futures.Future immediately
- a unit that dies fails its in-flight jobs with ExecutionFailure and is
  replaced
- shutdown() stops all units and rejects every outstanding future with
  PoolShutdown; later submissions raise PoolShutdown

Examples:
    >>> with WorkerPool(size=4) as pool:
    ...     future = pool.submit(buffer, Rectangle(10, 10, 100, 50), 20.0)
    ...     cropped = future.result()
"""

import atexit
import itertools
import multiprocessing
import os
import queue
import threading
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass

from cropaug.core import ExecutionFailure, PixelBuffer, PoolShutdown, Rectangle, get_logger
from cropaug.image.crop import crop_and_pad

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class Job:
    """A unit of work; id is the only key used to match the result back"""

    id: int
    buffer: PixelBuffer
    rect: Rectangle
    expansion_percent: float


def _run_unit(inbox, outbox, task) -> None:
    """
    Execution unit main loop.

    Receives Job messages until the None sentinel and posts
    (job_id, ok, payload) tuples, where payload is the result buffer or an
    error description.
    """
    while True:
        job = inbox.get()
        if job is None:
            break
        try:
            result = task(job.buffer, job.rect, job.expansion_percent)
        except Exception as e:
            outbox.put((job.id, False, f"{type(e).__name__}: {e}"))
        else:
            outbox.put((job.id, True, result))


class _Unit:
    def __init__(self, index: int, inbox, worker):
        self.index = index
        self.inbox = inbox
        self.worker = worker

    def is_alive(self) -> bool:
        return self.worker.is_alive()


class WorkerPool:
    """
    Fixed-size pool of execution units with id-based result correlation.

    Args:
        size: Number of units (default: os.cpu_count(), minimum 1)
        use_threads: Run units as threads instead of processes
        task: Job body, called as task(buffer, rect, expansion_percent).
            Must be a module-level function when units are processes.
        poll_interval: Seconds between unit health checks
    """

    def __init__(
        self,
        size: int | None = None,
        use_threads: bool = False,
        task=crop_and_pad,
        poll_interval: float = 0.2,
    ):
        if size is None:
            size = os.cpu_count() or 1
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")

        self.size = int(size)
        self.use_threads = use_threads
        self.task = task
        self.poll_interval = poll_interval

        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[Future, int]] = {}
        self._next_unit = 0
        self._closed = False

        if use_threads:
            self._ctx = None
            self._outbox = queue.Queue()
        else:
            self._ctx = multiprocessing.get_context()
            self._outbox = self._ctx.Queue()

        self._units = [self._start_unit(i) for i in range(self.size)]
        self._collector = threading.Thread(
            target=self._collect, name="cropaug-pool-collector", daemon=True
        )
        self._collector.start()

        kind = "threads" if use_threads else "processes"
        logger.debug(f"Started worker pool with {self.size} {kind}")

    def _start_unit(self, index: int) -> _Unit:
        if self.use_threads:
            inbox = queue.Queue()
            worker = threading.Thread(
                target=_run_unit,
                args=(inbox, self._outbox, self.task),
                name=f"cropaug-unit-{index}",
                daemon=True,
            )
        else:
            inbox = self._ctx.Queue()
            worker = self._ctx.Process(
                target=_run_unit,
                args=(inbox, self._outbox, self.task),
                name=f"cropaug-unit-{index}",
                daemon=True,
            )
        worker.start()
        return _Unit(index, inbox, worker)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def submit(self, buffer: PixelBuffer, rect: Rectangle, expansion_percent: float = 0.0) -> Future:
        """
        Queue a crop-and-pad job on the next unit in round-robin order.

        The buffer is treated as immutable; the result is a new buffer.

        Args:
            buffer: Source buffer
            rect: Crop rectangle
            expansion_percent: Expansion applied by the unit

        Returns:
            Future resolving to the output buffer. The job id is available
            as future.job_id.

        Raises:
            PoolShutdown: If the pool has been shut down
            InvalidBuffer: If the buffer is malformed
        """
        buffer.validate()

        with self._lock:
            if self._closed:
                raise PoolShutdown("Worker pool has been shut down")
            job = Job(next(self._ids), buffer, rect, float(expansion_percent))
            unit = self._units[self._next_unit]
            self._next_unit = (self._next_unit + 1) % len(self._units)
            future = Future()
            future.job_id = job.id
            self._pending[job.id] = (future, unit.index)

        unit.inbox.put(job)
        logger.debug(f"Submitted job {job.id} to unit {unit.index}")
        return future

    def discard(self, job_id: int) -> bool:
        """
        Forget a pending job; its result will be dropped when it arrives.

        Returns:
            True if the job was still pending
        """
        with self._lock:
            entry = self._pending.pop(job_id, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def _collect(self) -> None:
        while True:
            try:
                message = self._outbox.get(timeout=self.poll_interval)
            except queue.Empty:
                if self._closed:
                    break
                self._check_units()
                continue

            if message is None:
                break
            self._resolve(*message)

    def _resolve(self, job_id: int, ok: bool, payload) -> None:
        with self._lock:
            entry = self._pending.pop(job_id, None)

        if entry is None:
            logger.debug(f"Dropping result of discarded job {job_id}")
            return

        future, unit_index = entry
        try:
            if ok:
                future.set_result(payload)
            else:
                future.set_exception(
                    ExecutionFailure(f"Job {job_id} failed on unit {unit_index}: {payload}")
                )
        except InvalidStateError:
            logger.debug(f"Dropping result of cancelled job {job_id}")

    def _check_units(self) -> None:
        for i, unit in enumerate(self._units):
            if self._closed or unit.is_alive():
                continue

            with self._lock:
                lost = [jid for jid, (_, idx) in self._pending.items() if idx == unit.index]
                entries = [self._pending.pop(jid) for jid in lost]
                if self._closed:
                    return
                if not self.use_threads:
                    unit.inbox.cancel_join_thread()
                self._units[i] = self._start_unit(unit.index)

            logger.warning(f"Execution unit {unit.index} died; failing {len(entries)} job(s)")
            for future, _ in entries:
                self._reject(future, ExecutionFailure(f"Execution unit {unit.index} died"))

    @staticmethod
    def _reject(future: Future, error: Exception) -> None:
        try:
            future.set_exception(error)
        except InvalidStateError:
            pass

    def shutdown(self, timeout: float = 5.0) -> None:
        """
        Stop all units and reject outstanding futures with PoolShutdown.

        Safe to call more than once.

        Args:
            timeout: Seconds to wait for each unit before terminating it
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            outstanding = list(self._pending.values())
            self._pending.clear()

        for future, _ in outstanding:
            self._reject(future, PoolShutdown("Worker pool shut down before the job completed"))

        for unit in self._units:
            unit.inbox.put(None)
        self._outbox.put(None)

        for unit in self._units:
            unit.worker.join(timeout)
            if not self.use_threads:
                if unit.is_alive():
                    unit.worker.terminate()
                    unit.worker.join(timeout)
                # Unread jobs must not block interpreter exit
                unit.inbox.cancel_join_thread()
        self._collector.join(timeout)

        if outstanding:
            logger.info(f"Worker pool shut down, rejected {len(outstanding)} pending job(s)")
        else:
            logger.debug("Worker pool shut down")

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


_default_pool: WorkerPool | None = None
_default_lock = threading.Lock()


def get_default_pool() -> WorkerPool:
    """
    Shared process pool sized to the available CPUs.

    Created on first use, reused for the process lifetime and shut down at
    interpreter exit. A new pool replaces one that was shut down explicitly.
    """
    global _default_pool
    with _default_lock:
        if _default_pool is None or _default_pool.closed:
            _default_pool = WorkerPool()
            atexit.register(_default_pool.shutdown)
        return _default_pool
