"""
Run windows and the fixed-size thread pool that executes one benchmark phase.
"""

import time
import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class RunWindow:
    """Start and end wall-clock bound for one phase.

    A window created with ``duration=None`` never expires; the phase is then
    bounded only by its workers running out of work.
    """

    def __init__(self, duration: Optional[float], clock: Clock = time.monotonic):
        """Open a new window starting now.

        Args:
            duration: Length of the window in seconds, or None for unbounded
            clock: Monotonic time source, injectable for tests
        """
        self.clock = clock
        self.duration = duration
        self.start: float = clock()
        self.end: Optional[float] = None if duration is None else self.start + duration

    def expired(self) -> bool:
        """Check whether the deadline has passed."""
        return self.end is not None and self.clock() >= self.end

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None when unbounded."""
        if self.end is None:
            return None
        return max(0.0, self.end - self.clock())

    def elapsed(self) -> float:
        """Seconds since the window opened."""
        return self.clock() - self.start

    def __repr__(self) -> str:
        return f"RunWindow(duration={self.duration}, elapsed={self.elapsed():.3f})"


class PhaseWorker:
    """One worker of a phase; ``step`` performs a single unit of work.

    ``step`` returns False once the worker has no more work or has given up.
    """

    def __init__(self, worker_id: int):
        self.worker_id = worker_id
        self.operations = 0

    def step(self) -> bool:
        raise NotImplementedError


WorkerFactory = Callable[[int], PhaseWorker]


def _run_worker(phase: str, worker: PhaseWorker, window: RunWindow) -> None:
    """Worker thread body: keep stepping while time and work remain."""
    logger.debug(f"{phase} worker {worker.worker_id} started")

    try:
        while not window.expired() and worker.step():
            worker.operations += 1
    except Exception as e:
        logger.error(f"{phase} worker {worker.worker_id} failed: {e}")

    logger.debug(f"{phase} worker {worker.worker_id} finished after {worker.operations} operations")


def run_phase(
    worker_count: int,
    window: RunWindow,
    worker_factory: WorkerFactory,
    phase: str = "phase",
) -> List[PhaseWorker]:
    """Run one phase with a fixed pool of threads and wait for all of them.

    The deadline is checked before every unit of work, so a worker stops at
    most one operation after the window expires. In-flight store calls are
    never interrupted.

    Args:
        worker_count: Number of worker threads
        window: Run window shared read-only by all workers
        worker_factory: Builds the worker for a 1-based worker id
        phase: Phase name used in log messages and thread names

    Returns:
        The workers, after every thread has joined
    """
    if worker_count <= 0:
        raise ValueError(f"Worker count must be positive, got {worker_count}")

    workers = [worker_factory(worker_id) for worker_id in range(1, worker_count + 1)]
    threads = []
    for worker in workers:
        thread = threading.Thread(
            target=_run_worker,
            args=(phase, worker, window),
            name=f"{phase}-{worker.worker_id}",
            daemon=True,
        )
        thread.start()
        threads.append(thread)

    remaining = window.remaining()
    bound = "until done" if remaining is None else f"{remaining:.1f}s remaining"
    logger.debug(f"Started {worker_count} {phase} workers, {bound}")

    for thread in threads:
        thread.join()

    logger.debug(f"All {phase} workers joined after {window.elapsed():.2f}s")
    return workers
