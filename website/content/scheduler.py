"""Periodic background jobs on a shared worker pool."""

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from website.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScheduledJob:
    name: str
    func: Callable[[], object]
    interval_seconds: float
    initial_delay_seconds: float = 0.0


class PeriodicScheduler:
    """Runs named jobs every ``interval`` after an initial delay.

    Each job occupies one pool worker for its lifetime. A failing run is
    logged and the job carries on; ``shutdown`` lets a running iteration
    finish instead of cancelling it.
    """

    def __init__(self, max_workers: int = 4, thread_name_prefix: str = "sync"):
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._stop = threading.Event()
        self._jobs: dict[str, Future] = {}

    @property
    def jobs(self) -> list[str]:
        return list(self._jobs)

    def schedule(
        self,
        name: str,
        func: Callable[[], object],
        interval_seconds: float,
        initial_delay_seconds: float = 0.0,
    ) -> ScheduledJob:
        """Start a periodic job.

        Raises:
            ValueError: If the interval is not positive or the name is taken
            RuntimeError: If the scheduler was shut down
        """
        if interval_seconds <= 0:
            raise ValueError(f"Interval of job '{name}' must be positive")
        if name in self._jobs:
            raise ValueError(f"Job '{name}' is already scheduled")
        if self._stop.is_set():
            raise RuntimeError("Scheduler has been shut down")
        if len(self._jobs) >= self.max_workers:
            raise ValueError(f"No free worker for job '{name}'")

        job = ScheduledJob(name, func, interval_seconds, initial_delay_seconds)
        self._jobs[name] = self._executor.submit(self._loop, job)
        logger.info(
            "job_scheduled",
            job=name,
            interval_seconds=interval_seconds,
            initial_delay_seconds=initial_delay_seconds,
        )
        return job

    def _loop(self, job: ScheduledJob) -> None:
        if self._stop.wait(job.initial_delay_seconds):
            return
        while True:
            try:
                job.func()
            except Exception as e:
                logger.error("job_failed", job=job.name, error=str(e), exc_info=True)

            # Wait for next interval
            if self._stop.wait(job.interval_seconds):
                return

    def shutdown(self, wait: bool = True) -> None:
        """Stop all loops after their current iteration."""
        self._stop.set()
        self._executor.shutdown(wait=wait)
        logger.info("scheduler_stopped", jobs=self.jobs)

    @property
    def is_running(self) -> bool:
        return not self._stop.is_set()
