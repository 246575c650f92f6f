"""
puretrack/jobs/scheduler.py
───────────────────────────
Fixed-interval background job runner.

Each registered job gets a daemon thread that calls it, then waits
`interval` seconds on a shared stop event. A job that raises is logged and
runs again on the next tick.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class Job:
    name: str
    func: Callable[[], object]
    interval: float
    run_immediately: bool = False


class IntervalScheduler:

    def __init__(self):
        self._jobs: list[Job] = []
        self._threads: list[threading.Thread] = []
        self._stop = threading.Event()

    def add_job(self, name: str, func: Callable[[], object], interval: float,
                run_immediately: bool = False) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._jobs.append(Job(name, func, interval, run_immediately))

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def run_once(self, job: Job) -> None:
        try:
            job.func()
        except Exception:
            logger.exception("Scheduled job %s failed", job.name)

    def _loop(self, job: Job) -> None:
        logger.info("Job %s started (every %ss)", job.name, job.interval)
        if job.run_immediately:
            self.run_once(job)
        while not self._stop.wait(job.interval):
            self.run_once(job)
        logger.info("Job %s stopped", job.name)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._loop, args=(job,), name=f"job-{job.name}", daemon=True)
            for job in self._jobs
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
