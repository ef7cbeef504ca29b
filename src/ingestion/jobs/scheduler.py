"""
Background scheduler for collection runs.

Uses APScheduler to execute each accepted collection request as a one-shot
job, so the caller gets the run id back immediately.
"""

import threading
from datetime import datetime
from typing import Callable

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED,
    JobEvent,
    JobExecutionEvent,
)
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from src.utils import logger
from src.ingestion.config import settings
from src.ingestion.jobs.ingestion_job import CancellationToken


class CollectionScheduler:
    """
    Runs collection jobs in the background.

    Features:
    - One-shot job per run id
    - Cancellation token per run
    - Job execution logging
    - Graceful shutdown that lets every submitted run finish
    """

    def __init__(self, max_workers: int | None = None):
        """
        Initialize the scheduler.

        Args:
            max_workers: Concurrent runs (default from settings)
        """
        self.max_workers = max_workers or settings.scheduler.max_workers
        self._scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(self.max_workers)},
            job_defaults={"coalesce": False, "max_instances": 1, "misfire_grace_time": None},
        )
        self._tokens: dict[str, CancellationToken] = {}
        self._done: dict[str, threading.Event] = {}
        self._lock = threading.Lock()
        self._setup_listeners()

        logger.info(f"CollectionScheduler initialized with {self.max_workers} worker(s)")

    def _setup_listeners(self) -> None:
        """Setup job event listeners."""
        self._scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self._scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(self._on_job_skipped, EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES)

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        """Handle successful job execution."""
        self._release(event.job_id)
        logger.info(f"Collection job {event.job_id} finished")

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        """Handle job execution errors."""
        self._release(event.job_id)
        logger.error(f"Collection job {event.job_id} failed with exception: {event.exception}")

    def _on_job_skipped(self, event: JobEvent) -> None:
        """Handle jobs the scheduler will not run."""
        self._release(event.job_id)
        logger.warning(f"Collection job {event.job_id} was skipped by the scheduler")

    def _release(self, run_id: str) -> None:
        with self._lock:
            self._tokens.pop(run_id, None)
            done = self._done.pop(run_id, None)
        if done is not None:
            done.set()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """Start the scheduler (non-blocking)."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Collection scheduler started")

    def submit(self, run_id: str, func: Callable[[CancellationToken], object]) -> CancellationToken:
        """
        Schedule ``func(token)`` to run once, as soon as a worker is free.

        Args:
            run_id: Collection request id, used as the job id
            func: Work to run; receives the run's cancellation token

        Returns:
            The run's cancellation token
        """
        self.start()

        token = CancellationToken()
        with self._lock:
            self._tokens[run_id] = token
            self._done[run_id] = threading.Event()

        self._scheduler.add_job(
            func,
            trigger=DateTrigger(run_date=datetime.now()),
            args=[token],
            id=run_id,
            name=f"Collection run {run_id}",
            replace_existing=True,
        )

        logger.info(f"Scheduled collection job {run_id}")
        return token

    def cancel(self, run_id: str) -> bool:
        """
        Request cancellation of a scheduled or running job.

        Returns:
            True if the run was known to the scheduler
        """
        with self._lock:
            token = self._tokens.get(run_id)

        if token is None:
            return False

        token.cancel()
        logger.info(f"Cancellation requested for collection job {run_id}")
        return True

    def wait(self, run_id: str, timeout: float | None = None) -> bool:
        """
        Block until a submitted run has finished.

        Returns:
            True if the run finished (or is unknown), False on timeout
        """
        with self._lock:
            done = self._done.get(run_id)
        return done is None or done.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop the scheduler.

        With ``wait`` every submitted run, including one not yet handed to a
        worker, finishes first; without it unfinished runs are cancelled.
        """
        with self._lock:
            tokens = list(self._tokens.values())
            pending = list(self._done.values())

        if wait:
            for done in pending:
                done.wait()
        else:
            for token in tokens:
                token.cancel()

        if self._scheduler.running:
            logger.info("Stopping collection scheduler...")
            self._scheduler.shutdown(wait=wait)
            logger.info("Collection scheduler stopped")


def create_scheduler(max_workers: int | None = None) -> CollectionScheduler:
    """Create a new scheduler with the given settings."""
    return CollectionScheduler(max_workers=max_workers)


__all__ = [
    "CollectionScheduler",
    "create_scheduler",
]
