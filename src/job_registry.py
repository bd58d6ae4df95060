"""Reference counted, per ingest job counters shared by worker instances."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from src.schema import JobTotals

logger = logging.getLogger(__name__)


class LifecycleError(RuntimeError):
    """Raised when a worker uses a job that is not registered."""


@dataclass
class _JobEntry:
    active_workers: int = 0
    files_processed: int = 0
    processing_time: float = 0.0

    def totals(self, job_id: int) -> JobTotals:
        return JobTotals(
            job_id=job_id,
            files_processed=self.files_processed,
            processing_time=self.processing_time,
        )


class JobStatsRegistry:
    """Thread-safe table of live ingest jobs.

    One lock guards the whole table, so registration, completion and
    deregistration are linearizable across every job. The optional
    ``resource_loader`` is invoked by the first successful registration in
    the registry's lifetime and its result is handed to every registrant.
    """

    def __init__(self, resource_loader: Callable[[], Any] | None = None) -> None:
        self._resource_loader = resource_loader
        self._shared_resource: Any = None
        self._resource_loaded = False
        self._jobs: dict[int, _JobEntry] = {}
        self._lock = threading.Lock()

    def register(self, job_id: int) -> Any:
        """Add an active worker to ``job_id`` and return the shared resource.

        If loading the shared resource fails the exception propagates and the
        table is left untouched.
        """
        with self._lock:
            if not self._resource_loaded and self._resource_loader is not None:
                self._shared_resource = self._resource_loader()
                logger.debug("Shared resource loaded for first registration")
            self._resource_loaded = True

            entry = self._jobs.get(job_id)
            if entry is None:
                entry = _JobEntry()
                self._jobs[job_id] = entry
                logger.debug("Created stats entry for ingest job %s", job_id)
            entry.active_workers += 1
            logger.debug(
                "Registered worker for ingest job %s (active=%d)",
                job_id,
                entry.active_workers,
            )
            return self._shared_resource

    def record_completion(self, job_id: int, elapsed: float) -> None:
        """Count one classified file and its processing time against a job."""
        if elapsed < 0:
            raise ValueError(f"elapsed time must be non-negative, got {elapsed}")

        with self._lock:
            entry = self._jobs.get(job_id)
            if entry is None:
                logger.error(
                    "Completion recorded for unregistered ingest job %s", job_id
                )
                raise LifecycleError(
                    f"Ingest job {job_id} is not registered or already finalized"
                )
            entry.files_processed += 1
            entry.processing_time += elapsed

    def deregister(self, job_id: int) -> JobTotals | None:
        """Remove an active worker from ``job_id``.

        Returns the job's final totals to the caller that retires the last
        worker, and ``None`` to everyone else.
        """
        with self._lock:
            entry = self._jobs.get(job_id)
            if entry is None:
                logger.error("Deregistration for unregistered ingest job %s", job_id)
                raise LifecycleError(
                    f"Ingest job {job_id} is not registered or already finalized"
                )
            entry.active_workers -= 1
            if entry.active_workers > 0:
                logger.debug(
                    "Deregistered worker for ingest job %s (active=%d)",
                    job_id,
                    entry.active_workers,
                )
                return None

            del self._jobs[job_id]
            totals = entry.totals(job_id)
            logger.debug(
                "Finalized ingest job %s: files=%d time=%.3fs",
                job_id,
                totals.files_processed,
                totals.processing_time,
            )
            return totals

    def active_workers(self, job_id: int) -> int:
        with self._lock:
            entry = self._jobs.get(job_id)
            return entry.active_workers if entry else 0

    def snapshot(self, job_id: int) -> JobTotals | None:
        """Return the running totals for a live job, or ``None``."""
        with self._lock:
            entry = self._jobs.get(job_id)
            return entry.totals(job_id) if entry else None

    def active_jobs(self) -> list[int]:
        with self._lock:
            return sorted(self._jobs)


__all__ = ["JobStatsRegistry", "LifecycleError"]
