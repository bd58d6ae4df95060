"""Start-up and shutdown bookkeeping for a single worker instance."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from src.job_registry import JobStatsRegistry, LifecycleError
from src.schema import JobSummary
from src.sinks import NotificationSink

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    UNSTARTED = "unstarted"
    ACTIVE = "active"
    RETIRED = "retired"


class JobLifecycleCoordinator:
    """Drive one worker through ``UNSTARTED -> ACTIVE -> RETIRED``.

    Start-up registers the worker against its job; shutdown deregisters it
    and, for the last worker of the job, posts the job summary.
    """

    def __init__(
        self, registry: JobStatsRegistry, notifier: NotificationSink
    ) -> None:
        self.registry = registry
        self.notifier = notifier
        self.state = WorkerState.UNSTARTED
        self.job_id: int | None = None

    @property
    def is_active(self) -> bool:
        return self.state is WorkerState.ACTIVE

    def start_up(self, job_id: int) -> Any:
        """Register with ``job_id`` and return the shared classifier.

        A failure to load the classifier propagates and leaves the worker
        unstarted.
        """
        if self.state is not WorkerState.UNSTARTED:
            raise LifecycleError(
                f"Cannot start a worker that is {self.state.value}"
            )
        classifier = self.registry.register(job_id)
        self.job_id = job_id
        self.state = WorkerState.ACTIVE
        return classifier

    def shut_down(self) -> JobSummary | None:
        """Deregister and emit the job summary if this was the last worker."""
        if self.state is not WorkerState.ACTIVE:
            raise LifecycleError(
                f"Cannot shut down a worker that is {self.state.value}"
            )
        self.state = WorkerState.RETIRED
        totals = self.registry.deregister(self.job_id)
        if totals is None:
            return None

        summary = JobSummary.from_totals(totals)
        try:
            self.notifier.post_summary(summary)
        except Exception as exc:
            logger.warning(
                "Failed to post summary for ingest job %s: %s", self.job_id, exc
            )
        return summary


__all__ = ["JobLifecycleCoordinator", "WorkerState"]
