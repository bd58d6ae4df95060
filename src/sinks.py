"""Destinations for classification records and end-of-job summaries."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.schema import ClassificationRecord, JobSummary

logger = logging.getLogger(__name__)


class SinkError(Exception):
    """Raised when a classification record cannot be persisted."""


class LanguageSink(Protocol):
    def record_language(self, record: ClassificationRecord) -> None: ...


class NotificationSink(Protocol):
    def post_summary(self, summary: JobSummary) -> None: ...

    def post_notice(self, message: str) -> None: ...


class ManifestLanguageSink:
    """Append classification records to a JSON-lines manifest."""

    def __init__(self, manifest_path: Path | str) -> None:
        self.manifest_path = Path(manifest_path)
        self._lock = threading.Lock()

    def record_language(self, record: ClassificationRecord) -> None:
        line = record.model_dump_json()
        with self._lock:
            try:
                self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
                with self.manifest_path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError as exc:
                raise SinkError(
                    f"Unable to write language record to {self.manifest_path}: {exc}"
                ) from exc
        logger.debug(
            "Recorded language %s for file %s", record.language_code, record.file_id
        )


def load_language_manifest(manifest_path: Path | str) -> list[ClassificationRecord]:
    """Read every record back from a JSON-lines manifest.

    Corrupted lines are logged and skipped.
    """
    path = Path(manifest_path)
    if not path.exists():
        return []

    records: list[ClassificationRecord] = []
    with path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                records.append(ClassificationRecord.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.warning(
                    "Skipping corrupted manifest line %d in %s: %s",
                    line_number,
                    path,
                    exc,
                )
    return records


class ConsoleNotificationSink:
    """Log job summaries and notices and render them on a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def post_summary(self, summary: JobSummary) -> None:
        logger.info(
            "%s for ingest job %s: %d file(s) in %.3fs",
            summary.title,
            summary.job_id,
            summary.total_files,
            summary.total_time,
        )
        table = Table(title=f"{summary.title} (job {summary.job_id})")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        for label, value in summary.lines():
            table.add_row(label, value)
        self.console.print(table)

    def post_notice(self, message: str) -> None:
        logger.info("%s", message)
        self.console.print(f"[bold yellow]{escape(message)}[/]")


__all__ = [
    "ConsoleNotificationSink",
    "LanguageSink",
    "ManifestLanguageSink",
    "NotificationSink",
    "SinkError",
    "load_language_manifest",
]
