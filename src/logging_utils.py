"""Logging setup for ingest runs.

Every record carries the id of the ingest job it belongs to and the name of
the worker thread that emitted it, so interleaved output from concurrent
workers can be told apart.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LEVEL_ENV_VAR = "LANGUAGE_INGEST_LOG_LEVEL"
CONSOLE_FORMAT = "[job %(job_id)s] %(threadName)s: %(message)s"
FILE_FORMAT = (
    "%(asctime)s | %(levelname)s | job %(job_id)s | %(threadName)s | "
    "%(name)s | %(message)s"
)
NO_JOB = "-"

# Third-party document readers are chatty below WARNING
QUIET_LOGGERS = ("fitz", "openpyxl", "xlrd", "docx", "pptx", "tika")

_current_job_id: int | str = NO_JOB


class JobIdFilter(logging.Filter):
    """Stamp records with the active ingest job id unless one is set."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "job_id"):
            record.job_id = _current_job_id
        return True


def set_job_id(job_id: int | None) -> None:
    """Attach ``job_id`` to every record logged from now on."""
    global _current_job_id
    _current_job_id = NO_JOB if job_id is None else job_id


def _resolve_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.getenv(LEVEL_ENV_VAR, "INFO")).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    log_file: str | os.PathLike[str] | None = None,
    console: bool = True,
) -> None:
    """Replace the root handlers with job-aware console and file handlers.

    Parameters
    ----------
    level:
        Logging level; defaults to ``LANGUAGE_INGEST_LOG_LEVEL`` or INFO.
    log_file:
        Optional path that also receives every record, one line each.
    console:
        Whether to render records on stderr through rich.
    """
    handlers: list[logging.Handler] = []
    if console:
        console_handler = RichHandler(
            console=Console(stderr=True), show_path=False, rich_tracebacks=True
        )
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    if not handlers:
        raise ValueError("configure_logging requires a console or a log file")

    job_filter = JobIdFilter()
    for handler in handlers:
        handler.addFilter(job_filter)

    logging.basicConfig(level=_resolve_level(level), handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["JobIdFilter", "configure_logging", "set_job_id"]
