#!/usr/bin/env python3
"""Threaded batch runner that detects the language of documents in a directory."""

from __future__ import annotations

import logging
import os
import queue
import signal
import threading
import time
from collections.abc import Collection
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from src.config_utils import IngestSettings, load_settings
from src.discover_files import discover_candidate_files, load_known_hashes
from src.job_registry import JobStatsRegistry
from src.language_classifier import ModelLoadError, get_shared_classifier
from src.logging_utils import configure_logging, set_job_id
from src.schema import CandidateFile, ProcessResult
from src.sinks import (
    ConsoleNotificationSink,
    LanguageSink,
    ManifestLanguageSink,
    NotificationSink,
)
from src.worker import FileClassificationWorker, IngestJobContext

LOGGER_NAME = "language_ingest.pipeline"
pipeline_logger = logging.getLogger(LOGGER_NAME)
run_logger = pipeline_logger.getChild("run")


@dataclass
class RunStats:
    """Per-run tallies of worker results."""

    succeeded: int = 0
    failed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add(self, result: ProcessResult) -> None:
        with self._lock:
            if result is ProcessResult.OK:
                self.succeeded += 1
            else:
                self.failed += 1


def ingest_worker(
    worker_id: int,
    worker: FileClassificationWorker,
    work_queue: queue.Queue,
    stats: RunStats,
) -> None:
    """Feed queued files to ``worker`` until a poison pill arrives."""
    worker_logger = pipeline_logger.getChild(f"worker-{worker_id}")
    worker_logger.debug("Ingest worker %d started", worker_id)

    try:
        while True:
            candidate = work_queue.get()
            try:
                if candidate is None:  # Poison pill
                    break
                try:
                    result = worker.process(candidate)
                except Exception as exc:
                    worker_logger.exception(
                        "Ingest worker %d crashed on %s: %s",
                        worker_id,
                        candidate.file_path,
                        exc,
                    )
                    result = ProcessResult.ERROR
                stats.add(result)
            finally:
                work_queue.task_done()
    finally:
        worker.shut_down()
        worker_logger.debug("Ingest worker %d stopped", worker_id)


def start_workers(
    count: int,
    context: IngestJobContext,
    registry: JobStatsRegistry,
    sink: LanguageSink,
    notifier: NotificationSink,
    supported_extensions: Collection[str],
) -> list[FileClassificationWorker]:
    """Start ``count`` workers, or none at all if the classifier fails to load."""
    workers: list[FileClassificationWorker] = []
    for _ in range(count):
        worker = FileClassificationWorker(
            registry,
            sink,
            notifier,
            supported_extensions=supported_extensions,
        )
        try:
            worker.start_up(context)
        except ModelLoadError:
            for started in workers:
                started.shut_down()
            raise
        workers.append(worker)
    return workers


def run_job(
    files: list[CandidateFile],
    *,
    context: IngestJobContext,
    registry: JobStatsRegistry,
    sink: LanguageSink,
    notifier: NotificationSink,
    worker_count: int,
    supported_extensions: Collection[str],
) -> RunStats:
    """Process ``files`` for one ingest job across ``worker_count`` threads.

    Every worker is started before any file is queued so that the job cannot
    be finalized while siblings are still coming up.
    """
    workers = start_workers(
        worker_count, context, registry, sink, notifier, supported_extensions
    )
    run_logger.info(
        "Started %d worker(s) for ingest job %s", len(workers), context.job_id
    )

    work_queue: queue.Queue = queue.Queue()
    stats = RunStats()
    threads = []
    for i, worker in enumerate(workers):
        thread = threading.Thread(
            target=ingest_worker,
            args=(i, worker, work_queue, stats),
            name=f"IngestWorker-{i}",
        )
        thread.start()
        threads.append(thread)

    for candidate in files:
        work_queue.put(candidate)
    for _ in threads:
        work_queue.put(None)
    run_logger.info("Queued %d file(s) for ingest job %s", len(files), context.job_id)

    for thread in threads:
        thread.join()

    return stats


def _install_signal_handlers(cancel_event: threading.Event) -> dict[int, object]:
    def signal_handler(signum, frame):
        try:
            signal_name = signal.Signals(signum).name
        except ValueError:
            signal_name = str(signum)

        if cancel_event.is_set():
            run_logger.warning(
                "Additional signal %s received; forcing termination.", signal_name
            )
            os._exit(1)
        run_logger.info("Received signal %s; cancelling ingest job", signal_name)
        cancel_event.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, signal_handler)
    return previous


def ingest_directory(
    root: Path,
    settings: IngestSettings,
    *,
    job_id: int,
    worker_count: int,
    manifest_path: Path,
    known_hashes_path: Path | None = None,
) -> int:
    """Run one ingest job over ``root`` and return a process exit code."""
    set_job_id(job_id)
    try:
        files = discover_candidate_files(root, load_known_hashes(known_hashes_path))
    except (ValueError, OSError) as exc:
        run_logger.error("File discovery failed: %s", exc)
        return 1

    registry = JobStatsRegistry(
        resource_loader=partial(get_shared_classifier, settings.language_detection)
    )
    context = IngestJobContext(job_id=job_id)
    previous_handlers = _install_signal_handlers(context.cancel_event)

    start_time = time.time()
    try:
        stats = run_job(
            files,
            context=context,
            registry=registry,
            sink=ManifestLanguageSink(manifest_path),
            notifier=ConsoleNotificationSink(),
            worker_count=worker_count,
            supported_extensions=settings.ingest.supported_extensions,
        )
    except ModelLoadError as exc:
        run_logger.error("Unable to start ingest job %s: %s", job_id, exc)
        return 1
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)

    run_logger.info(
        "Ingest job %s finished in %.2fs: %d ok, %d failed; records in %s",
        job_id,
        time.time() - start_time,
        stats.succeeded,
        stats.failed,
        manifest_path,
    )

    if context.is_cancelled():
        run_logger.warning("Ingest job %s was cancelled before completion.", job_id)
        return 1

    if stats.failed > 0:
        run_logger.warning("Some files failed to process. Check logs for details.")
        return 1

    return 0


def main(
    root: Annotated[Path, typer.Argument(help="Directory of documents to ingest.")],
    job_id: Annotated[
        int, typer.Option(help="Ingest job identifier (0 uses the current time).")
    ] = 0,
    workers: Annotated[
        int,
        typer.Option(
            help="Number of worker threads (0 uses the configured value).",
            rich_help_panel="Processing",
        ),
    ] = 0,
    config: Annotated[
        Path, typer.Option(help="Path to the YAML configuration file.")
    ] = Path("config.yaml"),
    manifest: Annotated[
        Optional[Path],
        typer.Option(
            help="JSON-lines file receiving language records.",
            rich_help_panel="Output",
        ),
    ] = None,
    known_hashes: Annotated[
        Optional[Path],
        typer.Option(
            help="File of SHA-256 hashes of known files to skip.",
            rich_help_panel="Filtering",
        ),
    ] = None,
    log_file: Annotated[
        Optional[Path],
        typer.Option(
            help="Also write log records to this file.",
            rich_help_panel="Output",
        ),
    ] = None,
    debug: Annotated[bool, typer.Option(help="Enable debug logging.")] = False,
) -> None:
    """Detect the language of every supported document under ROOT."""
    configure_logging(level=logging.DEBUG if debug else None, log_file=log_file)

    try:
        settings = load_settings(config)
    except ValueError as exc:
        run_logger.error("%s", exc)
        raise typer.Exit(code=1)

    options = settings.ingest
    exit_code = ingest_directory(
        root,
        settings,
        job_id=job_id or int(time.time()),
        worker_count=workers if workers > 0 else options.workers,
        manifest_path=manifest or options.manifest_path,
        known_hashes_path=known_hashes or options.known_hashes,
    )
    raise typer.Exit(code=exit_code)


if __name__ == "__main__":
    typer.run(main)
