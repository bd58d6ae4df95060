"""Per-thread worker that classifies the language of ingested documents."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Collection
from dataclasses import dataclass, field

from src.config_utils import DEFAULT_SUPPORTED_EXTENSIONS
from src.content_extractor import ExtractionError, TextExtractor
from src.job_registry import JobStatsRegistry, LifecycleError
from src.language_classifier import ClassificationError, LanguageClassifier
from src.languages import display_name
from src.lifecycle import JobLifecycleCoordinator
from src.schema import (
    MODULE_NAME,
    CandidateFile,
    ClassificationRecord,
    FileType,
    JobSummary,
    KnownStatus,
    ProcessResult,
)
from src.sinks import LanguageSink, NotificationSink, SinkError

logger = logging.getLogger(__name__)

SKIPPED_FILE_TYPES = {FileType.UNALLOC_BLOCKS, FileType.UNUSED_BLOCKS}


@dataclass
class IngestJobContext:
    """What the host tells a worker about the job it belongs to."""

    job_id: int
    cancel_event: threading.Event = field(default_factory=threading.Event)
    _notice_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _cancel_noticed: bool = field(default=False, repr=False)

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def claim_cancel_notice(self) -> bool:
        """Return True exactly once per job, to the first worker that asks."""
        with self._notice_lock:
            if self._cancel_noticed:
                return False
            self._cancel_noticed = True
            return True


def should_classify(
    file: CandidateFile,
    supported_extensions: Collection[str] = DEFAULT_SUPPORTED_EXTENSIONS,
) -> bool:
    """Return True if ``file`` is an allocated, unknown, supported document."""
    if file.file_type in SKIPPED_FILE_TYPES or file.is_directory:
        return False
    if file.known is KnownStatus.KNOWN:
        return False
    return file.extension in supported_extensions


class FileClassificationWorker:
    """Extract, classify and record one file at a time for an ingest job."""

    def __init__(
        self,
        registry: JobStatsRegistry,
        sink: LanguageSink,
        notifier: NotificationSink,
        *,
        extractor: TextExtractor | None = None,
        supported_extensions: Collection[str] = DEFAULT_SUPPORTED_EXTENSIONS,
    ) -> None:
        self.sink = sink
        self.notifier = notifier
        self.extractor = extractor or TextExtractor()
        self.supported_extensions = frozenset(supported_extensions)
        self.lifecycle = JobLifecycleCoordinator(registry, notifier)
        self.registry = registry
        self.context: IngestJobContext | None = None
        self.classifier: LanguageClassifier | None = None
        self._cancel_logged = False

    def start_up(self, context: IngestJobContext) -> None:
        self.classifier = self.lifecycle.start_up(context.job_id)
        self.context = context
        logger.debug("Worker started for ingest job %s", context.job_id)

    def shut_down(self) -> JobSummary | None:
        return self.lifecycle.shut_down()

    def _post_cancel_notice(self) -> None:
        message = f"{MODULE_NAME}: ingest job {self.context.job_id} cancelled by user"
        try:
            self.notifier.post_notice(message)
        except Exception as exc:
            logger.warning("Failed to post cancellation notice: %s", exc)

    def process(self, file: CandidateFile) -> ProcessResult:
        if not self.lifecycle.is_active:
            raise LifecycleError(
                f"Worker is {self.lifecycle.state.value}; cannot process files"
            )

        if self.context.is_cancelled():
            if not self._cancel_logged:
                logger.info(
                    "Ingest job %s cancelled; skipping remaining files",
                    self.context.job_id,
                )
                self._cancel_logged = True
                if self.context.claim_cancel_notice():
                    self._post_cancel_notice()
            return ProcessResult.OK

        if not should_classify(file, self.supported_extensions):
            logger.debug("Skipping %s (id=%s)", file.file_name, file.file_id)
            return ProcessResult.OK

        start_time = time.perf_counter()
        try:
            with file.open() as stream:
                text = self.extractor.extract(stream, file.extension)
            language_code = self.classifier.detect(text)
            elapsed = time.perf_counter() - start_time

            record = ClassificationRecord(
                file_id=file.file_id,
                file_name=file.file_name,
                language_code=language_code,
                language_name=display_name(language_code),
                elapsed_seconds=elapsed,
            )
            self.sink.record_language(record)
        except (ExtractionError, ClassificationError, SinkError, OSError) as exc:
            logger.error(
                "Error processing file (id = %s) %s: %s",
                file.file_id,
                file.file_path,
                exc,
            )
            return ProcessResult.ERROR

        self.registry.record_completion(self.context.job_id, elapsed)
        logger.info(
            "%s language: %s (%s) in %.2fs",
            file.file_name,
            record.language_name,
            record.language_code,
            elapsed,
        )
        return ProcessResult.OK


__all__ = [
    "FileClassificationWorker",
    "IngestJobContext",
    "should_classify",
]
