from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel, ConfigDict, Field, field_validator

MODULE_NAME = "Language Detector"
SUMMARY_TITLE = "Language Detector Results"
# Category under which language records are grouped in the manifest
LANGUAGE_SET_NAME = "Language_Detected"


class ProcessResult(str, Enum):
    """Outcome reported back to the host for a single file."""

    OK = "ok"
    ERROR = "error"


class FileType(str, Enum):
    """Where a file's content came from in the ingested data source."""

    FS = "fs"
    UNALLOC_BLOCKS = "unalloc_blocks"
    UNUSED_BLOCKS = "unused_blocks"
    CARVED = "carved"
    DERIVED = "derived"
    LOCAL = "local"


class KnownStatus(str, Enum):
    """Reputation of a file according to a known-file hash set."""

    UNKNOWN = "unknown"
    KNOWN = "known"
    KNOWN_BAD = "known_bad"


class CandidateFile(BaseModel):
    """A file delivered by the host for classification."""

    file_id: int
    file_name: str
    file_path: str
    file_type: FileType = FileType.FS
    is_directory: bool = False
    known: KnownStatus = KnownStatus.UNKNOWN
    sha256: str | None = None
    size: int = Field(default=0, ge=0)

    @property
    def extension(self) -> str:
        return Path(self.file_name).suffix.lstrip(".").lower()

    def open(self) -> BinaryIO:
        """Open the file's raw content for reading."""
        return Path(self.file_path).open("rb")


class ClassificationRecord(BaseModel):
    """Language detected for one file."""

    model_config = ConfigDict(frozen=True)

    file_id: int
    file_name: str
    language_code: str
    language_name: str
    elapsed_seconds: float = Field(ge=0)
    source: str = MODULE_NAME
    set_name: str = LANGUAGE_SET_NAME


class JobTotals(BaseModel):
    """Final counters for an ingest job, returned once when it retires."""

    model_config = ConfigDict(frozen=True)

    job_id: int
    files_processed: int = Field(default=0, ge=0)
    processing_time: float = Field(default=0.0, ge=0)


class JobSummary(BaseModel):
    """Human readable end-of-job message."""

    model_config = ConfigDict(frozen=True)

    job_id: int
    title: str = SUMMARY_TITLE
    total_files: int
    total_time: float

    @field_validator("total_time", mode="before")
    @classmethod
    def _round_time(cls, value: float) -> float:
        return round(float(value), 3)

    @classmethod
    def from_totals(cls, totals: JobTotals) -> JobSummary:
        return cls(
            job_id=totals.job_id,
            total_files=totals.files_processed,
            total_time=totals.processing_time,
        )

    def lines(self) -> list[tuple[str, str]]:
        return [
            ("Total Processing Time", f"{self.total_time:.3f}s"),
            ("Total Files Processed", str(self.total_files)),
        ]
