"""Helpers for working with the project configuration file."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("config.yaml")

DEFAULT_SUPPORTED_EXTENSIONS = ("doc", "docx", "xls", "xlsx", "ppt", "pptx", "pdf")
DEFAULT_WORKERS = 4
DEFAULT_MAX_TEXT_CHARS = 10000
DEFAULT_MANIFEST_PATH = Path("data/languages.jsonl")


class LanguageDetectionSettings(BaseModel):
    seed: int = 0
    profiles_dir: Path | None = None
    max_text_chars: int = Field(default=DEFAULT_MAX_TEXT_CHARS, gt=0)


class IngestOptions(BaseModel):
    supported_extensions: frozenset[str] = frozenset(DEFAULT_SUPPORTED_EXTENSIONS)
    workers: int = Field(default=DEFAULT_WORKERS, ge=1)
    manifest_path: Path = DEFAULT_MANIFEST_PATH
    known_hashes: Path | None = None

    @field_validator("supported_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(ext).lstrip(".").lower() for ext in value)
        return value


class IngestSettings(BaseModel):
    """Normalized view of ``config.yaml``."""

    language_detection: LanguageDetectionSettings = Field(
        default_factory=LanguageDetectionSettings
    )
    ingest: IngestOptions = Field(default_factory=IngestOptions)


def load_config(path: Path | str = CONFIG_PATH) -> dict[str, Any]:
    """Load the YAML configuration."""
    with Path(path).open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_settings(path: Path | str | None = CONFIG_PATH) -> IngestSettings:
    """Load and validate settings, using defaults when the file is absent."""
    if path is None or not Path(path).exists():
        logger.debug("No configuration file at %s; using defaults", path)
        return IngestSettings()

    try:
        raw = load_config(path)
    except yaml.YAMLError as exc:
        raise ValueError(f"Configuration file {path} is not valid YAML: {exc}") from exc

    if not isinstance(raw, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping.")

    try:
        settings = IngestSettings.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {path}: {exc}") from exc

    logger.debug("Loaded configuration from %s", path)
    return settings
