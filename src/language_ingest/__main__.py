"""Command-line entry point for the language ingest tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from src.config_utils import IngestSettings, load_settings
from src.content_extractor import ExtractionError, TextExtractor
from src.discover_files import discover_candidate_files, load_known_hashes
from src.language_classifier import (
    ClassificationError,
    ModelLoadError,
    load_language_classifier,
)
from src.languages import display_name
from src.sinks import load_language_manifest
from src.worker import should_classify

app = typer.Typer()
logger = logging.getLogger(__name__)
console = Console()

CONFIG_OPTION = typer.Option(
    Path("config.yaml"), "--config", help="Path to the YAML configuration file."
)


def _load_settings(config: Path) -> IngestSettings:
    try:
        return load_settings(config)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)


@app.command()
def scan(
    root: Path = typer.Argument(..., help="Directory to inspect."),
    known_hashes: Optional[Path] = typer.Option(
        None, "--known-hashes", help="File of SHA-256 hashes of known files."
    ),
    config: Path = CONFIG_OPTION,
) -> None:
    """List discovered files and whether each would be classified."""
    settings = _load_settings(config)
    hashes_path = known_hashes or settings.ingest.known_hashes
    try:
        files = discover_candidate_files(root, load_known_hashes(hashes_path))
    except (ValueError, OSError) as exc:
        typer.echo(f"Unable to scan {root}: {exc}", err=True)
        raise typer.Exit(code=1)

    table = Table(title=f"Files under {root}")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Known")
    table.add_column("Classify")
    eligible = 0
    for candidate in files:
        selected = should_classify(candidate, settings.ingest.supported_extensions)
        eligible += selected
        table.add_row(
            str(candidate.file_id),
            candidate.file_name,
            candidate.known.value,
            "yes" if selected else "no",
        )
    console.print(table)
    console.print(f"{eligible} of {len(files)} file(s) eligible for classification")


@app.command()
def detect(
    path: Path = typer.Argument(..., help="Document to classify."),
    config: Path = CONFIG_OPTION,
) -> None:
    """Extract and classify a single document."""
    settings = _load_settings(config)
    extension = path.suffix.lstrip(".").lower()
    try:
        classifier = load_language_classifier(settings.language_detection)
        with path.open("rb") as stream:
            text = TextExtractor().extract(stream, extension)
        code = classifier.detect(text)
    except (ModelLoadError, ExtractionError, ClassificationError, OSError) as exc:
        logger.error("Language detection failed for %s: %s", path, exc)
        typer.echo(f"{path.name}: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"{path.name} language: {display_name(code)} ({code})")


@app.command()
def report(
    manifest: Path = typer.Option(
        Path("data/languages.jsonl"),
        "--manifest",
        help="JSON-lines language manifest (default: data/languages.jsonl).",
    ),
) -> None:
    """Show the language records stored in a manifest."""
    records = load_language_manifest(manifest)
    if not records:
        typer.echo(f"No language records found in {manifest}")
        return

    table = Table(title=f"Language records in {manifest}")
    table.add_column("File ID", justify="right")
    table.add_column("Name")
    table.add_column("Language")
    table.add_column("Code")
    table.add_column("Seconds", justify="right")
    for record in records:
        table.add_row(
            str(record.file_id),
            record.file_name,
            record.language_name,
            record.language_code,
            f"{record.elapsed_seconds:.3f}",
        )
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
