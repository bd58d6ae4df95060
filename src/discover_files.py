from __future__ import annotations

import hashlib
import logging
import re
import time
from collections import Counter
from pathlib import Path
from typing import Iterable

from src.schema import CandidateFile, KnownStatus

logger = logging.getLogger(__name__)

_SHA256_PATTERN = re.compile(r"\b[0-9a-fA-F]{64}\b")


def _calculate_sha256(file_path: Path) -> str:
    """Calculate the SHA256 hash of a file."""
    sha256_hash = hashlib.sha256()
    with open(file_path, "rb") as f:
        for byte_block in iter(lambda: f.read(4096), b""):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()


def _iter_files(root_directory: Path) -> Iterable[Path]:
    for path in sorted(root_directory.rglob("*")):
        if path.is_file():
            yield path


def load_known_hashes(path: Path | str | None) -> set[str]:
    """Load a known-file hash set.

    Accepts one hash per line as well as CSV exports where the SHA-256 is one
    of the columns; anything that is not a 64 character hex digest is ignored.
    """
    if path is None:
        return set()

    hashes: set[str] = set()
    with Path(path).open("r", encoding="utf-8", errors="ignore") as handle:
        for line in handle:
            if line.startswith("#"):
                continue
            hashes.update(match.lower() for match in _SHA256_PATTERN.findall(line))

    logger.info("Loaded %d known file hash(es) from %s", len(hashes), path)
    return hashes


def discover_candidate_files(
    root_directory: Path,
    known_hashes: set[str] | None = None,
    max_files: int = 0,
) -> list[CandidateFile]:
    """Walk ``root_directory`` and describe every file for the ingest workers."""
    root_directory = root_directory.expanduser().resolve()
    if not root_directory.is_dir():
        raise ValueError(
            f"Root directory does not exist or is not a directory: {root_directory}"
        )

    known_hashes = known_hashes or set()
    max_limit = max_files if max_files and max_files > 0 else None
    start_time = time.time()
    files: list[CandidateFile] = []
    error_count = 0

    for path in _iter_files(root_directory):
        if max_limit is not None and len(files) >= max_limit:
            logger.info("Reached maximum file limit of %d", max_limit)
            break

        try:
            sha256 = _calculate_sha256(path)
            files.append(
                CandidateFile(
                    file_id=len(files) + 1,
                    file_name=path.name,
                    file_path=str(path),
                    known=(
                        KnownStatus.KNOWN
                        if sha256 in known_hashes
                        else KnownStatus.UNKNOWN
                    ),
                    sha256=sha256,
                    size=path.stat().st_size,
                )
            )
        except OSError as exc:
            error_count += 1
            logger.error("Failed to read file %s: %s", path, exc)

    logger.info(
        "Discovered %d files under %s in %.2f seconds",
        len(files),
        root_directory,
        time.time() - start_time,
    )

    extension_counts = Counter(record.extension or "(none)" for record in files)
    for extension, count in sorted(extension_counts.items()):
        logger.debug("  .%s: %d files", extension, count)

    known_count = sum(1 for record in files if record.known is KnownStatus.KNOWN)
    if known_count:
        logger.info("%d file(s) matched the known hash set", known_count)
    if error_count > 0:
        logger.warning("Encountered %d errors during discovery", error_count)

    return files
