import json
import signal
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from main import RunStats, ingest_directory, main, run_job, start_workers
from src.config_utils import IngestSettings
from src.job_registry import JobStatsRegistry
from src.language_classifier import ModelLoadError
from src.schema import CandidateFile, ProcessResult
from src.worker import IngestJobContext

SUPPORTED = frozenset({"pptx", "pdf"})


def _candidates(tmp_path, make_pptx, texts):
    files = []
    for index, text in enumerate(texts, start=1):
        path = tmp_path / f"deck-{index}.pptx"
        path.write_bytes(make_pptx(text))
        files.append(
            CandidateFile(file_id=index, file_name=path.name, file_path=str(path))
        )
    return files


def test_run_stats_counts_results():
    stats = RunStats()
    stats.add(ProcessResult.OK)
    stats.add(ProcessResult.ERROR)
    stats.add(ProcessResult.OK)

    assert (stats.succeeded, stats.failed) == (2, 1)


def test_run_job_processes_every_file_once(tmp_path, make_pptx, keyword_classifier):
    files = _candidates(
        tmp_path, make_pptx, ["Hello there", "Привет всем", "Bonjour a tous"]
    )
    registry = JobStatsRegistry(resource_loader=lambda: keyword_classifier)
    sink = MagicMock()
    notifier = MagicMock()

    stats = run_job(
        files,
        context=IngestJobContext(job_id=42),
        registry=registry,
        sink=sink,
        notifier=notifier,
        worker_count=3,
        supported_extensions=SUPPORTED,
    )

    assert (stats.succeeded, stats.failed) == (3, 0)
    codes = sorted(
        call.args[0].language_code for call in sink.record_language.call_args_list
    )
    assert codes == ["en", "fr", "ru"]
    notifier.post_summary.assert_called_once()
    assert notifier.post_summary.call_args.args[0].total_files == 3
    assert registry.active_jobs() == []


def test_run_job_counts_failures(tmp_path, make_pptx, keyword_classifier):
    files = _candidates(tmp_path, make_pptx, ["Hello there"])
    broken = tmp_path / "broken.pptx"
    broken.write_bytes(b"not a zip archive")
    files.append(
        CandidateFile(file_id=9, file_name=broken.name, file_path=str(broken))
    )
    notifier = MagicMock()

    stats = run_job(
        files,
        context=IngestJobContext(job_id=5),
        registry=JobStatsRegistry(resource_loader=lambda: keyword_classifier),
        sink=MagicMock(),
        notifier=notifier,
        worker_count=2,
        supported_extensions=SUPPORTED,
    )

    assert (stats.succeeded, stats.failed) == (1, 1)
    assert notifier.post_summary.call_args.args[0].total_files == 1


def test_run_job_with_no_files_still_posts_summary(keyword_classifier):
    notifier = MagicMock()

    stats = run_job(
        [],
        context=IngestJobContext(job_id=6),
        registry=JobStatsRegistry(resource_loader=lambda: keyword_classifier),
        sink=MagicMock(),
        notifier=notifier,
        worker_count=2,
        supported_extensions=SUPPORTED,
    )

    assert (stats.succeeded, stats.failed) == (0, 0)
    assert notifier.post_summary.call_args.args[0].total_files == 0


def test_start_workers_unwinds_on_model_load_failure():
    registry = JobStatsRegistry(
        resource_loader=MagicMock(side_effect=ModelLoadError("no profiles"))
    )

    with pytest.raises(ModelLoadError):
        start_workers(
            2,
            IngestJobContext(job_id=1),
            registry,
            MagicMock(),
            MagicMock(),
            SUPPORTED,
        )

    assert registry.active_jobs() == []


def test_ingest_directory_missing_root(tmp_path):
    exit_code = ingest_directory(
        tmp_path / "missing",
        IngestSettings(),
        job_id=1,
        worker_count=1,
        manifest_path=tmp_path / "languages.jsonl",
    )

    assert exit_code == 1


def test_ingest_directory_writes_manifest(tmp_path, make_pptx, keyword_classifier):
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "slides.pptx").write_bytes(make_pptx("Good afternoon everyone"))
    (docs / "readme.txt").write_text("ignored", encoding="utf-8")
    manifest = tmp_path / "out" / "languages.jsonl"
    handlers_before = signal.getsignal(signal.SIGINT)

    with patch("main.get_shared_classifier", return_value=keyword_classifier):
        exit_code = ingest_directory(
            docs,
            IngestSettings(),
            job_id=3,
            worker_count=2,
            manifest_path=manifest,
        )

    assert exit_code == 0
    lines = manifest.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["file_name"] for line in lines] == ["slides.pptx"]
    assert signal.getsignal(signal.SIGINT) == handlers_before


def test_ingest_directory_model_load_failure(tmp_path, make_pptx):
    (tmp_path / "slides.pptx").write_bytes(make_pptx("Hello"))

    with patch(
        "main.get_shared_classifier", side_effect=ModelLoadError("no profiles")
    ):
        exit_code = ingest_directory(
            tmp_path,
            IngestSettings(),
            job_id=4,
            worker_count=2,
            manifest_path=tmp_path / "languages.jsonl",
        )

    assert exit_code == 1
    assert not (tmp_path / "languages.jsonl").exists()


def test_main_rejects_invalid_config(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- not a mapping\n", encoding="utf-8")
    app = typer.Typer()
    app.command()(main)

    with patch("main.configure_logging"):
        result = CliRunner().invoke(
            app, [str(tmp_path), "--config", str(config_path)]
        )

    assert result.exit_code == 1
