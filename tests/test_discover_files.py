import hashlib
import shutil
import tempfile
from pathlib import Path

import pytest
from src import discover_files
from src.schema import KnownStatus


@pytest.fixture
def temp_directory_with_files():
    """Create a temporary directory with a predictable structure for testing."""
    temp_dir = Path(tempfile.mkdtemp())
    (temp_dir / "subdir").mkdir()

    files = {
        "file1.txt": "This is a text file.",
        "file2.docx": "dummy word data",
        "file3.pdf": "dummy pdf data",
        (Path("subdir") / "file4.xlsx"): "dummy workbook data",
    }

    for rel_path, content in files.items():
        path = temp_dir / rel_path
        with open(path, "w") as f:
            f.write(content)

    yield temp_dir

    shutil.rmtree(temp_dir)


def test_calculate_sha256(temp_directory_with_files):
    """Verify that the SHA256 hash is calculated correctly."""
    test_file = temp_directory_with_files / "file1.txt"
    expected_hash = hashlib.sha256(b"This is a text file.").hexdigest()
    assert discover_files._calculate_sha256(test_file) == expected_hash


def test_discover_candidate_files(temp_directory_with_files):
    files = discover_files.discover_candidate_files(temp_directory_with_files)

    names = [candidate.file_name for candidate in files]
    assert names == ["file1.txt", "file2.docx", "file3.pdf", "file4.xlsx"]
    assert [candidate.file_id for candidate in files] == [1, 2, 3, 4]
    assert all(candidate.known is KnownStatus.UNKNOWN for candidate in files)
    pdf = files[2]
    assert pdf.size == len("dummy pdf data")
    assert pdf.sha256 == hashlib.sha256(b"dummy pdf data").hexdigest()
    assert Path(pdf.file_path).is_absolute()


def test_discover_marks_known_files(temp_directory_with_files):
    known = {hashlib.sha256(b"dummy word data").hexdigest()}

    files = discover_files.discover_candidate_files(
        temp_directory_with_files, known_hashes=known
    )

    statuses = {candidate.file_name: candidate.known for candidate in files}
    assert statuses["file2.docx"] is KnownStatus.KNOWN
    assert statuses["file3.pdf"] is KnownStatus.UNKNOWN


def test_discover_respects_max_files(temp_directory_with_files):
    files = discover_files.discover_candidate_files(
        temp_directory_with_files, max_files=2
    )
    assert len(files) == 2


def test_discover_rejects_missing_root(tmp_path):
    with pytest.raises(ValueError):
        discover_files.discover_candidate_files(tmp_path / "nope")


def test_load_known_hashes(tmp_path):
    digest_a = "A" * 64
    digest_b = hashlib.sha256(b"b").hexdigest()
    hash_file = tmp_path / "known.csv"
    hash_file.write_text(
        "# exported hash set\n"
        f"{digest_a}\n"
        f"report.pdf,{digest_b},1024\n"
        "not-a-hash\n",
        encoding="utf-8",
    )

    hashes = discover_files.load_known_hashes(hash_file)

    assert hashes == {digest_a.lower(), digest_b}


def test_load_known_hashes_without_path():
    assert discover_files.load_known_hashes(None) == set()


def test_load_known_hashes_missing_file(tmp_path):
    with pytest.raises(OSError):
        discover_files.load_known_hashes(tmp_path / "missing.txt")
