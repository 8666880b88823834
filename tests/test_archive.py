"""
ArchiveBuilder behaviour: ordering, duplicates, finalization, determinism.
"""

import io
import zipfile

import pytest

from elbtal_backup.errors import ArchiveError, ArchiveFinalizedError, DuplicateEntryError
from elbtal_backup.export.archive import FIXED_DATE_TIME, ArchiveBuilder, normalize_entry_path

from conftest import read_zip


def _builder():
    b = ArchiveBuilder()
    b.add_entry("data/contact_requests.csv", "id\nc1")
    b.add_entry("documents/lead_documents/c1/ausweis/scan.pdf", b"%PDF-1.4")
    b.add_entry("export_info.json", "{}")
    return b


def test_entries_keep_insertion_order_and_content():
    content = _builder().finalize()

    files = read_zip(content)
    assert list(files) == [
        "data/contact_requests.csv",
        "documents/lead_documents/c1/ausweis/scan.pdf",
        "export_info.json",
    ]
    assert files["data/contact_requests.csv"] == b"id\nc1"
    assert files["documents/lead_documents/c1/ausweis/scan.pdf"] == b"%PDF-1.4"


def test_duplicate_path_raises():
    b = ArchiveBuilder()
    b.add_entry("data/a.csv", "x")
    with pytest.raises(DuplicateEntryError):
        b.add_entry("/data/a.csv", "y")
    assert len(b) == 1


def test_finalize_is_terminal():
    b = _builder()
    b.finalize()
    assert b.finalized
    with pytest.raises(ArchiveFinalizedError):
        b.add_entry("late.txt", "x")
    with pytest.raises(ArchiveFinalizedError):
        b.finalize()


@pytest.mark.parametrize("path", ["", "data/", "../escape.txt", "data/../../x"])
def test_invalid_paths_rejected(path):
    with pytest.raises(ArchiveError):
        ArchiveBuilder().add_entry(path, "x")


def test_normalize_entry_path():
    assert normalize_entry_path("/data\\contact_requests.csv") == "data/contact_requests.csv"
    assert normalize_entry_path("a//b/./c.txt") == "a/b/c.txt"


def test_identical_entries_produce_identical_bytes():
    assert _builder().finalize() == _builder().finalize()


def test_members_use_fixed_timestamp():
    with zipfile.ZipFile(io.BytesIO(_builder().finalize())) as zf:
        assert {info.date_time for info in zf.infolist()} == {FIXED_DATE_TIME}


def test_write_to_path(tmp_path):
    out = _builder().write_to_path(tmp_path / "nested" / "export.zip")
    assert out.exists()
    with zipfile.ZipFile(out) as zf:
        assert zf.namelist()[-1] == "export_info.json"


def test_empty_archive_is_valid_zip():
    files = read_zip(ArchiveBuilder().finalize())
    assert files == {}


def test_write_to_fileobj_matches_finalize():
    buf = io.BytesIO()
    _builder().write_to_fileobj(buf)
    assert buf.getvalue() == _builder().finalize()
