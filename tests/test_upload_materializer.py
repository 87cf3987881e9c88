import asyncio

import pytest

from conftest import FakeUpload
from services.upload_materializer import home_directories, materialize_uploads, upload_filename
from utils.errors import UploadIOError, ValidationError


def test_directory_layout(tmp_path):
    home_dir, downloads = home_directories(tmp_path, "ONCB")
    assert home_dir == tmp_path / "ONCB"
    assert downloads == tmp_path / "ONCB" / "downloads"


@pytest.mark.parametrize("home", ["", ".", "..", "a/b", "..\\x"])
def test_unsafe_home_codes_rejected(tmp_path, home):
    with pytest.raises(ValidationError):
        home_directories(tmp_path, home)


def test_writes_every_file_under_original_name(tmp_path):
    pdfs = [FakeUpload("incidents.pdf", b"%PDF-1.4 one"), FakeUpload("notes.pdf", b"%PDF-1.4 two")]
    excels = [FakeUpload("behaviours.xlsx", b"PK\x03\x04")]

    downloads = asyncio.run(materialize_uploads(tmp_path / "python", "MCB", pdfs, excels))

    assert downloads == tmp_path / "python" / "MCB" / "downloads"
    assert sorted(p.name for p in downloads.iterdir()) == ["behaviours.xlsx", "incidents.pdf", "notes.pdf"]
    assert (downloads / "notes.pdf").read_bytes() == b"%PDF-1.4 two"
    assert (downloads / "behaviours.xlsx").read_bytes() == b"PK\x03\x04"


def test_existing_file_is_overwritten(tmp_path):
    asyncio.run(materialize_uploads(tmp_path, "MCB", [FakeUpload("a.pdf", b"old contents")], []))
    asyncio.run(materialize_uploads(tmp_path, "MCB", [FakeUpload("a.pdf", b"new")], []))
    assert (tmp_path / "MCB" / "downloads" / "a.pdf").read_bytes() == b"new"


def test_zero_files_creates_directory_only(tmp_path):
    downloads = asyncio.run(materialize_uploads(tmp_path, "banwell", [], []))
    assert downloads.is_dir()
    assert list(downloads.iterdir()) == []


def test_directory_components_stripped_from_filename():
    assert upload_filename(FakeUpload("../../etc/passwd")) == "passwd"
    assert upload_filename(FakeUpload("C:\\Users\\me\\report.xlsx")) == "report.xlsx"
    with pytest.raises(ValidationError):
        upload_filename(FakeUpload(""))


def test_directory_creation_failure_is_io_error(tmp_path):
    blocker = tmp_path / "python"
    blocker.write_text("not a directory")
    with pytest.raises(UploadIOError) as exc:
        asyncio.run(materialize_uploads(blocker, "MCB", [FakeUpload("a.pdf")], []))
    assert exc.value.kind == "IOError"
