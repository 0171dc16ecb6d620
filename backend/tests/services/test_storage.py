# tests/services/test_storage.py
import errno
import io
import os

import pytest
from pypdf import PdfReader

from lexvault.exceptions import InvalidInputError, NotFoundError, StorageIOError
from lexvault.services.scan import ScanImage
from lexvault.services.storage import FileStorage


@pytest.fixture
def root(tmp_path):
    root = tmp_path / "Acme_20240101000000"
    for folder in ["Evidence", "Pleadings", "Correspondence"]:
        (root / folder).mkdir(parents=True)
    return root


def write(path, data=b"data"):
    path.write_bytes(data)
    return path


# ---------------------------------------------------------------- resolve

def test_resolve_joins_segments(storage, root):
    assert storage.resolve(root, "Evidence") == root / "Evidence"
    assert storage.resolve(root, "Evidence", "photo.jpg") == root / "Evidence" / "photo.jpg"


@pytest.mark.parametrize("folder", ["..", "../other", "Evidence/../../escape", "/etc", ""])
def test_resolve_rejects_unsafe_folders(storage, root, folder):
    with pytest.raises(InvalidInputError):
        storage.resolve(root, folder)


@pytest.mark.parametrize("filename", ["../secret.txt", "sub/file.txt", "/etc/passwd", "..", ""])
def test_resolve_rejects_unsafe_file_names(storage, root, filename):
    with pytest.raises(InvalidInputError):
        storage.resolve(root, "Evidence", filename)


def test_resolve_rejects_symlink_escape(storage, root, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    os.symlink(outside, root / "Linked")

    with pytest.raises(InvalidInputError):
        storage.resolve(root, "Linked")


def test_resolve_requires_absolute_root(storage):
    with pytest.raises(InvalidInputError):
        storage.resolve("relative/root", "Evidence")


def test_resolve_must_exist(storage, root):
    with pytest.raises(NotFoundError):
        storage.resolve(root, "Missing", must_exist=True)
    with pytest.raises(NotFoundError):
        storage.resolve(root, "Evidence", "missing.pdf", must_exist=True)


# ---------------------------------------------------------------- listing

def test_list_folders_sorted(storage, root):
    write(root / "stray-file.txt")
    assert storage.list_folders(root) == ["Correspondence", "Evidence", "Pleadings"]


def test_list_folders_missing_root_is_empty(storage, tmp_path):
    assert storage.list_folders(tmp_path / "nope") == []


def test_list_files_only_files_with_metadata(storage, root):
    write(root / "Evidence" / "b.jpg", b"12345")
    write(root / "Evidence" / "a.pdf", b"1")
    (root / "Evidence" / "Nested").mkdir()

    files = storage.list_files(root, "Evidence")

    assert [f.name for f in files] == ["a.pdf", "b.jpg"]
    assert [f.size for f in files] == [1, 5]
    assert all(f.modified is not None for f in files)


def test_list_files_missing_folder_is_empty(storage, root):
    assert storage.list_files(root, "Nope") == []


# ---------------------------------------------------------------- search

def test_search_is_case_insensitive_across_folders(storage, root):
    write(root / "Evidence" / "Invoice_March.pdf")
    write(root / "Correspondence" / "re-invoice.eml")
    write(root / "Correspondence" / "letter.docx")
    write(root / "Pleadings" / "motion.pdf")

    results = storage.search(root, "invoice")

    assert [(r.folder, r.name) for r in results] == [
        ("Correspondence", "re-invoice.eml"),
        ("Evidence", "Invoice_March.pdf"),
    ]
    assert "Pleadings" not in {r.folder for r in results}


def test_search_empty_query_matches_everything(storage, root):
    write(root / "Evidence" / "a.pdf")
    write(root / "Pleadings" / "b.pdf")
    assert len(storage.search(root, "")) == 2


def test_search_missing_root_is_empty(storage, tmp_path):
    assert storage.search(tmp_path / "nope", "x") == []


def test_search_aborts_on_unreadable_folder(storage, root, monkeypatch):
    write(root / "Evidence" / "invoice.pdf")
    real_scandir = os.scandir

    def failing_scandir(path):
        if str(path).endswith("Pleadings"):
            raise PermissionError(errno.EACCES, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr("lexvault.services.storage.os.scandir", failing_scandir)

    with pytest.raises(StorageIOError) as exc_info:
        storage.search(root, "invoice")
    assert "Pleadings" in str(exc_info.value.path)


# ---------------------------------------------------------------- upload

def test_save_versions_on_collision(storage, root):
    assert storage.save(root, "Evidence", "report.pdf", b"one") == "report.pdf"
    assert storage.save(root, "Evidence", "report.pdf", b"two") == "report_v2.pdf"
    assert (root / "Evidence" / "report.pdf").read_bytes() == b"one"
    assert (root / "Evidence" / "report_v2.pdf").read_bytes() == b"two"


def test_save_creates_missing_folder(storage, root):
    assert storage.save(root, "New Folder", "a.txt", b"x") == "a.txt"
    assert (root / "New Folder" / "a.txt").exists()


def test_save_strips_client_supplied_directories(storage, root):
    assert storage.save(root, "Evidence", "C:/Users/me/scan.png", b"x") == "scan.png"
    assert (root / "Evidence" / "scan.png").exists()


def test_save_strips_windows_style_directories(storage, root):
    assert storage.save(root, "Evidence", "C:\\fakepath\\scan.pdf", b"x") == "scan.pdf"
    assert os.listdir(root / "Evidence") == ["scan.pdf"]


def test_save_rejects_traversal(storage, root):
    with pytest.raises(InvalidInputError):
        storage.save(root, "../outside", "a.txt", b"x")
    assert not (root.parent / "outside").exists()


def test_save_leaves_no_partial_file(storage, root, monkeypatch):
    def failing_replace(src, dst):
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr("lexvault.utils.files.os.replace", failing_replace)

    with pytest.raises(StorageIOError):
        storage.save(root, "Evidence", "report.pdf", b"data")
    assert os.listdir(root / "Evidence") == []


def test_open_existing_file(storage, root):
    write(root / "Evidence" / "a.pdf")
    assert storage.open(root, "Evidence", "a.pdf") == root / "Evidence" / "a.pdf"
    with pytest.raises(NotFoundError):
        storage.open(root, "Evidence", "b.pdf")


# ---------------------------------------------------------------- scan upload

def test_scan_upload_writes_pdf_and_originals(storage, root, image_bytes):
    images = [
        ScanImage("page1.png", image_bytes(size=(100, 150))),
        ScanImage("page2.jpg", image_bytes(size=(150, 100), fmt="JPEG")),
    ]

    result = storage.scan_upload(root, "Evidence", images, keep_originals=True)

    assert result.pdf == "ScannedDocument.pdf"
    assert result.originals == ["page1.png", "page2.jpg"]
    reader = PdfReader(io.BytesIO((root / "Evidence" / result.pdf).read_bytes()))
    assert len(reader.pages) == 2


def test_scan_upload_sessions_accumulate_versions(storage, root, image_bytes):
    images = [ScanImage("page.png", image_bytes())]

    first = storage.scan_upload(root, "Evidence", images, keep_originals=False)
    second = storage.scan_upload(root, "Evidence", images, keep_originals=False)
    third = storage.scan_upload(root, "Evidence", images, keep_originals=True)

    assert [first.pdf, second.pdf, third.pdf] == [
        "ScannedDocument.pdf", "ScannedDocument_v2.pdf", "ScannedDocument_v3.pdf"
    ]
    assert first.originals == [] and second.originals == []
    assert third.originals == ["page.png"]


def test_scan_upload_duplicate_original_names_are_versioned(storage, root, image_bytes):
    images = [ScanImage("IMG.png", image_bytes()), ScanImage("IMG.png", image_bytes())]

    result = storage.scan_upload(root, "Evidence", images)

    assert result.originals == ["IMG.png", "IMG_v2.png"]


def test_scan_upload_bad_image_leaves_folder_untouched(storage, root, image_bytes):
    images = [ScanImage("ok.png", image_bytes()), ScanImage("bad.png", b"garbage")]

    with pytest.raises(InvalidInputError):
        storage.scan_upload(root, "Evidence", images)
    assert os.listdir(root / "Evidence") == []


def test_scan_upload_rolls_back_on_write_failure(storage, root, image_bytes, monkeypatch):
    from lexvault.utils import files as file_utils

    real_write = file_utils.write_atomic
    calls = []

    def flaky_write(path, data):
        calls.append(path.name)
        if len(calls) == 2:
            raise OSError(errno.EIO, "I/O error")
        return real_write(path, data)

    monkeypatch.setattr("lexvault.services.storage.write_atomic", flaky_write)

    with pytest.raises(StorageIOError):
        storage.scan_upload(root, "Evidence", [ScanImage("p.png", image_bytes())])
    assert os.listdir(root / "Evidence") == []


def test_scan_upload_rollback_removes_folder_it_created(storage, root, image_bytes, monkeypatch):
    from lexvault.utils import files as file_utils

    real_write = file_utils.write_atomic
    calls = []

    def flaky_write(path, data):
        calls.append(path.name)
        if len(calls) == 2:
            raise OSError(errno.ENOSPC, "No space left on device")
        return real_write(path, data)

    monkeypatch.setattr("lexvault.services.storage.write_atomic", flaky_write)

    with pytest.raises(StorageIOError):
        storage.scan_upload(root, "Brand New/Batch 1", [ScanImage("p.png", image_bytes())])
    assert not (root / "Brand New").exists()
    assert sorted(os.listdir(root)) == ["Correspondence", "Evidence", "Pleadings"]


def test_scan_upload_keeps_windows_original_base_name(storage, root, image_bytes):
    images = [ScanImage("C:\\Users\\clerk\\page1.png", image_bytes())]

    result = storage.scan_upload(root, "Evidence", images)

    assert result.originals == ["page1.png"]


def test_custom_scan_base_name(root, image_bytes):
    storage = FileStorage(scan_base_name="Scan.pdf")
    result = storage.scan_upload(root, "Evidence", [ScanImage("p.png", image_bytes())], keep_originals=False)
    assert result.pdf == "Scan.pdf"


# ---------------------------------------------------------------- rename

def test_rename_appends_missing_extension(storage, root):
    write(root / "Evidence" / "ScannedDocument.pdf")

    final = storage.rename(root, "Evidence", "ScannedDocument.pdf", "Contract")

    assert final == "Contract.pdf"
    assert not (root / "Evidence" / "ScannedDocument.pdf").exists()
    assert (root / "Evidence" / "Contract.pdf").exists()


def test_rename_keeps_supplied_extension(storage, root):
    write(root / "Evidence" / "scan.pdf")
    assert storage.rename(root, "Evidence", "scan.pdf", "Contract.PDF") == "Contract.PDF"


def test_rename_collision_is_versioned(storage, root):
    write(root / "Evidence" / "Contract.pdf", b"existing")
    write(root / "Evidence" / "scan.pdf", b"new")

    final = storage.rename(root, "Evidence", "scan.pdf", "Contract")

    assert final == "Contract_v2.pdf"
    assert (root / "Evidence" / "Contract.pdf").read_bytes() == b"existing"
    assert (root / "Evidence" / "Contract_v2.pdf").read_bytes() == b"new"


def test_rename_missing_source(storage, root):
    with pytest.raises(NotFoundError):
        storage.rename(root, "Evidence", "nope.pdf", "Contract")


def test_rename_rejects_path_in_new_name(storage, root):
    write(root / "Evidence" / "scan.pdf")
    with pytest.raises(InvalidInputError):
        storage.rename(root, "Evidence", "scan.pdf", "../Contract")


def test_rename_falls_back_to_copy_across_devices(storage, root, monkeypatch):
    write(root / "Evidence" / "Contract.pdf", b"existing")
    write(root / "Evidence" / "scan.pdf", b"scanned")

    def cross_device_rename(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr("lexvault.utils.files.os.rename", cross_device_rename)

    final = storage.rename(root, "Evidence", "scan.pdf", "Contract")

    assert final == "Contract_v2.pdf"
    assert not (root / "Evidence" / "scan.pdf").exists()
    assert (root / "Evidence" / "Contract_v2.pdf").read_bytes() == b"scanned"


def test_rename_other_os_errors_are_fatal(storage, root, monkeypatch):
    write(root / "Evidence" / "scan.pdf")

    def denied_rename(src, dst):
        raise PermissionError(errno.EACCES, "Permission denied")

    monkeypatch.setattr("lexvault.utils.files.os.rename", denied_rename)

    with pytest.raises(StorageIOError):
        storage.rename(root, "Evidence", "scan.pdf", "Contract")
    assert (root / "Evidence" / "scan.pdf").exists()
