# backend/lexvault/services/storage.py
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePath, PureWindowsPath
from typing import List, Optional, Sequence

from ..exceptions import InvalidInputError, NotFoundError, StorageIOError
from ..utils.files import ensure_dir, move_file, write_atomic
from ..utils.logging import storage_logger
from .naming import next_versioned_name, split_name
from .scan import ScanConverter, ScanImage, scan_converter

DEFAULT_ORIGINAL_NAME = "ScannedImage.png"


@dataclass
class FileEntry:
    name: str
    size: int
    modified: Optional[datetime]


@dataclass
class SearchResult:
    name: str
    folder: str
    size: int
    modified: Optional[datetime]


@dataclass
class ScanResult:
    pdf: str
    originals: List[str] = field(default_factory=list)


def _modified_at(stat_result: os.stat_result) -> datetime:
    return datetime.fromtimestamp(stat_result.st_mtime, tz=timezone.utc)


def _base_name(filename: Optional[str]) -> str:
    """Last component of a client-supplied name; browsers may send either separator"""
    return PureWindowsPath(filename or "").name


class FileStorage:
    """Per-client folder tree on the local filesystem.

    Every operation takes the client's root directory (``Client.folder_path``)
    and works strictly below it. Writes never overwrite: target names go
    through :func:`next_versioned_name`. The name check and the write are not
    atomic, so two concurrent writers of the same name can still race.
    """

    def __init__(self, converter: ScanConverter = scan_converter, scan_base_name: str = "ScannedDocument.pdf"):
        self.converter = converter
        self.scan_base_name = scan_base_name

    # ------------------------------------------------------------------ paths

    @staticmethod
    def _check_segment(segment: str, kind: str, allow_nested: bool) -> None:
        if segment is None or not str(segment).strip():
            raise InvalidInputError(f"Missing {kind}")
        pure = PurePath(segment)
        if pure.is_absolute() or os.path.isabs(segment):
            raise InvalidInputError(f"Invalid {kind}: absolute paths are not allowed", path=segment)
        if ".." in pure.parts or "\\" in segment:
            raise InvalidInputError(f"Invalid {kind}: path traversal is not allowed", path=segment)
        if not allow_nested and len(pure.parts) != 1:
            raise InvalidInputError(f"Invalid {kind}: must be a single path component", path=segment)

    def resolve(
            self,
            client_root: str | Path,
            folder: str,
            filename: Optional[str] = None,
            must_exist: bool = False
    ) -> Path:
        """Map (client root, folder, file) onto a path below the client root.

        Segments that are absolute or climb out of the root raise
        InvalidInputError. With ``must_exist`` the folder (and the file, when
        given) must already be on disk, otherwise NotFoundError.
        """
        if not client_root or not Path(client_root).is_absolute():
            raise InvalidInputError("Client root must be an absolute path", path=client_root)

        root = Path(client_root)
        self._check_segment(folder, "folder", allow_nested=True)
        directory = root / folder
        if filename is not None:
            self._check_segment(filename, "file name", allow_nested=False)

        # Symlinks inside the tree must not lead outside of it either
        real_root = root.resolve()
        if not directory.resolve().is_relative_to(real_root):
            raise InvalidInputError("Folder resolves outside the client root", path=folder)

        if must_exist and not directory.is_dir():
            raise NotFoundError(f"Folder not found: {folder}", path=str(directory))

        if filename is None:
            return directory

        path = directory / filename
        if must_exist and not path.is_file():
            raise NotFoundError(f"File not found: {filename}", path=str(path))
        return path

    # ------------------------------------------------------------------ reads

    def list_folders(self, client_root: str | Path) -> List[str]:
        """Sorted names of the directories directly under the client root.

        A missing root means "no documents yet" and yields an empty list.
        """
        root = Path(client_root) if client_root else None
        if root is None or not root.is_dir():
            return []

        try:
            return sorted(entry.name for entry in root.iterdir() if entry.is_dir())
        except OSError as e:
            storage_logger.error("Failed to list folders", extra={"path": str(root), "error": str(e)})
            raise StorageIOError(f"Failed to read {root}: {e.strerror or e}", path=str(root)) from e

    def _scan_files(self, directory: Path) -> List[tuple[str, os.stat_result]]:
        try:
            entries = []
            with os.scandir(directory) as it:
                for entry in it:
                    if entry.is_file():
                        entries.append((entry.name, entry.stat()))
            return sorted(entries, key=lambda item: item[0])
        except OSError as e:
            storage_logger.error("Failed to read folder", extra={"path": str(directory), "error": str(e)})
            raise StorageIOError(f"Failed to read {directory}: {e.strerror or e}", path=str(directory)) from e

    def list_files(self, client_root: str | Path, folder: str) -> List[FileEntry]:
        """Regular files directly under ``client_root/folder``, sorted by name"""
        directory = self.resolve(client_root, folder)
        if not directory.is_dir():
            return []

        return [
            FileEntry(name=name, size=stat.st_size, modified=_modified_at(stat))
            for name, stat in self._scan_files(directory)
        ]

    def search(self, client_root: str | Path, query: str) -> List[SearchResult]:
        """Case-insensitive substring match on file names across every folder.

        Results are ordered by folder, then name. Any unreadable folder aborts
        the whole search with StorageIOError.
        """
        start_time = time.time()
        needle = (query or "").lower()
        results: List[SearchResult] = []

        root = Path(client_root)
        for folder in self.list_folders(root):
            for name, stat in self._scan_files(root / folder):
                if needle in name.lower():
                    results.append(SearchResult(
                        name=name,
                        folder=folder,
                        size=stat.st_size,
                        modified=_modified_at(stat)
                    ))

        storage_logger.info("Search completed", extra={
            "client_root": str(root),
            "query": query,
            "result_count": len(results),
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return results

    def open(self, client_root: str | Path, folder: str, filename: str) -> Path:
        """Path of an existing file for download"""
        return self.resolve(client_root, folder, filename, must_exist=True)

    # ----------------------------------------------------------------- writes

    def _write_versioned(self, directory: Path, desired_name: str, data: bytes) -> str:
        try:
            final_name = next_versioned_name(directory, desired_name)
            write_atomic(directory / final_name, data)
        except OSError as e:
            storage_logger.error("Failed to write file", extra={
                "directory": str(directory),
                "requested_name": desired_name,
                "error": str(e)
            })
            raise StorageIOError(
                f"Failed to write {desired_name}: {e.strerror or e}",
                path=str(directory)
            ) from e
        return final_name

    def _prepare_directory(self, client_root: str | Path, folder: str) -> Path:
        directory = self.resolve(client_root, folder)
        try:
            return ensure_dir(directory)
        except OSError as e:
            raise StorageIOError(f"Failed to create folder {folder}: {e.strerror or e}", path=str(directory)) from e

    def save(self, client_root: str | Path, folder: str, filename: str, data: bytes) -> str:
        """Store one uploaded file and return the name it was stored under"""
        filename = _base_name(filename)
        self._check_segment(filename, "file name", allow_nested=False)
        directory = self._prepare_directory(client_root, folder)

        final_name = self._write_versioned(directory, filename, data)
        storage_logger.info("Stored uploaded file", extra={
            "directory": str(directory),
            "requested_name": filename,
            "stored_as": final_name,
            "size": len(data)
        })
        return final_name

    def scan_upload(
            self,
            client_root: str | Path,
            folder: str,
            images: Sequence[ScanImage],
            keep_originals: bool = True
    ) -> ScanResult:
        """Convert a scan session to one PDF and optionally keep the source images.

        All-or-nothing: a decode failure aborts before anything is written, and
        a write failure removes whatever this call already stored.
        """
        directory = self.resolve(client_root, folder)
        pdf_bytes = self.converter.convert(images)

        # Deepest first, so the rollback can remove them in order
        created_dirs: List[Path] = []
        missing = directory
        while not missing.exists():
            created_dirs.append(missing)
            missing = missing.parent
        self._prepare_directory(client_root, folder)

        written: List[Path] = []
        try:
            pdf_name = self._write_versioned(directory, self.scan_base_name, pdf_bytes)
            written.append(directory / pdf_name)

            originals: List[str] = []
            if keep_originals:
                for image in images:
                    desired = _base_name(image.filename) or DEFAULT_ORIGINAL_NAME
                    self._check_segment(desired, "file name", allow_nested=False)
                    stored = self._write_versioned(directory, desired, image.data)
                    written.append(directory / stored)
                    originals.append(stored)
        except Exception:
            for path in written:
                path.unlink(missing_ok=True)
            for created in created_dirs:
                try:
                    created.rmdir()
                except OSError as e:
                    storage_logger.warning("Could not remove folder created by scan upload", extra={
                        "directory": str(created),
                        "error": str(e)
                    })
                    break
            storage_logger.warning("Rolled back partial scan upload", extra={
                "directory": str(directory),
                "removed": [p.name for p in written]
            })
            raise

        storage_logger.info("Stored scan session", extra={
            "directory": str(directory),
            "pdf": pdf_name,
            "page_count": len(images),
            "originals": originals
        })
        return ScanResult(pdf=pdf_name, originals=originals)

    def rename(self, client_root: str | Path, folder: str, old_name: str, new_name: str) -> str:
        """Give an existing file a new, version-safe name in the same folder"""
        source = self.resolve(client_root, folder, old_name, must_exist=True)
        self._check_segment(new_name, "new name", allow_nested=False)

        _, extension = split_name(old_name)
        desired = new_name if new_name.lower().endswith(extension.lower()) else f"{new_name}{extension}"

        directory = source.parent
        try:
            final_name = next_versioned_name(directory, desired)
            move_file(source, directory / final_name)
        except OSError as e:
            storage_logger.error("Failed to rename file", extra={
                "source": str(source),
                "requested_name": desired,
                "error": str(e)
            })
            raise StorageIOError(f"Failed to rename {old_name}: {e.strerror or e}", path=str(source)) from e

        storage_logger.info("Renamed file", extra={
            "directory": str(directory),
            "old_name": old_name,
            "requested_name": new_name,
            "final_name": final_name
        })
        return final_name
