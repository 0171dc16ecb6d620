# backend/lexvault/utils/files.py
import errno
import os
import shutil
import tempfile
from pathlib import Path

from fastapi import UploadFile

from ..config import settings
from ..exceptions import InvalidInputError


def ensure_dir(directory: Path) -> Path:
    """Create a directory (and parents); no-op when it already exists"""
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def write_atomic(path: Path, data: bytes) -> Path:
    """Write bytes next to `path`, fsync, then move into place.

    Nothing is visible under the final name until the content is complete.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=".upload-", suffix=".part", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as buffer:
            buffer.write(data)
            buffer.flush()
            os.fsync(buffer.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


def move_file(source: Path, destination: Path) -> Path:
    """Rename a file, falling back to copy + delete across devices"""
    try:
        os.rename(source, destination)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        shutil.copy2(source, destination)
        os.unlink(source)
    return destination


async def read_upload_file(upload_file: UploadFile, max_bytes: int | None = None) -> bytes:
    """Read an uploaded file into memory, enforcing the configured size limit"""
    limit = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES
    data = await upload_file.read()
    if len(data) > limit:
        raise InvalidInputError(
            f"File {upload_file.filename} exceeds the {limit} byte upload limit"
        )
    return data

