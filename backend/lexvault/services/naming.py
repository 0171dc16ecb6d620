# backend/lexvault/services/naming.py
import re
from pathlib import Path

from ..exceptions import InvalidInputError


def split_name(filename: str) -> tuple[str, str]:
    """Split a filename into (stem, extension), keeping the leading dot on the extension"""
    path = Path(filename)
    return path.stem, path.suffix


def version_pattern(stem: str, extension: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(stem)}(?:_v([1-9]\d*))?{re.escape(extension)}$")


def next_versioned_name(directory: Path, desired_name: str) -> str:
    """Return a name for `desired_name` that does not collide with anything in `directory`.

    The first write keeps the bare name. Later writes get `_v<N>` where N is one
    more than the highest version already present; the bare name counts as
    version 1, so repeated writes produce `report.pdf`, `report_v2.pdf`,
    `report_v3.pdf`, ... Gaps in the sequence are never reused.
    """
    if not desired_name:
        raise InvalidInputError("A file name is required")

    stem, extension = split_name(desired_name)
    pattern = version_pattern(stem, extension)

    directory = Path(directory)
    existing = [entry.name for entry in directory.iterdir()] if directory.is_dir() else []

    max_version = -1
    for name in existing:
        match = pattern.match(name)
        if match:
            version = int(match.group(1)) if match.group(1) else 1
            max_version = max(max_version, version)

    if max_version == -1 and desired_name not in existing:
        return desired_name

    return f"{stem}_v{max_version + 1}{extension}"
