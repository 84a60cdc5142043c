"""Filesystem persistence — where the tree lives between sessions.

The filesystem saves itself after every mutation by handing its whole
tree, as a nested record, to a ``Storage``.  The record is plain JSON:

    {"type": "directory", "name": "/", "metadata": {...},
     "children": {"home": {"type": "directory", ...}}}

Files carry ``content`` instead of ``children``.  Two storages exist:

    - ``JsonFileStorage`` — one JSON file on the host disk.
    - ``MemoryStorage`` — keeps the last record in memory (tests, web demo).

``record_from_host()`` builds the same record from a real directory,
which is how a seed ``filesystem.json`` is produced from a content tree.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol, TypeAlias

from py_sh.fs.filesystem import DIR_PERMISSIONS, FILE_PERMISSIONS, FileSystem, FileType

Record: TypeAlias = dict[str, Any]


class Storage(Protocol):
    """Durable home of a filesystem tree record."""

    def load(self) -> Record | None:
        """Return the saved record, or None if nothing has been saved."""
        ...

    def save(self, record: Record) -> None:
        """Replace the saved record."""
        ...

    def clear(self) -> None:
        """Forget the saved record."""
        ...


class MemoryStorage:
    """Keep the most recent record in memory."""

    def __init__(self, record: Record | None = None) -> None:
        """Create a storage, optionally pre-loaded with *record*."""
        self._record = record
        self.saves = 0

    def load(self) -> Record | None:
        """Return the saved record, or None."""
        return self._record

    def save(self, record: Record) -> None:
        """Remember *record* and count the save."""
        self._record = record
        self.saves += 1

    def clear(self) -> None:
        """Forget the saved record."""
        self._record = None


class JsonFileStorage:
    """Persist the record as a JSON file on the host."""

    def __init__(self, path: Path) -> None:
        """Create a storage backed by the JSON file at *path*."""
        self._path = path

    @property
    def path(self) -> Path:
        """Return the backing file path."""
        return self._path

    def load(self) -> Record | None:
        """Read the record back from disk.

        Returns None if the file does not exist.

        Raises:
            ValueError: If the file is not valid JSON or not an object.

        """
        if not self._path.exists():
            return None
        data = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            msg = f"{self._path}: expected a JSON object"
            raise ValueError(msg)
        return data  # pyright: ignore[reportUnknownVariableType]

    def save(self, record: Record) -> None:
        """Write the record to disk, creating parent directories if needed."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(record, indent=2), encoding="utf-8")

    def clear(self) -> None:
        """Delete the backing file if present."""
        self._path.unlink(missing_ok=True)


def dump_filesystem(fs: FileSystem, path: Path) -> None:
    """Save a filesystem to a JSON file."""
    JsonFileStorage(path).save(fs.to_record())


def load_filesystem(path: Path) -> FileSystem:
    """Load a filesystem from a JSON file.

    Raises:
        FileNotFoundError: If the path does not exist.

    """
    record = JsonFileStorage(path).load()
    if record is None:
        msg = f"{path}: No such file"
        raise FileNotFoundError(msg)
    return FileSystem.from_record(record)


def record_from_host(directory: Path, *, name: str = "/") -> Record:
    """Build a tree record mirroring a real directory on the host.

    File content is read as UTF-8 text; timestamps come from the host's
    ``stat`` (milliseconds).  Files that are not valid UTF-8 are skipped.

    Raises:
        NotADirectoryError: If *directory* is not a directory.

    """
    if not directory.is_dir():
        msg = f"{directory}: Not a directory"
        raise NotADirectoryError(msg)
    return _host_dir_record(directory, name)


def _host_metadata(entry: Path) -> dict[str, Any]:
    info = entry.stat()
    return {
        "createdAt": int(getattr(info, "st_birthtime", info.st_ctime) * 1000),
        "modifiedAt": int(info.st_mtime * 1000),
        "permissions": DIR_PERMISSIONS if entry.is_dir() else FILE_PERMISSIONS,
    }


def _host_dir_record(directory: Path, name: str) -> Record:
    children: dict[str, Record] = {}
    for child in sorted(directory.iterdir()):
        child_record = _host_record(child)
        if child_record is not None:
            children[child.name] = child_record
    return {
        "type": FileType.DIRECTORY.value,
        "name": name,
        "children": children,
        "metadata": _host_metadata(directory),
    }


def _host_record(entry: Path) -> Record | None:
    """Return the record for *entry*, or None for a file that is not UTF-8."""
    if entry.is_dir():
        return _host_dir_record(entry, entry.name)
    try:
        content = entry.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return None
    return {
        "type": FileType.FILE.value,
        "name": entry.name,
        "content": content,
        "metadata": _host_metadata(entry),
    }
