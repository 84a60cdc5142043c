"""Virtual filesystem — inode tree, path resolution, and persistence.

Re-exports public symbols so callers can write::

    from py_sh.fs import FileSystem, JsonFileStorage
"""

from py_sh.fs.filesystem import (
    DirectoryNotEmptyError,
    FileSystem,
    FileType,
    NodeStat,
    ParentMissingError,
    format_path,
    resolve_path,
)
from py_sh.fs.persistence import (
    JsonFileStorage,
    MemoryStorage,
    Storage,
    dump_filesystem,
    load_filesystem,
    record_from_host,
)

__all__ = [
    "DirectoryNotEmptyError",
    "FileSystem",
    "FileType",
    "JsonFileStorage",
    "MemoryStorage",
    "NodeStat",
    "ParentMissingError",
    "Storage",
    "dump_filesystem",
    "format_path",
    "load_filesystem",
    "record_from_host",
    "resolve_path",
]
