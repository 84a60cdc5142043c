"""In-memory virtual filesystem with inodes, metadata, and relative paths.

The tree is stored the Unix way:

- **Inode**: the record for a file or directory (type, content,
  timestamps, permission string).  The name does NOT live in the
  inode — it lives in the parent directory's ``children`` map.

- **Arena**: every inode sits in one ``dict[int, _Inode]`` owned by the
  ``FileSystem``.  Directories refer to their children by inode number,
  so no node ever holds a reference to another node.

- **Path resolution**: callers pass a path string plus the current
  working directory.  ``resolve_path`` turns that into a tuple of
  segments with ``.``, ``..`` and empty parts already folded away, and
  every operation walks the arena from the root using those segments.

Nothing outside this module gets hold of an inode.  Lookups return a
``NodeStat`` snapshot, and every mutation goes through a path-qualified
method that saves the whole tree to storage before it returns.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from itertools import count
from typing import TYPE_CHECKING, Any, TypeAlias

from py_sh.logging import LogLevel, LogSource

if TYPE_CHECKING:
    from py_sh.fs.persistence import Storage
    from py_sh.logging import Logger

# A resolved path: the segments below the root, e.g. ("home", "guest").
Segments: TypeAlias = tuple[str, ...]

DIR_PERMISSIONS = "drwxr-xr-x"
FILE_PERMISSIONS = "-rw-r--r--"
DIR_SIZE = 4096


class FileType(StrEnum):
    """The kind of object an inode represents."""

    FILE = "file"
    DIRECTORY = "directory"


class ParentMissingError(FileNotFoundError):
    """Raised when the parent of a path to create is missing or not a directory."""


class DirectoryNotEmptyError(OSError):
    """Raised when removing a non-empty directory without ``recursive``."""


@dataclass(frozen=True)
class NodeStat:
    """Read-only snapshot of an inode's metadata (returned by stat)."""

    name: str
    file_type: FileType
    size: int
    created_at: int
    modified_at: int
    permissions: str

    @property
    def is_dir(self) -> bool:
        """Return True if the node is a directory."""
        return self.file_type is FileType.DIRECTORY


def _now_ms() -> int:
    """Return the current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass
class _Inode:
    """Internal inode — content for files, name→inode map for directories."""

    inode_number: int
    file_type: FileType
    content: str = ""
    children: dict[str, int] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    created_at: int = field(default_factory=_now_ms)
    modified_at: int = field(default_factory=_now_ms)
    permissions: str = ""

    def __post_init__(self) -> None:
        if not self.permissions:
            self.permissions = (
                DIR_PERMISSIONS if self.file_type is FileType.DIRECTORY else FILE_PERMISSIONS
            )

    @property
    def size(self) -> int:
        """Return the content length for files, a fixed block size for directories."""
        if self.file_type is FileType.DIRECTORY:
            return DIR_SIZE
        return len(self.content)

    def to_stat(self, name: str) -> NodeStat:
        """Create a read-only snapshot of this inode."""
        return NodeStat(
            name=name,
            file_type=self.file_type,
            size=self.size,
            created_at=self.created_at,
            modified_at=self.modified_at,
            permissions=self.permissions,
        )


def resolve_path(path: str, cwd: str = "/") -> Segments:
    """Turn a possibly-relative path into absolute segments.

    ``..`` pops the last segment if there is one and is ignored at the
    root; ``.`` and empty segments are dropped.  An absolute *path*
    ignores *cwd* entirely.  Never raises.

    Examples::

        resolve_path("docs", "/home/guest")   → ("home", "guest", "docs")
        resolve_path("../..", "/home")        → ()
        resolve_path("/a//./b/", "/ignored")  → ("a", "b")

    """
    base = [] if path.startswith("/") else [p for p in cwd.split("/") if p]
    stack = list(base)
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if stack:
                stack.pop()
        else:
            stack.append(part)
    return tuple(stack)


def format_path(segments: Segments) -> str:
    """Render segments as an absolute path string (``()`` → ``/``)."""
    return "/" + "/".join(segments)


class FileSystem:
    """A hierarchical in-memory filesystem rooted at ``/``.

    Every public operation takes a path string and the caller's current
    working directory.  Mutating operations persist the whole tree
    through the optional *storage* before returning; a failed save is
    logged and otherwise ignored, so the in-memory tree stays usable.
    """

    def __init__(self, *, storage: Storage | None = None, logger: Logger | None = None) -> None:
        """Create a file system with an empty root directory.

        Args:
            storage: Where to persist the tree after each mutation.
            logger: Receives a warning when persisting fails.

        """
        self._storage = storage
        self._logger = logger
        self._inode_counter = count(start=0)
        self._inodes: dict[int, _Inode] = {}
        root = self._new_inode(FileType.DIRECTORY)
        self._root_ino = root.inode_number

    # -- arena helpers ---------------------------------------------------

    def _new_inode(self, file_type: FileType, content: str = "") -> _Inode:
        inode = _Inode(
            inode_number=next(self._inode_counter), file_type=file_type, content=content
        )
        self._inodes[inode.inode_number] = inode
        return inode

    def _lookup(self, segments: Segments) -> _Inode | None:
        """Walk *segments* from the root; None if any step is missing or a file."""
        current = self._inodes[self._root_ino]
        for segment in segments:
            if current.file_type is not FileType.DIRECTORY:
                return None
            child_ino = current.children.get(segment)
            if child_ino is None:
                return None
            current = self._inodes[child_ino]
        return current

    def _parent_dir(self, segments: Segments, path: str) -> _Inode:
        """Return the directory that should hold the last segment."""
        parent = self._lookup(segments[:-1])
        if parent is None or parent.file_type is not FileType.DIRECTORY:
            msg = f"{path}: Parent directory not found or is not a directory"
            raise ParentMissingError(msg)
        return parent

    def _release(self, inode: _Inode) -> None:
        """Drop an inode and, for directories, its whole subtree from the arena."""
        for child_ino in inode.children.values():
            self._release(self._inodes[child_ino])
        del self._inodes[inode.inode_number]

    def _commit(self) -> None:
        """Persist the tree after a mutation."""
        if self._storage is None:
            return
        try:
            self._storage.save(self.to_record())
        except OSError as e:
            if self._logger is not None:
                self._logger.log(
                    LogLevel.WARNING, f"could not persist filesystem: {e}", source=LogSource.FS
                )

    def save(self) -> None:
        """Persist the whole tree now (a no-op without storage)."""
        self._commit()

    # -- queries ---------------------------------------------------------

    def get_node(self, segments: Segments) -> NodeStat:
        """Return a snapshot of the node at already-resolved *segments*.

        Raises:
            FileNotFoundError: If any segment is missing or an
                intermediate segment is not a directory.

        """
        inode = self._lookup(segments)
        if inode is None:
            msg = f"{format_path(segments)}: No such file or directory"
            raise FileNotFoundError(msg)
        return inode.to_stat(segments[-1] if segments else "/")

    def exists(self, path: str, cwd: str = "/") -> bool:
        """Check whether a path exists."""
        return self._lookup(resolve_path(path, cwd)) is not None

    def is_dir(self, path: str, cwd: str = "/") -> bool:
        """Return True if *path* names a directory."""
        inode = self._lookup(resolve_path(path, cwd))
        return inode is not None and inode.file_type is FileType.DIRECTORY

    def is_file(self, path: str, cwd: str = "/") -> bool:
        """Return True if *path* names a regular file."""
        inode = self._lookup(resolve_path(path, cwd))
        return inode is not None and inode.file_type is FileType.FILE

    def stat(self, path: str, cwd: str = "/") -> NodeStat:
        """Return metadata for the given path.

        Raises:
            FileNotFoundError: If the path does not exist.

        """
        segments = resolve_path(path, cwd)
        inode = self._lookup(segments)
        if inode is None:
            msg = f"{path}: No such file or directory"
            raise FileNotFoundError(msg)
        return inode.to_stat(segments[-1] if segments else "/")

    def read_file(self, path: str, cwd: str = "/") -> str:
        """Read the content of a file.

        Raises:
            FileNotFoundError: If the path does not exist.
            IsADirectoryError: If the path is a directory.

        """
        inode = self._lookup(resolve_path(path, cwd))
        if inode is None:
            msg = f"{path}: No such file or directory"
            raise FileNotFoundError(msg)
        if inode.file_type is FileType.DIRECTORY:
            msg = f"{path}: Is a directory"
            raise IsADirectoryError(msg)
        return inode.content

    def read_dir(self, path: str, cwd: str = "/") -> list[str]:
        """List the entry names of a directory, sorted.

        Raises:
            FileNotFoundError: If the path does not exist.
            NotADirectoryError: If the path is a file.

        """
        inode = self._lookup(resolve_path(path, cwd))
        if inode is None:
            msg = f"{path}: No such file or directory"
            raise FileNotFoundError(msg)
        if inode.file_type is not FileType.DIRECTORY:
            msg = f"{path}: Not a directory"
            raise NotADirectoryError(msg)
        return sorted(inode.children)

    # -- mutations -------------------------------------------------------

    def write_file(self, path: str, content: str, cwd: str = "/", *, append: bool = False) -> None:
        """Write *content* to a file, creating it if absent.

        Args:
            path: Target path, absolute or relative to *cwd*.
            content: Text to write.
            cwd: Current working directory.
            append: Add to the end instead of replacing the content.

        Raises:
            ParentMissingError: If the parent is missing or not a directory.
            IsADirectoryError: If the target is a directory.

        """
        segments = resolve_path(path, cwd)
        if not segments:
            msg = f"{path}: Is a directory"
            raise IsADirectoryError(msg)
        parent = self._parent_dir(segments, path)
        name = segments[-1]
        child_ino = parent.children.get(name)

        if child_ino is None:
            inode = self._new_inode(FileType.FILE, content)
            parent.children[name] = inode.inode_number
        else:
            inode = self._inodes[child_ino]
            if inode.file_type is FileType.DIRECTORY:
                msg = f"{path}: Is a directory"
                raise IsADirectoryError(msg)
            inode.content = inode.content + content if append else content
            inode.modified_at = _now_ms()

        self._commit()

    def create_directory(self, path: str, cwd: str = "/") -> None:
        """Create an empty directory.

        Raises:
            FileExistsError: If the path already exists.
            ParentMissingError: If the parent directory is missing.

        """
        segments = resolve_path(path, cwd)
        if self._lookup(segments) is not None:
            msg = f"{path}: File exists"
            raise FileExistsError(msg)
        parent = self._parent_dir(segments, path)
        inode = self._new_inode(FileType.DIRECTORY)
        parent.children[segments[-1]] = inode.inode_number
        self._commit()

    def make_dirs(self, path: str, cwd: str = "/") -> None:
        """Create *path* and any missing parents; existing directories are fine.

        Raises:
            NotADirectoryError: If a component exists as a file.

        """
        current = self._inodes[self._root_ino]
        created = False
        for segment in resolve_path(path, cwd):
            child_ino = current.children.get(segment)
            if child_ino is None:
                child = self._new_inode(FileType.DIRECTORY)
                current.children[segment] = child.inode_number
                created = True
            else:
                child = self._inodes[child_ino]
                if child.file_type is not FileType.DIRECTORY:
                    msg = f"{path}: Not a directory"
                    raise NotADirectoryError(msg)
            current = child
        if created:
            self._commit()

    def touch(self, path: str, cwd: str = "/") -> None:
        """Create an empty file, or bump the modification time if it exists."""
        inode = self._lookup(resolve_path(path, cwd))
        if inode is None:
            self.write_file(path, "", cwd)
            return
        inode.modified_at = _now_ms()
        self._commit()

    def delete(self, path: str, recursive: bool = False, cwd: str = "/") -> None:
        """Delete a file or directory.

        Args:
            path: Target path, absolute or relative to *cwd*.
            recursive: Required to delete a non-empty directory.
            cwd: Current working directory.

        Raises:
            OSError: If the path resolves to the root.
            FileNotFoundError: If the path does not exist.
            DirectoryNotEmptyError: If the directory has entries and
                *recursive* is false.

        """
        segments = resolve_path(path, cwd)
        if not segments:
            msg = "cannot remove root directory '/'"
            raise OSError(msg)

        inode = self._lookup(segments)
        if inode is None:
            msg = f"{path}: No such file or directory"
            raise FileNotFoundError(msg)
        if inode.file_type is FileType.DIRECTORY and inode.children and not recursive:
            msg = f"{path}: Directory not empty. Use -r option."
            raise DirectoryNotEmptyError(msg)

        parent = self._parent_dir(segments, path)
        del parent.children[segments[-1]]
        self._release(inode)
        self._commit()

    def move(self, source: str, destination: str, cwd: str = "/") -> None:
        """Move or rename a node, keeping its inode.

        If *destination* is an existing directory the node moves inside
        it under its current name.  An existing file at the final target
        is replaced, unless *source* is a directory.

        Raises:
            FileNotFoundError: If *source* does not exist.
            ParentMissingError: If the target's parent is missing.
            IsADirectoryError: If the final target is an existing directory.
            NotADirectoryError: If a directory would replace a file.
            OSError: If *source* is the root or the move would put a
                directory inside itself.

        """
        src = resolve_path(source, cwd)
        if not src:
            msg = "cannot move root directory '/'"
            raise OSError(msg)
        node = self._lookup(src)
        if node is None:
            msg = f"{source}: No such file or directory"
            raise FileNotFoundError(msg)

        dst = resolve_path(destination, cwd)
        existing = self._lookup(dst)
        if existing is not None and existing.file_type is FileType.DIRECTORY:
            dst = (*dst, src[-1])
            existing = self._lookup(dst)
        if dst == src:
            return
        if dst[: len(src)] == src:
            msg = f"cannot move '{source}' to a subdirectory of itself"
            raise OSError(msg)
        if existing is not None and existing.file_type is FileType.DIRECTORY:
            msg = f"{format_path(dst)}: Is a directory"
            raise IsADirectoryError(msg)
        if existing is not None and node.file_type is FileType.DIRECTORY:
            msg = f"cannot overwrite non-directory '{format_path(dst)}' with directory '{source}'"
            raise NotADirectoryError(msg)

        new_parent = self._parent_dir(dst, destination)
        old_parent = self._parent_dir(src, source)
        if existing is not None:
            self._release(existing)
        del old_parent.children[src[-1]]
        new_parent.children[dst[-1]] = node.inode_number
        self._commit()

    # -- serialization ---------------------------------------------------

    def to_record(self) -> dict[str, Any]:
        """Serialize the tree to the nested ``{type, name, ...}`` record.

        Directories carry ``children`` (name → record), files carry
        ``content``; both carry ``metadata`` with millisecond
        timestamps and the permission string.
        """
        return self._to_record(self._inodes[self._root_ino], "/")

    def _to_record(self, inode: _Inode, name: str) -> dict[str, Any]:
        record: dict[str, Any] = {
            "type": inode.file_type.value,
            "name": name,
            "metadata": {
                "createdAt": inode.created_at,
                "modifiedAt": inode.modified_at,
                "permissions": inode.permissions,
            },
        }
        if inode.file_type is FileType.DIRECTORY:
            record["children"] = {
                child: self._to_record(self._inodes[ino], child)
                for child, ino in inode.children.items()
            }
        else:
            record["content"] = inode.content
        return record

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        *,
        storage: Storage | None = None,
        logger: Logger | None = None,
    ) -> FileSystem:
        """Rebuild a filesystem from a record produced by ``to_record()``.

        Missing metadata (hand-written records) falls back to "now" and
        the default permission strings.

        Raises:
            ValueError: If the root record is not a directory or a node
                has an unknown type.

        """
        if record.get("type") != FileType.DIRECTORY.value:
            msg = "root record must be a directory"
            raise ValueError(msg)
        fs = cls(storage=storage, logger=logger)
        fs._inodes.clear()
        fs._root_ino = fs._from_record(record).inode_number
        return fs

    def _from_record(self, record: dict[str, Any]) -> _Inode:
        try:
            file_type = FileType(record.get("type"))
        except ValueError as e:
            msg = f"unknown node type: {record.get('type')!r}"
            raise ValueError(msg) from e
        inode = self._new_inode(file_type, record.get("content") or "")
        metadata: dict[str, Any] = record.get("metadata") or {}
        inode.created_at = int(metadata.get("createdAt", inode.created_at))
        inode.modified_at = int(metadata.get("modifiedAt", inode.modified_at))
        inode.permissions = metadata.get("permissions", inode.permissions)
        if file_type is FileType.DIRECTORY:
            for name, child in (record.get("children") or {}).items():
                inode.children[name] = self._from_record(child).inode_number
        return inode
