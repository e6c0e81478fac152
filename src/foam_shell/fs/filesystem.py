"""Path-keyed virtual filesystem with write-through persistence.

Unlike a block filesystem, every object here is one **inode record**
keyed by its canonical absolute path:

- **Inode** — type, permission bits, ownership, size, timestamps and
  content.  Directories carry no content (their children are simply the
  records whose path starts with ``<dir>/``); symlinks carry their target
  string.
- **Invariant** — a non-root path exists only if its parent exists and
  is a directory.  The root ``/`` always exists.
- **Write-through** — every mutation is staged in a journal transaction
  (see ``fs/journal.py``) and committed to the backing store in a single
  call.  Multi-record operations such as a directory rename or a
  recursive delete are *one* transaction: if any step fails, the cache is
  rolled back from the before images and the store never sees a partial
  subtree.

All public methods accept any path string and canonicalize it against
``/``; resolving user input relative to a working directory is the
session's job (``Session.resolve_path``).
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from enum import StrEnum
from typing import Any

from foam_shell.fs.errors import (
    AlreadyExists,
    InvalidArgument,
    IsADirectory,
    NotADirectory,
    NotEmpty,
    NotFound,
    PermissionDenied,
    TooManyLinks,
)
from foam_shell.fs.globbing import glob_match
from foam_shell.fs.journal import Journal, JournalEntry, JournalOp, Transaction
from foam_shell.fs.paths import ROOT, basename, is_within, join, parent_of, resolve_path
from foam_shell.fs.persistence import MemoryStore, Store
from foam_shell.logging import Logger

MAX_SYMLINK_DEPTH = 40
"""Maximum symlink resolution depth — matches Linux's SYMLOOP_MAX."""

FILE_MODE = 0o644
DIR_MODE = 0o755
DEFAULT_UID = 1000
DEFAULT_GID = 1000

DEFAULT_DIRS: tuple[str, ...] = (
    "/",
    "/home",
    "/home/user",
    "/tmp",
    "/bin",
    "/usr",
    "/usr/bin",
    "/etc",
    "/var",
    "/var/log",
    "/dev",
)

# (path, content, uid) for the files seeded on first initialization.
DEFAULT_FILES: tuple[tuple[str, str, int], ...] = (
    ("/etc/hostname", "foam\n", 0),
    ("/home/user/.bashrc", '# ~/.bashrc\nexport PS1="user@foam:$ "\n', DEFAULT_UID),
)


class FileType(StrEnum):
    """The kind of object an inode represents."""

    FILE = "file"
    DIRECTORY = "dir"
    SYMLINK = "symlink"


@dataclass
class Inode:
    """The metadata-plus-content record stored for every path.

    ``content`` is ``None`` for directories, the text for files and the
    target path for symlinks.
    """

    path: str
    file_type: FileType
    mode: int
    uid: int = DEFAULT_UID
    gid: int = DEFAULT_GID
    size: int = 0
    ctime: float = 0.0
    mtime: float = 0.0
    atime: float = 0.0
    content: str | None = None

    @property
    def is_dir(self) -> bool:
        """Return True for directories."""
        return self.file_type is FileType.DIRECTORY

    @property
    def is_symlink(self) -> bool:
        """Return True for symbolic links."""
        return self.file_type is FileType.SYMLINK

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted record layout (``type`` not ``file_type``)."""
        data = asdict(self)
        data["type"] = self.file_type.value
        del data["file_type"]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Inode:
        """Rebuild an inode from a persisted record."""
        return cls(
            path=data["path"],
            file_type=FileType(data["type"]),
            mode=data.get("mode", DIR_MODE if data["type"] == FileType.DIRECTORY else FILE_MODE),
            uid=data.get("uid", DEFAULT_UID),
            gid=data.get("gid", DEFAULT_GID),
            size=data.get("size", 0),
            ctime=data.get("ctime", 0.0),
            mtime=data.get("mtime", 0.0),
            atime=data.get("atime", 0.0),
            content=data.get("content"),
        )


@dataclass(frozen=True)
class DirEntry:
    """One row of a directory listing."""

    name: str
    file_type: FileType
    size: int
    mode: int
    mtime: float


class FileSystem:
    """A hierarchical filesystem over a path-keyed inode table.

    The inode table is loaded from *store* at construction.  An empty
    store is seeded with the default tree (``DEFAULT_DIRS`` and
    ``DEFAULT_FILES``).
    """

    def __init__(
        self,
        store: Store | None = None,
        *,
        clock: Callable[[], float] = time.time,
        logger: Logger | None = None,
    ) -> None:
        """Create a filesystem over *store* (a fresh ``MemoryStore`` by default).

        Args:
            store: Backing storage; mutations are written through to it.
            clock: Source of timestamps, in seconds.
            logger: Optional log buffer for mutation records.

        """
        self._store: Store = store if store is not None else MemoryStore()
        self._clock = clock
        self._logger = logger
        self._journal = Journal()
        self._txn: Transaction | None = None
        self._inodes: dict[str, Inode] = {
            path: Inode.from_dict(record) for path, record in self._store.load().items()
        }
        if ROOT not in self._inodes:
            self._seed_default_tree()

    @property
    def store(self) -> Store:
        """Return the backing store."""
        return self._store

    @property
    def journal(self) -> Journal:
        """Return the mutation journal (for inspection/testing)."""
        return self._journal

    @property
    def logger(self) -> Logger | None:
        """Return the attached logger, if any."""
        return self._logger

    @logger.setter
    def logger(self, logger: Logger | None) -> None:
        self._logger = logger

    def _seed_default_tree(self) -> None:
        """Create the default directories and files in one transaction."""
        now = self._clock()
        with self.transaction():
            for path in DEFAULT_DIRS:
                self._put(
                    Inode(
                        path=path,
                        file_type=FileType.DIRECTORY,
                        mode=DIR_MODE,
                        uid=0,
                        gid=0,
                        ctime=now,
                        mtime=now,
                        atime=now,
                    )
                )
            for path, content, owner in DEFAULT_FILES:
                self._put(
                    Inode(
                        path=path,
                        file_type=FileType.FILE,
                        mode=FILE_MODE,
                        uid=owner,
                        gid=owner,
                        size=len(content),
                        ctime=now,
                        mtime=now,
                        atime=now,
                        content=content,
                    )
                )

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Group every mutation inside the block into one atomic commit.

        Nested use joins the outer transaction.  On an exception — from
        the block itself or from the store while committing — the cache is
        restored from the before images and the exception propagates.
        """
        if self._txn is not None:
            yield self._txn
            return

        txn = self._journal.begin()
        self._txn = txn
        try:
            yield txn
            puts, deletes = txn.net_changes()
            if puts or deletes:
                self._store.commit(puts, deletes)
        except BaseException:
            self._rollback(txn)
            self._journal.abort(txn)
            raise
        else:
            self._journal.commit(txn)
        finally:
            self._txn = None
            self._journal.clear()

    def _rollback(self, txn: Transaction) -> None:
        """Undo a transaction's cache changes, newest first."""
        for path, before in txn.undo_log():
            if before is None:
                self._inodes.pop(path, None)
            else:
                self._inodes[path] = Inode.from_dict(before)
        if txn.entries and self._logger is not None:
            self._logger.warning(
                f"rolled back {len(txn.entries)} change(s) in txn {txn.txn_id}", source="fs"
            )

    def _put(self, inode: Inode) -> None:
        """Write *inode* into the cache and the active transaction."""
        if self._txn is None:  # pragma: no cover
            msg = "mutation outside a transaction"
            raise RuntimeError(msg)
        before = self._inodes.get(inode.path)
        self._journal.append(
            self._txn,
            JournalEntry(
                op=JournalOp.PUT,
                path=inode.path,
                record=inode.to_dict(),
                before=before.to_dict() if before is not None else None,
            ),
        )
        self._inodes[inode.path] = inode

    def _remove(self, path: str) -> None:
        """Delete the record at *path* from the cache and the active transaction."""
        if self._txn is None:  # pragma: no cover
            msg = "mutation outside a transaction"
            raise RuntimeError(msg)
        before = self._inodes.get(path)
        self._journal.append(
            self._txn,
            JournalEntry(
                op=JournalOp.DELETE,
                path=path,
                record=None,
                before=before.to_dict() if before is not None else None,
            ),
        )
        self._inodes.pop(path, None)

    def _debug(self, message: str) -> None:
        if self._logger is not None:
            self._logger.debug(message, source="fs")

    # -- Path resolution ---------------------------------------------------

    def _real_path(self, path: str, *, follow: bool = True) -> str:
        """Canonicalize *path* and replace symlinked components by their targets.

        Intermediate symlinks are always followed; the final component is
        followed only when *follow* is true.  Relative link targets are
        resolved against the link's parent directory.  The returned key
        need not exist.

        Raises:
            TooManyLinks: If more than ``MAX_SYMLINK_DEPTH`` links are followed.

        """
        canonical = resolve_path(path)
        parts = canonical.strip("/").split("/") if canonical != ROOT else []
        current = ROOT
        depth = 0
        i = 0
        while i < len(parts):
            candidate = join(current, parts[i])
            inode = self._inodes.get(candidate)
            is_last = i == len(parts) - 1
            if inode is not None and inode.is_symlink and (follow or not is_last):
                depth += 1
                if depth > MAX_SYMLINK_DEPTH:
                    raise TooManyLinks(canonical)
                target = resolve_path(inode.content or "", cwd=current)
                rest = parts[i + 1 :]
                parts = (target.strip("/").split("/") if target != ROOT else []) + rest
                current = ROOT
                i = 0
                continue
            current = candidate
            i += 1
        return current

    def _lookup(self, path: str, *, op: str, follow: bool = True) -> Inode:
        """Return the live inode for *path* or raise ``NotFound``."""
        real = self._real_path(path, follow=follow)
        inode = self._inodes.get(real)
        if inode is None:
            raise NotFound(resolve_path(path), op=op)
        return inode

    def _require_parent_dir(self, real: str, *, op: str) -> None:
        """Enforce the parent-exists-and-is-a-directory invariant."""
        parent = self._inodes.get(parent_of(real))
        if parent is None:
            raise NotFound(real, op=op)
        if not parent.is_dir:
            raise NotADirectory(parent.path, op=op)

    def _children(self, directory: str) -> list[Inode]:
        """Return the direct children of a real directory path, sorted by name."""
        prefix = "/" if directory == ROOT else directory + "/"
        found = [
            inode
            for path, inode in self._inodes.items()
            if path != directory and path.startswith(prefix) and "/" not in path[len(prefix) :]
        ]
        return sorted(found, key=lambda inode: inode.path)

    def _subtree(self, directory: str) -> list[Inode]:
        """Return every record strictly below *directory*, sorted by path."""
        found = [
            inode
            for path, inode in self._inodes.items()
            if path != directory and is_within(path, directory)
        ]
        return sorted(found, key=lambda inode: inode.path)

    # -- Queries -------------------------------------------------------------

    def exists(self, path: str) -> bool:
        """Return True if *path* (following symlinks) has an inode."""
        try:
            return self._real_path(path) in self._inodes
        except TooManyLinks:
            return False

    def lexists(self, path: str) -> bool:
        """Return True if *path* itself has an inode (a dangling link counts)."""
        return self._real_path(path, follow=False) in self._inodes

    def stat(self, path: str) -> Inode:
        """Return a copy of the inode for *path*, following symlinks.

        Raises:
            NotFound: If the path does not exist.

        """
        return replace(self._lookup(path, op="stat"))

    def lstat(self, path: str) -> Inode:
        """Return a copy of the inode without following a final symlink.

        Raises:
            NotFound: If the path does not exist.

        """
        return replace(self._lookup(path, op="stat", follow=False))

    def is_dir(self, path: str) -> bool:
        """Return True if *path* resolves to a directory."""
        try:
            inode = self._inodes.get(self._real_path(path))
        except TooManyLinks:
            return False
        return inode is not None and inode.is_dir

    def read_file(self, path: str) -> str:
        """Return the content of a file and bump its access time.

        Raises:
            NotFound: If the path does not exist.
            IsADirectory: If the path is a directory.

        """
        inode = self._lookup(path, op="read")
        if inode.is_dir:
            raise IsADirectory(inode.path, op="read")
        with self.transaction():
            self._put(replace(inode, atime=self._clock()))
        return inode.content or ""

    def readdir(self, path: str) -> list[DirEntry]:
        """List a directory's children, sorted by name.

        Raises:
            NotFound: If the path does not exist.
            NotADirectory: If the path is not a directory.

        """
        inode = self._lookup(path, op="readdir")
        if not inode.is_dir:
            raise NotADirectory(inode.path, op="readdir")
        return [
            DirEntry(
                name=basename(child.path),
                file_type=child.file_type,
                size=child.size,
                mode=child.mode,
                mtime=child.mtime,
            )
            for child in self._children(inode.path)
        ]

    def listdir(self, path: str) -> list[str]:
        """Return just the child names of a directory."""
        return [entry.name for entry in self.readdir(path)]

    def walk(self, path: str) -> list[Inode]:
        """Return copies of *path* and everything below it, sorted by path.

        Raises:
            NotFound: If the path does not exist.

        """
        inode = self._lookup(path, op="walk")
        found = [replace(inode)]
        if inode.is_dir:
            found.extend(replace(child) for child in self._subtree(inode.path))
        return found

    def readlink(self, path: str) -> str:
        """Return the target string stored in a symlink.

        Raises:
            NotFound: If the path does not exist.
            InvalidArgument: If the path is not a symlink.

        """
        inode = self._lookup(path, op="readlink", follow=False)
        if not inode.is_symlink:
            raise InvalidArgument(inode.path, op="readlink")
        return inode.content or ""

    def glob(self, pattern: str, base: str = ROOT) -> list[str]:
        """Return non-directory paths under *base* matching *pattern*.

        Paths are relative to *base* and sorted lexicographically.  See
        ``fs/globbing.py`` for the wildcard rules.

        Raises:
            NotFound: If *base* does not exist.
            NotADirectory: If *base* is not a directory.

        """
        inode = self._lookup(base, op="glob")
        if not inode.is_dir:
            raise NotADirectory(inode.path, op="glob")
        offset = 1 if inode.path == ROOT else len(inode.path) + 1
        matches = [
            child.path[offset:]
            for child in self._subtree(inode.path)
            if not child.is_dir and glob_match(pattern, child.path[offset:])
        ]
        return sorted(matches)

    # -- Mutations -----------------------------------------------------------

    def write_file(self, path: str, content: str, *, append: bool = False) -> None:
        """Create or replace a file's content (or append to it).

        The parent directory must already exist; it is never created.
        Mode and ctime of an existing file are preserved.

        Raises:
            NotFound: If the parent directory does not exist.
            NotADirectory: If the parent is not a directory.
            IsADirectory: If *path* is a directory.

        """
        real = self._real_path(path)
        self._require_parent_dir(real, op="write")
        existing = self._inodes.get(real)
        if existing is not None and existing.is_dir:
            raise IsADirectory(real, op="write")
        if append and existing is not None:
            content = (existing.content or "") + content
        now = self._clock()
        with self.transaction():
            self._put(
                Inode(
                    path=real,
                    file_type=FileType.FILE,
                    mode=existing.mode if existing is not None else FILE_MODE,
                    uid=existing.uid if existing is not None else DEFAULT_UID,
                    gid=existing.gid if existing is not None else DEFAULT_GID,
                    size=len(content),
                    ctime=existing.ctime if existing is not None else now,
                    mtime=now,
                    atime=now,
                    content=content,
                )
            )
        self._debug(f"{'append' if append else 'write'} {real} ({len(content)} chars)")

    def touch(self, path: str) -> None:
        """Create an empty file, or bump the timestamps of an existing path."""
        real = self._real_path(path)
        existing = self._inodes.get(real)
        if existing is None:
            self.write_file(real, "")
            return
        now = self._clock()
        with self.transaction():
            self._put(replace(existing, mtime=now, atime=now))

    def mkdir(self, path: str, *, recursive: bool = False) -> None:
        """Create a directory.

        With *recursive*, missing ancestors are created and an existing
        directory is accepted silently.

        Raises:
            AlreadyExists: If the path exists (and is not an acceptable
                directory under *recursive*).
            NotFound: If the parent is missing and *recursive* is false.
            NotADirectory: If an ancestor is not a directory.

        """
        real = self._real_path(path)
        existing = self._inodes.get(real)
        if existing is not None:
            if recursive and existing.is_dir:
                return
            raise AlreadyExists(real, op="mkdir")

        with self.transaction():
            if recursive:
                parent = parent_of(real)
                if parent not in self._inodes:
                    self.mkdir(parent, recursive=True)
            self._require_parent_dir(real, op="mkdir")
            now = self._clock()
            self._put(
                Inode(
                    path=real,
                    file_type=FileType.DIRECTORY,
                    mode=DIR_MODE,
                    ctime=now,
                    mtime=now,
                    atime=now,
                )
            )
        self._debug(f"mkdir {real}")

    def symlink(self, target: str, link_path: str) -> None:
        """Create a symbolic link at *link_path* pointing to *target*.

        The target need not exist.

        Raises:
            AlreadyExists: If *link_path* already exists.
            NotFound: If the parent of *link_path* is missing.

        """
        real = self._real_path(link_path, follow=False)
        if real in self._inodes:
            raise AlreadyExists(real, op="symlink")
        self._require_parent_dir(real, op="symlink")
        now = self._clock()
        with self.transaction():
            self._put(
                Inode(
                    path=real,
                    file_type=FileType.SYMLINK,
                    mode=0o777,
                    size=len(target),
                    ctime=now,
                    mtime=now,
                    atime=now,
                    content=target,
                )
            )
        self._debug(f"symlink {real} -> {target}")

    def chmod(self, path: str, mode: int) -> None:
        """Set the permission bits of *path*.

        Raises:
            NotFound: If the path does not exist.

        """
        inode = self._lookup(path, op="chmod")
        with self.transaction():
            self._put(replace(inode, mode=mode & 0o7777, ctime=self._clock()))

    def unlink(self, path: str) -> None:
        """Remove a file or symlink (a symlink itself, never its target).

        Raises:
            NotFound: If the path does not exist.
            IsADirectory: If the path is a directory.

        """
        inode = self._lookup(path, op="unlink", follow=False)
        if inode.is_dir:
            raise IsADirectory(inode.path, op="unlink")
        with self.transaction():
            self._remove(inode.path)
        self._debug(f"unlink {inode.path}")

    def rmdir(self, path: str, *, recursive: bool = False) -> None:
        """Remove a directory; with *recursive*, its whole subtree first.

        The subtree delete is one transaction, removed depth-first.

        Raises:
            NotFound: If the path does not exist.
            NotADirectory: If the path is not a directory.
            NotEmpty: If it has children and *recursive* is false.
            PermissionDenied: If the path is the root.

        """
        inode = self._lookup(path, op="rmdir", follow=False)
        if not inode.is_dir:
            raise NotADirectory(inode.path, op="rmdir")
        if inode.path == ROOT:
            raise PermissionDenied(ROOT, op="rmdir")
        descendants = self._subtree(inode.path)
        if descendants and not recursive:
            raise NotEmpty(inode.path, op="rmdir")
        with self.transaction():
            for child in sorted(descendants, key=lambda c: c.path.count("/"), reverse=True):
                self._remove(child.path)
            self._remove(inode.path)
        self._debug(f"rmdir {inode.path} ({len(descendants)} descendant(s))")

    def rename(self, old_path: str, new_path: str) -> str:
        """Move a record, and for directories every descendant, to a new path.

        If *new_path* is an existing directory, the source moves inside
        it.  An existing file at the destination is replaced when the
        source is a file.  Descendants keep their path suffix.

        Returns:
            The canonical destination path.

        Raises:
            NotFound: If the source or the destination parent is missing.
            InvalidArgument: If a directory would move into itself.
            IsADirectory: If a file would replace a directory.
            NotADirectory: If a directory would replace a file.

        """
        source = self._lookup(old_path, op="rename", follow=False)
        if source.path == ROOT:
            raise PermissionDenied(ROOT, op="rename")
        dest = self._real_path(new_path, follow=False)
        dest_inode = self._inodes.get(self._real_path(new_path))
        if dest_inode is not None and dest_inode.is_dir and dest_inode.path != source.path:
            dest = join(dest_inode.path, basename(source.path))

        if dest == source.path:
            return dest
        if source.is_dir and is_within(dest, source.path):
            raise InvalidArgument(dest, op="rename")
        self._require_parent_dir(dest, op="rename")

        existing = self._inodes.get(dest)
        if existing is not None:
            if existing.is_dir:
                raise IsADirectory(dest, op="rename")
            if source.is_dir:
                raise NotADirectory(dest, op="rename")

        with self.transaction():
            if source.is_dir:
                for child in self._subtree(source.path):
                    moved = dest + child.path[len(source.path) :]
                    self._remove(child.path)
                    self._put(replace(child, path=moved))
            self._remove(source.path)
            self._put(replace(source, path=dest, mtime=self._clock()))
        self._debug(f"rename {source.path} -> {dest}")
        return dest

    def copy(self, src: str, dest: str, *, recursive: bool = False) -> str:
        """Copy a file, or with *recursive* a directory tree.

        If *dest* is an existing directory, the copy lands inside it.
        Copies get fresh ctime/mtime/atime.

        Returns:
            The canonical path of the copy.

        Raises:
            NotFound: If the source or destination parent is missing.
            IsADirectory: If the source is a directory and *recursive*
                is false, or a file would overwrite a directory.
            NotADirectory: If a directory would overwrite a non-directory.
            InvalidArgument: If a directory would be copied into itself.

        """
        source = self._lookup(src, op="copy")
        target = self._real_path(dest)
        target_inode = self._inodes.get(target)
        if target_inode is not None and target_inode.is_dir:
            target = join(target, basename(source.path))

        if source.is_dir:
            if not recursive:
                raise IsADirectory(source.path, op="copy")
            if is_within(target, source.path):
                raise InvalidArgument(target, op="copy")
        elif target == source.path:
            raise InvalidArgument(target, op="copy")

        with self.transaction():
            if source.is_dir:
                self.mkdir(target, recursive=True)
                for child in self._subtree(source.path):
                    self._put_copy(child, target + child.path[len(source.path) :])
            else:
                self._require_parent_dir(target, op="copy")
                self._put_copy(source, target)
        self._debug(f"copy {source.path} -> {target}")
        return target

    def _put_copy(self, source: Inode, target: str) -> None:
        """Write a fresh copy of *source* at *target*.

        A directory and a non-directory never replace each other, so no
        record is left under a parent that is not a directory.
        """
        existing = self._inodes.get(target)
        if existing is not None and existing.is_dir != source.is_dir:
            error = IsADirectory if existing.is_dir else NotADirectory
            raise error(target, op="copy")
        now = self._clock()
        self._put(replace(source, path=target, ctime=now, mtime=now, atime=now))

    # -- Serialization -------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Return every record in its persisted layout, keyed by path."""
        return {path: inode.to_dict() for path, inode in sorted(self._inodes.items())}

    def __len__(self) -> int:
        """Return the number of inodes (including the root)."""
        return len(self._inodes)
