"""Filesystem persistence — backing stores for the inode table.

The filesystem keeps every inode in an in-memory cache and writes
through to a *store* whenever a transaction commits.  A store only ever
sees serialized records (plain dicts keyed by canonical path), never
``Inode`` objects.

Two stores are provided:

- ``MemoryStore`` — keeps the records in a dict.  Nothing outlives the
  process; useful for tests and throwaway sessions.
- ``JsonFileStore`` — keeps the whole table in one JSON document.  Each
  commit writes a temporary sibling file and then atomically replaces
  the target, so a flush either lands completely or not at all.

``dump_filesystem`` / ``load_filesystem`` snapshot a filesystem to a
JSON file and back, the analogue of unmount and mount.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

if TYPE_CHECKING:
    from foam_shell.fs.filesystem import FileSystem

Record: TypeAlias = dict[str, Any]

_FORMAT_VERSION = 1


class Store(Protocol):
    """The contract between the filesystem cache and its backing storage."""

    def load(self) -> dict[str, Record]:
        """Return every stored record keyed by canonical path."""
        ...

    def commit(self, puts: Mapping[str, Record], deletes: Iterable[str]) -> None:
        """Apply one transaction's net changes.

        Must either apply everything or raise without applying anything.
        """
        ...


class MemoryStore:
    """A store that lives only as long as the process."""

    def __init__(self, records: Mapping[str, Record] | None = None) -> None:
        """Create a store, optionally pre-populated with *records*."""
        self._records: dict[str, Record] = {k: dict(v) for k, v in (records or {}).items()}
        self.commits = 0

    @property
    def records(self) -> dict[str, Record]:
        """Return a snapshot of the stored records."""
        return {k: dict(v) for k, v in self._records.items()}

    def load(self) -> dict[str, Record]:
        """Return every stored record keyed by canonical path."""
        return self.records

    def commit(self, puts: Mapping[str, Record], deletes: Iterable[str]) -> None:
        """Apply puts and deletes in one step."""
        for path in deletes:
            self._records.pop(path, None)
        for path, record in puts.items():
            self._records[path] = dict(record)
        self.commits += 1


class JsonFileStore:
    """A store that persists the inode table as a single JSON file.

    The file layout is::

        {"version": 1, "inodes": {"/": {...}, "/etc": {...}, ...}}

    """

    def __init__(self, path: Path) -> None:
        """Create a store backed by *path* (created on first commit)."""
        self._path = path
        self._records: dict[str, Record] | None = None

    @property
    def path(self) -> Path:
        """Return the backing file path."""
        return self._path

    def load(self) -> dict[str, Record]:
        """Read the backing file, or return an empty table if it is missing.

        Raises:
            ValueError: If the file exists but is not a foam-shell store.

        """
        if not self._path.exists():
            self._records = {}
            return {}
        data = json.loads(self._path.read_text())
        if not isinstance(data, dict) or "inodes" not in data:
            msg = f"Not a foam-shell filesystem image: {self._path}"
            raise ValueError(msg)
        self._records = dict(data["inodes"])
        return {k: dict(v) for k, v in self._records.items()}

    def commit(self, puts: Mapping[str, Record], deletes: Iterable[str]) -> None:
        """Merge the changes and atomically rewrite the backing file."""
        current = dict(self._records) if self._records is not None else self.load()
        for path in deletes:
            current.pop(path, None)
        for path, record in puts.items():
            current[path] = dict(record)
        self._write(current)
        self._records = current

    def overwrite(self, records: Mapping[str, Record]) -> None:
        """Replace the whole stored table with *records*."""
        current = {k: dict(v) for k, v in records.items()}
        self._write(current)
        self._records = current

    def _write(self, records: dict[str, Record]) -> None:
        """Write to a temporary sibling, then replace the target in one step."""
        payload = {"version": _FORMAT_VERSION, "inodes": records}
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, sort_keys=True))
        tmp.replace(self._path)


def dump_filesystem(fs: FileSystem, path: Path) -> None:
    """Save a snapshot of *fs* to a JSON file.

    Analogous to unmounting a filesystem — all in-memory state is
    flushed to persistent storage.

    Args:
        fs: The filesystem to save.
        path: The file path to write to.

    """
    JsonFileStore(path).overwrite(fs.to_dict())


def load_filesystem(path: Path) -> FileSystem:
    """Load a filesystem from a JSON file and keep writing through to it.

    Args:
        path: The file path to read from.

    Returns:
        A FileSystem backed by a ``JsonFileStore`` on *path*.

    Raises:
        FileNotFoundError: If the path does not exist.

    """
    from foam_shell.fs.filesystem import FileSystem  # noqa: PLC0415

    if not path.exists():
        msg = f"No filesystem image at {path}"
        raise FileNotFoundError(msg)
    return FileSystem(store=JsonFileStore(path))
