"""Virtual filesystem — path-keyed inodes, journaling, and persistence.

Re-exports public symbols so callers can write::

    from foam_shell.fs import FileSystem, JsonFileStore, NotFound
"""

from foam_shell.fs.errors import (
    AlreadyExists,
    ErrorKind,
    FsError,
    InvalidArgument,
    IsADirectory,
    NotADirectory,
    NotEmpty,
    NotFound,
    PermissionDenied,
    TooManyLinks,
)
from foam_shell.fs.filesystem import (
    DEFAULT_DIRS,
    DEFAULT_FILES,
    MAX_SYMLINK_DEPTH,
    DirEntry,
    FileSystem,
    FileType,
    Inode,
)
from foam_shell.fs.journal import Journal, JournalOp, Transaction, TransactionState
from foam_shell.fs.paths import resolve_path
from foam_shell.fs.persistence import (
    JsonFileStore,
    MemoryStore,
    Store,
    dump_filesystem,
    load_filesystem,
)

__all__ = [
    "DEFAULT_DIRS",
    "DEFAULT_FILES",
    "MAX_SYMLINK_DEPTH",
    "AlreadyExists",
    "DirEntry",
    "ErrorKind",
    "FileSystem",
    "FileType",
    "FsError",
    "Inode",
    "InvalidArgument",
    "IsADirectory",
    "Journal",
    "JournalOp",
    "JsonFileStore",
    "MemoryStore",
    "NotADirectory",
    "NotEmpty",
    "NotFound",
    "PermissionDenied",
    "Store",
    "TooManyLinks",
    "Transaction",
    "TransactionState",
    "dump_filesystem",
    "load_filesystem",
    "resolve_path",
]
