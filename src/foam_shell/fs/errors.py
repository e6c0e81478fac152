"""Typed filesystem errors.

Every failure raised by the virtual filesystem is an ``FsError`` carrying a
machine-checkable ``kind``.  Callers that only care about the category can
compare ``err.kind``; callers that already speak Python's builtin OS errors
can keep catching those, because each concrete class also inherits the
matching builtin:

=====================  ==========================  ======================
Class                  Builtin base                Kind
=====================  ==========================  ======================
``NotFound``           ``FileNotFoundError``       ``NOT_FOUND``
``IsADirectory``       ``IsADirectoryError``       ``IS_A_DIRECTORY``
``NotADirectory``      ``NotADirectoryError``      ``NOT_A_DIRECTORY``
``AlreadyExists``      ``FileExistsError``         ``ALREADY_EXISTS``
``NotEmpty``           ``OSError``                 ``NOT_EMPTY``
``InvalidArgument``    ``OSError``                 ``INVALID_ARGUMENT``
``PermissionDenied``   ``PermissionError``         ``PERMISSION_DENIED``
``TooManyLinks``       ``OSError``                 ``TOO_MANY_LINKS``
=====================  ==========================  ======================
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """The category of a filesystem failure."""

    NOT_FOUND = "NotFound"
    IS_A_DIRECTORY = "IsADirectory"
    NOT_A_DIRECTORY = "NotADirectory"
    ALREADY_EXISTS = "AlreadyExists"
    NOT_EMPTY = "NotEmpty"
    INVALID_ARGUMENT = "InvalidArgument"
    PERMISSION_DENIED = "PermissionDenied"
    TOO_MANY_LINKS = "TooManyLinks"


_STRERROR: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "No such file or directory",
    ErrorKind.IS_A_DIRECTORY: "Is a directory",
    ErrorKind.NOT_A_DIRECTORY: "Not a directory",
    ErrorKind.ALREADY_EXISTS: "File exists",
    ErrorKind.NOT_EMPTY: "Directory not empty",
    ErrorKind.INVALID_ARGUMENT: "Invalid argument",
    ErrorKind.PERMISSION_DENIED: "Operation not permitted",
    ErrorKind.TOO_MANY_LINKS: "Too many levels of symbolic links",
}


class FsError(OSError):
    """Base class for all virtual filesystem failures.

    Attributes:
        kind: The error category.
        path: The canonical path the operation failed on.
        op: Short name of the failing operation (e.g. ``"mkdir"``).
        reason: The strerror-style description, e.g. "File exists".

    """

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, path: str, *, op: str = "") -> None:
        """Build an error for *path* with the standard message for the kind."""
        self.path = path
        self.op = op
        strerror = _STRERROR[self.kind]
        self.reason = strerror
        message = f"{op}: {path}: {strerror}" if op else f"{path}: {strerror}"
        super().__init__(message)

    def __str__(self) -> str:
        """Return the human-readable message."""
        return str(self.args[0])


class NotFound(FsError, FileNotFoundError):
    """The path has no inode."""

    kind = ErrorKind.NOT_FOUND


class IsADirectory(FsError, IsADirectoryError):
    """A file operation was attempted on a directory."""

    kind = ErrorKind.IS_A_DIRECTORY


class NotADirectory(FsError, NotADirectoryError):
    """A directory operation was attempted on a non-directory."""

    kind = ErrorKind.NOT_A_DIRECTORY


class AlreadyExists(FsError, FileExistsError):
    """The target path is already taken."""

    kind = ErrorKind.ALREADY_EXISTS


class NotEmpty(FsError):
    """A non-recursive directory removal found children."""

    kind = ErrorKind.NOT_EMPTY


class InvalidArgument(FsError):
    """The request is structurally impossible (e.g. move a dir into itself)."""

    kind = ErrorKind.INVALID_ARGUMENT


class PermissionDenied(FsError, PermissionError):
    """The operation is refused outright (e.g. removing ``/``)."""

    kind = ErrorKind.PERMISSION_DENIED


class TooManyLinks(FsError):
    """Symlink resolution exceeded ``MAX_SYMLINK_DEPTH``."""

    kind = ErrorKind.TOO_MANY_LINKS
