"""Command registry — the name-to-handler contract used by the executor.

Every command, builtin or not, is a plain function::

    def handler(argv: list[str], ctx: CommandContext) -> int

``argv[0]`` is the command name.  The handler reads ``ctx.stdin``, writes
through ``ctx.stdout()`` / ``ctx.stderr()``, reaches the filesystem and
session through the context, and returns an exit code.

The registry is built once from ``Command`` records and is read-only
afterwards; there is no runtime registration.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from foam_shell.env import Environment
    from foam_shell.fs.filesystem import FileSystem
    from foam_shell.logging import Logger
    from foam_shell.session import Session

Sink: TypeAlias = Callable[[str], None]
Handler: TypeAlias = "Callable[[list[str], CommandContext], int]"


@dataclass(frozen=True)
class ExecResult:
    """Captured outcome of executing a line."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        """Return True if the exit code is 0."""
        return self.exit_code == 0


class ExitRequested(Exception):  # noqa: N818
    """Raised by ``exit`` to stop the interpreter with *code*."""

    def __init__(self, code: int = 0) -> None:
        """Record the requested exit code."""
        self.code = code
        super().__init__(f"exit {code}")


@dataclass
class CommandContext:
    """Everything a handler may touch while it runs.

    Attributes:
        stdin: Piped or redirected input, or None if there is none.
        stdout: Sink for standard output.
        stderr: Sink for standard error.
        session: The session the command runs in.
        registry: The command table (for ``type``, ``which``, ``help``).
        exec: Run a nested line in the same session and capture it.
        logger: The shell's log buffer.

    """

    stdin: str | None
    stdout: Sink
    stderr: Sink
    session: Session
    registry: CommandRegistry
    exec: Callable[[str], ExecResult]
    logger: Logger

    @property
    def fs(self) -> FileSystem:
        """Return the session's filesystem."""
        return self.session.fs

    @property
    def env(self) -> Environment:
        """Return the session's environment."""
        return self.session.env

    def resolve(self, raw: str) -> str:
        """Canonicalize a user-supplied path against the session cwd."""
        return self.session.resolve_path(raw)

    def fail(self, name: str, error: object, *, code: int = 1) -> int:
        """Write ``name: error`` to stderr and return *code*."""
        self.stderr(f"{name}: {error}\n")
        return code


@dataclass(frozen=True)
class Command:
    """A registered command.

    Attributes:
        name: The name typed at the prompt.
        handler: The function implementing it.
        summary: One-line description shown by ``help``.

    """

    name: str
    handler: Handler
    summary: str = ""


class CommandRegistry:
    """An immutable table of commands keyed by name."""

    def __init__(self, commands: Iterable[Command]) -> None:
        """Build the table.

        Raises:
            ValueError: If two commands share a name.

        """
        table: dict[str, Command] = {}
        for command in commands:
            if command.name in table:
                msg = f"duplicate command: {command.name}"
                raise ValueError(msg)
            table[command.name] = command
        self._commands = MappingProxyType(table)

    def get(self, name: str) -> Command | None:
        """Return the command called *name*, or None."""
        return self._commands.get(name)

    def names(self) -> list[str]:
        """Return all command names, sorted."""
        return sorted(self._commands)

    def __contains__(self, name: object) -> bool:
        """Return True if *name* is registered."""
        return name in self._commands

    def __iter__(self) -> Iterator[Command]:
        """Iterate over commands in name order."""
        return iter(self._commands[name] for name in self.names())

    def __len__(self) -> int:
        """Return the number of registered commands."""
        return len(self._commands)
