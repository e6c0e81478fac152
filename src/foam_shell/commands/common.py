"""Helpers shared by the command modules — option parsing and I/O glue."""

from __future__ import annotations

from foam_shell.fs.errors import FsError
from foam_shell.registry import CommandContext

EXIT_USAGE = 2


class UsageError(ValueError):
    """A command was invoked with malformed options."""


def fs_error(ctx: CommandContext, name: str, exc: FsError) -> int:
    """Report a filesystem failure coreutils-style and return 1."""
    ctx.stderr(f"{name}: {exc.path}: {exc.reason}\n")
    return 1


def usage(ctx: CommandContext, text: str) -> int:
    """Write a ``Usage:`` line to stderr and return 2."""
    ctx.stderr(f"Usage: {text}\n")
    return EXIT_USAGE


def parse_flags(args: list[str], allowed: str) -> tuple[set[str], list[str]]:
    """Split leading single-letter flags from operands.

    ``-la`` is the same as ``-l -a``.  Parsing stops at ``--`` or at the
    first word that does not start with ``-``; a lone ``-`` is an operand.

    Returns:
        ``(flags, operands)``.

    Raises:
        UsageError: If a flag is not in *allowed*.

    """
    flags: set[str] = set()
    index = 0
    while index < len(args):
        arg = args[index]
        if arg == "--":
            index += 1
            break
        if not arg.startswith("-") or arg == "-":
            break
        for letter in arg[1:]:
            if letter not in allowed:
                msg = f"invalid option -- '{letter}'"
                raise UsageError(msg)
            flags.add(letter)
        index += 1
    return flags, args[index:]


def take_count(args: list[str], flag: str, default: int) -> tuple[int, list[str]]:
    """Pull a numeric option such as ``-n 5``, ``-n5`` or ``-5`` out of *args*.

    Raises:
        UsageError: If the value is not an integer.

    """
    rest: list[str] = []
    value = default
    index = 0
    while index < len(args):
        arg = args[index]
        raw: str | None = None
        if arg == flag and index + 1 < len(args):
            raw = args[index + 1]
            index += 1
        elif arg.startswith(flag) and len(arg) > len(flag):
            raw = arg[len(flag) :]
        elif len(arg) > 1 and arg[0] == "-" and arg[1:].isdigit():
            raw = arg[1:]
        else:
            rest.append(arg)
        if raw is not None:
            try:
                value = int(raw)
            except ValueError:
                msg = f"invalid number: '{raw}'"
                raise UsageError(msg) from None
        index += 1
    return value, rest


def read_inputs(
    ctx: CommandContext, name: str, paths: list[str]
) -> tuple[list[tuple[str, str]], int]:
    """Return ``(label, text)`` for each file in *paths*, or for stdin.

    ``-`` stands for stdin; its label is the empty string, as is the
    label when there are no paths at all.  Unreadable files are reported
    on stderr and skipped.

    Returns:
        ``(inputs, exit_code)`` where the code is 1 if any file failed.

    """
    if not paths:
        return [("", ctx.stdin or "")], 0
    inputs: list[tuple[str, str]] = []
    code = 0
    for path in paths:
        if path == "-":
            inputs.append(("", ctx.stdin or ""))
            continue
        try:
            inputs.append((path, ctx.fs.read_file(ctx.resolve(path))))
        except FsError as exc:
            code = fs_error(ctx, name, exc)
    return inputs, code


def write_lines(ctx: CommandContext, lines: list[str]) -> None:
    """Write *lines* to stdout, each terminated by a newline."""
    if lines:
        ctx.stdout("\n".join(lines) + "\n")
