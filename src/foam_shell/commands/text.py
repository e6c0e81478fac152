"""Text commands — filters that read stdin (or files) and write stdout.

These are the pipeline workhorses: ``echo`` and ``printf`` produce text,
``grep``, ``sort``, ``uniq``, ``head`` and ``tail`` transform it, ``wc``
summarizes it and ``xargs`` turns it back into command lines.
"""

from __future__ import annotations

import re
from itertools import groupby

from foam_shell.commands.common import (
    EXIT_USAGE,
    UsageError,
    parse_flags,
    read_inputs,
    take_count,
    usage,
    write_lines,
)
from foam_shell.lexer import quote
from foam_shell.registry import Command, CommandContext

DEFAULT_LINES = 10

_PRINTF_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", "0": "\0", "r": "\r", "a": "\a"}
_LEADING_NUMBER = re.compile(r"\s*[-+]?(\d+(\.\d*)?|\.\d+)")


def _cmd_echo(argv: list[str], ctx: CommandContext) -> int:
    """Print the arguments separated by spaces (``-n``: no trailing newline)."""
    args = argv[1:]
    newline = True
    while args and args[0] == "-n":
        newline = False
        args = args[1:]
    ctx.stdout(" ".join(args) + ("\n" if newline else ""))
    return 0


def format_printf(fmt: str, args: list[str]) -> tuple[str, list[str]]:
    """Expand a printf format string.

    Supports ``%s``, ``%d`` / ``%i``, ``%%`` and the escapes ``\\n``,
    ``\\t``, ``\\r``, ``\\a``, ``\\0`` and ``\\\\``.  Unknown directives
    and escapes are kept as written.  Missing arguments count as empty
    (``%s``) or zero (``%d``).

    Returns:
        ``(text, bad_numbers)`` where *bad_numbers* lists the arguments
        that ``%d`` could not parse.

    """
    out: list[str] = []
    bad: list[str] = []
    remaining = iter(args)
    i = 0
    while i < len(fmt):
        char = fmt[i]
        nxt = fmt[i + 1] if i + 1 < len(fmt) else ""
        if char == "\\" and nxt:
            out.append(_PRINTF_ESCAPES.get(nxt, "\\" + nxt))
            i += 2
        elif char == "%" and nxt:
            if nxt == "s":
                out.append(next(remaining, ""))
            elif nxt in "di":
                raw = next(remaining, "0")
                try:
                    out.append(str(int(raw or "0")))
                except ValueError:
                    bad.append(raw)
                    out.append("0")
            elif nxt == "%":
                out.append("%")
            else:
                out.append("%" + nxt)
            i += 2
        else:
            out.append(char)
            i += 1
    return "".join(out), bad


def _cmd_printf(argv: list[str], ctx: CommandContext) -> int:
    """Format and print arguments according to a format string."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "printf <format> [arguments...]")
    text, bad = format_printf(argv[1], argv[2:])
    ctx.stdout(text)
    for raw in bad:
        ctx.stderr(f"printf: '{raw}': invalid number\n")
    return 1 if bad else 0


def _cmd_grep(argv: list[str], ctx: CommandContext) -> int:
    """Print lines matching a regular expression.

    ``-i`` ignore case, ``-v`` invert, ``-c`` count only, ``-n`` number
    lines.  Exit 0 if anything matched, 1 if nothing did, 2 on error.
    """
    try:
        flags, operands = parse_flags(argv[1:], "ivcn")
    except UsageError as exc:
        return ctx.fail("grep", exc, code=EXIT_USAGE)
    if not operands:
        return usage(ctx, "grep [-ivcn] <pattern> [file...]")
    pattern, *paths = operands
    try:
        regex = re.compile(pattern, re.IGNORECASE if "i" in flags else 0)
    except re.error as exc:
        return ctx.fail("grep", f"invalid pattern: {exc}", code=EXIT_USAGE)

    inputs, code = read_inputs(ctx, "grep", paths)
    show_label = len(paths) > 1
    matched_any = False
    output: list[str] = []
    for label, text in inputs:
        prefix = f"{label or '(standard input)'}:" if show_label else ""
        count = 0
        for number, line in enumerate(text.splitlines(), start=1):
            if (regex.search(line) is not None) == ("v" in flags):
                continue
            count += 1
            if "c" not in flags:
                output.append(f"{prefix}{number}:{line}" if "n" in flags else prefix + line)
        if "c" in flags:
            output.append(f"{prefix}{count}")
        matched_any = matched_any or count > 0
    write_lines(ctx, output)
    if code:
        return EXIT_USAGE
    return 0 if matched_any else 1


def _cmd_wc(argv: list[str], ctx: CommandContext) -> int:
    """Count lines, words and characters (``-l``, ``-w``, ``-c`` select)."""
    try:
        flags, paths = parse_flags(argv[1:], "lwc")
    except UsageError as exc:
        return ctx.fail("wc", exc, code=EXIT_USAGE)
    columns = [c for c in "lwc" if c in flags] or ["l", "w", "c"]
    inputs, code = read_inputs(ctx, "wc", paths)

    def row(counts: dict[str, int], label: str) -> str:
        cells = [f"{counts[c]:>7}" for c in columns]
        return " ".join(cells) + (f" {label}" if label else "")

    totals = {"l": 0, "w": 0, "c": 0}
    output: list[str] = []
    for label, text in inputs:
        counts = {"l": text.count("\n"), "w": len(text.split()), "c": len(text)}
        for key, value in counts.items():
            totals[key] += value
        output.append(row(counts, label))
    if len(inputs) > 1:
        output.append(row(totals, "total"))
    write_lines(ctx, output)
    return code


def _head_tail(argv: list[str], ctx: CommandContext, *, head: bool) -> int:
    name = argv[0]
    try:
        count, paths = take_count(argv[1:], "-n", DEFAULT_LINES)
    except UsageError as exc:
        return ctx.fail(name, exc, code=EXIT_USAGE)
    inputs, code = read_inputs(ctx, name, paths)
    for _, text in inputs:
        lines = text.splitlines(keepends=True)
        chosen = lines[:count] if head else lines[max(len(lines) - count, 0) :]
        ctx.stdout("".join(chosen))
    return code


def _cmd_head(argv: list[str], ctx: CommandContext) -> int:
    """Print the first lines of input (``-n N``, default 10)."""
    return _head_tail(argv, ctx, head=True)


def _cmd_tail(argv: list[str], ctx: CommandContext) -> int:
    """Print the last lines of input (``-n N``, default 10)."""
    return _head_tail(argv, ctx, head=False)


def _numeric_key(line: str) -> tuple[float, str]:
    match = _LEADING_NUMBER.match(line)
    return (float(match.group(0)) if match else 0.0, line)


def _cmd_sort(argv: list[str], ctx: CommandContext) -> int:
    """Sort lines (``-r`` reverse, ``-n`` numeric, ``-u`` unique)."""
    try:
        flags, paths = parse_flags(argv[1:], "rnu")
    except UsageError as exc:
        return ctx.fail("sort", exc, code=EXIT_USAGE)
    inputs, code = read_inputs(ctx, "sort", paths)
    lines = [line for _, text in inputs for line in text.splitlines()]
    if "n" in flags:
        lines.sort(key=_numeric_key, reverse="r" in flags)
    else:
        lines.sort(reverse="r" in flags)
    if "u" in flags:
        lines = [line for line, _ in groupby(lines)]
    write_lines(ctx, lines)
    return code


def _cmd_uniq(argv: list[str], ctx: CommandContext) -> int:
    """Collapse adjacent duplicate lines (``-c`` prefixes counts)."""
    try:
        flags, paths = parse_flags(argv[1:], "c")
    except UsageError as exc:
        return ctx.fail("uniq", exc, code=EXIT_USAGE)
    inputs, code = read_inputs(ctx, "uniq", paths[:1])
    lines = inputs[0][1].splitlines() if inputs else []
    output = []
    for line, group in groupby(lines):
        output.append(f"{len(list(group)):>7} {line}" if "c" in flags else line)
    write_lines(ctx, output)
    return code


def _parse_number(raw: str) -> int | float:
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        msg = f"invalid floating point argument: '{raw}'"
        raise UsageError(msg) from None


def _cmd_seq(argv: list[str], ctx: CommandContext) -> int:
    """Print a sequence: ``seq LAST``, ``seq FIRST LAST``, ``seq FIRST STEP LAST``."""
    args = argv[1:]
    if not 1 <= len(args) <= 3:  # noqa: PLR2004
        return usage(ctx, "seq [first [step]] last")
    try:
        numbers = [_parse_number(a) for a in args]
    except UsageError as exc:
        return ctx.fail("seq", exc)
    first, step, last = 1, 1, numbers[-1]
    if len(numbers) == 2:  # noqa: PLR2004
        first = numbers[0]
    elif len(numbers) == 3:  # noqa: PLR2004
        first, step = numbers[0], numbers[1]
    if step == 0:
        return ctx.fail("seq", "invalid zero increment value", code=EXIT_USAGE)
    output: list[str] = []
    value = first
    while (value <= last) if step > 0 else (value >= last):
        output.append(str(value))
        value += step
    write_lines(ctx, output)
    return 0


def _cmd_xargs(argv: list[str], ctx: CommandContext) -> int:
    """Build and run command lines from stdin.

    ``-n N`` passes at most N items per command, ``-I REPL`` runs the
    command once per input line with REPL replaced, ``-d DELIM`` and
    ``-0`` change the item separator (default: any whitespace).  The
    command defaults to ``echo``.
    """
    args = argv[1:]
    max_items: int | None = None
    replace: str | None = None
    delimiter: str | None = None
    while args:
        match args:
            case ["-n", raw, *rest]:
                try:
                    max_items = int(raw)
                except ValueError:
                    return ctx.fail("xargs", f"invalid number: '{raw}'", code=EXIT_USAGE)
                if max_items < 1:
                    return ctx.fail("xargs", f"invalid number: '{raw}'", code=EXIT_USAGE)
                args = rest
            case ["-I", token, *rest]:
                replace, args = token, rest
            case ["-d", delim, *rest]:
                delimiter, args = delim.encode().decode("unicode_escape"), rest
            case ["-0", *rest]:
                delimiter, args = "\0", rest
            case _:
                break
    template = args or ["echo"]
    if ctx.stdin is None:
        return ctx.fail("xargs", "no input")

    if delimiter is not None:
        items = [item for item in ctx.stdin.split(delimiter) if item.strip()]
    elif replace is not None:
        items = [line for line in ctx.stdin.splitlines() if line.strip()]
    else:
        items = ctx.stdin.split()

    if replace is not None:
        lines = [
            " ".join(quote(word.replace(replace, item)) for word in template) for item in items
        ]
    else:
        size = max_items or max(len(items), 1)
        lines = [
            " ".join(quote(word) for word in [*template, *items[start : start + size]])
            for start in range(0, len(items), size)
        ]

    code = 0
    for line in lines:
        result = ctx.exec(line)
        if result.stdout:
            ctx.stdout(result.stdout)
        if result.stderr:
            ctx.stderr(result.stderr)
        code = result.exit_code
    return code


def _split_path(raw: str) -> tuple[str, str]:
    """Split a path textually into ``(dirname, basename)``."""
    stripped = raw.rstrip("/")
    if not stripped:
        return ("/", "/") if raw else (".", "")
    head, sep, tail = stripped.rpartition("/")
    if not sep:
        return ".", tail
    return head.rstrip("/") or "/", tail


def _cmd_basename(argv: list[str], ctx: CommandContext) -> int:
    """Strip directory (and an optional suffix) from a path."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "basename <path> [suffix]")
    name = _split_path(argv[1])[1]
    if len(argv) > 2 and name != argv[2]:  # noqa: PLR2004
        name = name.removesuffix(argv[2])
    ctx.stdout(name + "\n")
    return 0


def _cmd_dirname(argv: list[str], ctx: CommandContext) -> int:
    """Strip the last component from each path."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "dirname <path>...")
    write_lines(ctx, [_split_path(raw)[0] for raw in argv[1:]])
    return 0


COMMANDS = [
    Command("echo", _cmd_echo, "print arguments"),
    Command("printf", _cmd_printf, "format and print arguments"),
    Command("grep", _cmd_grep, "print lines matching a pattern"),
    Command("wc", _cmd_wc, "count lines, words and characters"),
    Command("head", _cmd_head, "print the first lines"),
    Command("tail", _cmd_tail, "print the last lines"),
    Command("sort", _cmd_sort, "sort lines"),
    Command("uniq", _cmd_uniq, "collapse adjacent duplicate lines"),
    Command("seq", _cmd_seq, "print a sequence of numbers"),
    Command("xargs", _cmd_xargs, "build command lines from input"),
    Command("basename", _cmd_basename, "strip directory from a path"),
    Command("dirname", _cmd_dirname, "strip the last path component"),
]
