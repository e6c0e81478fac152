"""Session builtins — commands that read or change shell state.

These are the commands a real shell cannot delegate to an external
program because they touch the shell itself: the working directory, the
environment, aliases, history, the job table and the interpreter's own
control flow (``source``, ``eval``, ``exit``).
"""

from __future__ import annotations

import math
import time

from foam_shell.commands.common import (
    EXIT_USAGE,
    UsageError,
    fs_error,
    usage,
    write_lines,
)
from foam_shell.env import is_valid_name
from foam_shell.fs.errors import FsError
from foam_shell.logging import LogLevel
from foam_shell.registry import Command, CommandContext, ExecResult, ExitRequested


def _relay(ctx: CommandContext, result: ExecResult) -> int:
    """Copy a nested result onto this command's sinks."""
    if result.stdout:
        ctx.stdout(result.stdout)
    if result.stderr:
        ctx.stderr(result.stderr)
    return result.exit_code


# -- Directory --------------------------------------------------------------


def _cmd_cd(argv: list[str], ctx: CommandContext) -> int:
    """Change the working directory (``cd -`` returns to ``$OLDPWD``)."""
    target = argv[1] if len(argv) > 1 else "~"
    announce = False
    if target == "-":
        previous = ctx.env.get("OLDPWD")
        if previous is None:
            return ctx.fail("cd", "OLDPWD not set")
        target, announce = previous, True
    try:
        path = ctx.session.chdir(target)
    except FsError as exc:
        return fs_error(ctx, "cd", exc)
    if announce:
        ctx.stdout(path + "\n")
    return 0


def _cmd_pwd(_argv: list[str], ctx: CommandContext) -> int:
    """Print the working directory."""
    ctx.stdout(ctx.session.cwd + "\n")
    return 0


# -- Environment ------------------------------------------------------------


def _cmd_export(argv: list[str], ctx: CommandContext) -> int:
    """Set variables (``NAME=value``) or list the environment."""
    if len(argv) == 1:
        write_lines(ctx, [f'export {k}="{v}"' for k, v in sorted(ctx.env.items())])
        return 0
    code = 0
    for arg in argv[1:]:
        name, eq, value = arg.partition("=")
        if not is_valid_name(name):
            code = ctx.fail("export", f"'{arg}': not a valid identifier")
            continue
        if eq:
            ctx.env.set(name, value)
        elif name not in ctx.env:
            ctx.env.set(name, "")
    return code


def _cmd_unset(argv: list[str], ctx: CommandContext) -> int:
    """Remove variables."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "unset <variable>...")
    for name in argv[1:]:
        ctx.env.discard(name)
    return 0


def _cmd_env(argv: list[str], ctx: CommandContext) -> int:
    """Print the environment; ``env NAME=value ...`` sets variables first."""
    for arg in argv[1:]:
        name, eq, value = arg.partition("=")
        if not eq or not is_valid_name(name):
            return ctx.fail("env", f"'{arg}': not a valid assignment")
        ctx.env.set(name, value)
    write_lines(ctx, [f"{k}={v}" for k, v in sorted(ctx.env.items())])
    return 0


def _cmd_printenv(argv: list[str], ctx: CommandContext) -> int:
    """Print all variables, or the values of the named ones."""
    if len(argv) == 1:
        write_lines(ctx, [f"{k}={v}" for k, v in sorted(ctx.env.items())])
        return 0
    code = 0
    for name in argv[1:]:
        value = ctx.env.get(name)
        if value is None:
            code = 1
            continue
        ctx.stdout(value + "\n")
    return code


def _cmd_read(argv: list[str], ctx: CommandContext) -> int:
    """Read one line of stdin into variables (``REPLY`` by default).

    Words are split on whitespace; the last name receives the rest of
    the line.  ``-p PROMPT`` is accepted and ignored (there is no
    terminal to prompt on).
    """
    args = argv[1:]
    if args[:1] == ["-p"]:
        args = args[2:]
    names = args or ["REPLY"]
    for name in names:
        if not is_valid_name(name):
            return ctx.fail("read", f"'{name}': not a valid identifier")
    if not ctx.stdin:
        for name in names:
            ctx.env.set(name, "")
        return 1
    line = ctx.stdin.split("\n", 1)[0]
    words = line.split(maxsplit=len(names) - 1)
    for index, name in enumerate(names):
        ctx.env.set(name, words[index] if index < len(words) else "")
    return 0


# -- Aliases and history ----------------------------------------------------


def _cmd_alias(argv: list[str], ctx: CommandContext) -> int:
    """Define aliases (``alias ll='ls -l'``) or print them."""
    aliases = ctx.session.aliases
    if len(argv) == 1:
        write_lines(ctx, [f"alias {n}='{v}'" for n, v in sorted(aliases.items())])
        return 0
    code = 0
    for arg in argv[1:]:
        name, eq, value = arg.partition("=")
        if eq:
            if not name:
                code = ctx.fail("alias", f"'{arg}': invalid alias name")
                continue
            aliases[name] = value
        elif name in aliases:
            ctx.stdout(f"alias {name}='{aliases[name]}'\n")
        else:
            code = ctx.fail("alias", f"{name}: not found")
    return code


def _cmd_unalias(argv: list[str], ctx: CommandContext) -> int:
    """Remove aliases (``-a`` removes all)."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "unalias [-a] <name>...")
    if argv[1] == "-a":
        ctx.session.aliases.clear()
        return 0
    code = 0
    for name in argv[1:]:
        if ctx.session.aliases.pop(name, None) is None:
            code = ctx.fail("unalias", f"{name}: not found")
    return code


def _cmd_history(argv: list[str], ctx: CommandContext) -> int:
    """Print the command history; ``-c`` clears it, ``N`` shows the last N."""
    history = ctx.session.history
    if argv[1:] == ["-c"]:
        history.clear()
        return 0
    start = 0
    if len(argv) > 1:
        try:
            start = max(len(history) - int(argv[1]), 0)
        except ValueError:
            return usage(ctx, "history [-c | N]")
    write_lines(ctx, [f"{i + 1:>5}  {cmd}" for i, cmd in enumerate(history) if i >= start])
    return 0


# -- Interpreter control ----------------------------------------------------


def _cmd_source(argv: list[str], ctx: CommandContext) -> int:
    """Run each line of a file in the current session."""
    if len(argv) < 2:  # noqa: PLR2004
        return ctx.fail(argv[0], "missing filename")
    try:
        script = ctx.fs.read_file(ctx.resolve(argv[1]))
    except FsError as exc:
        return fs_error(ctx, argv[0], exc)
    code = 0
    for line in script.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        code = _relay(ctx, ctx.exec(stripped))
    return code


def _cmd_eval(argv: list[str], ctx: CommandContext) -> int:
    """Join the arguments and run them as a command line."""
    if len(argv) < 2:  # noqa: PLR2004
        return 0
    return _relay(ctx, ctx.exec(" ".join(argv[1:])))


def _cmd_exit(argv: list[str], ctx: CommandContext) -> int:
    """Stop the interpreter with the given (or last) exit code."""
    code = ctx.session.last_exit_code
    if len(argv) > 1:
        try:
            code = int(argv[1])
        except ValueError:
            ctx.stderr(f"exit: {argv[1]}: numeric argument required\n")
            code = EXIT_USAGE
    raise ExitRequested(code & 0xFF)


def _cmd_true(_argv: list[str], _ctx: CommandContext) -> int:
    """Do nothing, successfully."""
    return 0


def _cmd_false(_argv: list[str], _ctx: CommandContext) -> int:
    """Do nothing, unsuccessfully."""
    return 1


def _cmd_sleep(argv: list[str], ctx: CommandContext) -> int:
    """Pause for the given number of seconds (fractions allowed)."""
    if len(argv) != 2:  # noqa: PLR2004
        return usage(ctx, "sleep <seconds>")
    try:
        seconds = float(argv[1])
    except ValueError:
        seconds = -1.0
    if not math.isfinite(seconds) or seconds < 0:
        return ctx.fail("sleep", f"invalid time interval '{argv[1]}'")
    time.sleep(seconds)
    return 0


# -- test / [ ----------------------------------------------------------------

_UNARY_FILE_TESTS = {"-e", "-f", "-d", "-L", "-s", "-r", "-w", "-x"}
_PERMISSION_BITS = {"-r": 0o400, "-w": 0o200, "-x": 0o100}


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        msg = f"{text}: integer expression expected"
        raise UsageError(msg) from None


def _file_test(op: str, raw: str, ctx: CommandContext) -> bool:
    path = ctx.resolve(raw)
    if op == "-L":
        return ctx.fs.lexists(path) and ctx.fs.lstat(path).is_symlink
    if not ctx.fs.exists(path):
        return False
    inode = ctx.fs.stat(path)
    match op:
        case "-e":
            return True
        case "-f":
            return not inode.is_dir
        case "-d":
            return inode.is_dir
        case "-s":
            return inode.size > 0
        case _:
            return bool(inode.mode & _PERMISSION_BITS[op])


def _binary_test(left: str, op: str, right: str) -> bool | None:
    match op:
        case "=" | "==":
            return left == right
        case "!=":
            return left != right
        case "-eq":
            return _to_int(left) == _to_int(right)
        case "-ne":
            return _to_int(left) != _to_int(right)
        case "-lt":
            return _to_int(left) < _to_int(right)
        case "-le":
            return _to_int(left) <= _to_int(right)
        case "-gt":
            return _to_int(left) > _to_int(right)
        case "-ge":
            return _to_int(left) >= _to_int(right)
    return None


def evaluate_test(args: list[str], ctx: CommandContext) -> bool:
    """Evaluate a ``test`` expression.

    Supports ``!``, string tests (``-z``, ``-n``), file tests (``-e``,
    ``-f``, ``-d``, ``-L``, ``-s``, ``-r``, ``-w``, ``-x``), string and
    integer comparisons, and ``-a`` / ``-o`` (split at the first one
    found, left to right).

    Raises:
        UsageError: If an integer comparison gets a non-integer.

    """
    if not args:
        return False
    if len(args) > 3:  # noqa: PLR2004
        for index, arg in enumerate(args):
            if arg == "-a":
                return evaluate_test(args[:index], ctx) and evaluate_test(args[index + 1 :], ctx)
            if arg == "-o":
                return evaluate_test(args[:index], ctx) or evaluate_test(args[index + 1 :], ctx)
    if args[0] == "!" and len(args) > 1:
        return not evaluate_test(args[1:], ctx)
    if len(args) == 2:  # noqa: PLR2004
        op, operand = args
        if op == "-z":
            return operand == ""
        if op == "-n":
            return operand != ""
        if op in _UNARY_FILE_TESTS:
            return _file_test(op, operand, ctx)
    if len(args) == 3:  # noqa: PLR2004
        result = _binary_test(*args)
        if result is not None:
            return result
    return " ".join(args).strip() != ""


def _cmd_test(argv: list[str], ctx: CommandContext) -> int:
    """Evaluate a conditional expression; exit 0 if true, 1 if false."""
    args = argv[1:]
    if argv[0] == "[":
        if not args or args[-1] != "]":
            return ctx.fail("[", "missing ']'", code=EXIT_USAGE)
        args = args[:-1]
    try:
        return 0 if evaluate_test(args, ctx) else 1
    except UsageError as exc:
        return ctx.fail(argv[0], exc, code=EXIT_USAGE)


# -- Introspection ----------------------------------------------------------


def _cmd_type(argv: list[str], ctx: CommandContext) -> int:
    """Describe how each name would be interpreted."""
    code = 0
    for name in argv[1:]:
        if name in ctx.session.aliases:
            ctx.stdout(f"{name} is aliased to '{ctx.session.aliases[name]}'\n")
        elif name in ctx.registry:
            ctx.stdout(f"{name} is a shell builtin\n")
        else:
            code = ctx.fail("type", f"{name}: not found")
    return code


def _cmd_which(argv: list[str], ctx: CommandContext) -> int:
    """Print the notional location of each command."""
    code = 0
    for name in argv[1:]:
        if name in ctx.registry:
            ctx.stdout(f"/usr/bin/{name}\n")
        else:
            ctx.stderr(f"which: no {name} in PATH\n")
            code = 1
    return code


def _cmd_help(argv: list[str], ctx: CommandContext) -> int:
    """List available commands, or describe the named ones."""
    if len(argv) > 1:
        code = 0
        for name in argv[1:]:
            command = ctx.registry.get(name)
            if command is None:
                code = ctx.fail("help", f"no help topics match '{name}'")
                continue
            ctx.stdout(f"{command.name}: {command.summary}\n")
        return code
    width = max(len(name) for name in ctx.registry.names())
    lines = ["Available commands:"]
    lines.extend(f"  {c.name:<{width}}  {c.summary}" for c in ctx.registry)
    write_lines(ctx, lines)
    return 0


def _cmd_log(argv: list[str], ctx: CommandContext) -> int:
    """Show shell log entries.

    ``log -l LEVEL`` shows entries at or above LEVEL, ``log -s SOURCE``
    restricts to one source, ``log -c`` clears the buffer.
    """
    args = argv[1:]
    min_level: LogLevel | None = None
    source: str | None = None
    while args:
        match args:
            case ["-c", *_]:
                ctx.logger.clear()
                return 0
            case ["-l", level, *rest]:
                try:
                    min_level = LogLevel[level.upper()]
                except KeyError:
                    return ctx.fail("log", f"unknown level '{level}'", code=EXIT_USAGE)
                args = rest
            case ["-s", name, *rest]:
                source, args = name, rest
            case _:
                return usage(ctx, "log [-l LEVEL] [-s SOURCE] [-c]")
    entries = ctx.logger.filter(min_level=min_level, source=source)
    write_lines(ctx, [str(entry) for entry in entries])
    return 0


# -- Jobs --------------------------------------------------------------------


def _job_id(raw: str | None, ctx: CommandContext) -> int | None:
    if raw is None:
        latest = ctx.session.jobs.latest()
        return latest.job_id if latest is not None else None
    try:
        return int(raw.removeprefix("%"))
    except ValueError:
        return None


def _cmd_jobs(_argv: list[str], ctx: CommandContext) -> int:
    """List background jobs."""
    jobs = ctx.session.jobs.list_jobs()
    latest = ctx.session.jobs.latest()
    for job in jobs:
        marker = "+" if job is latest else " "
        ctx.stdout(f"[{job.job_id}]{marker} {job.status.capitalize()}\t{job.command}\n")
    return 0


def _cmd_fg(argv: list[str], ctx: CommandContext) -> int:
    """Replay a job's captured output and return its exit code."""
    raw = argv[1] if len(argv) > 1 else None
    job_id = _job_id(raw, ctx)
    job = ctx.session.jobs.get(job_id) if job_id is not None else None
    if job is None:
        return ctx.fail("fg", f"{raw or 'current'}: no such job")
    ctx.session.jobs.remove(job.job_id)
    if job.stdout:
        ctx.stdout(job.stdout)
    if job.stderr:
        ctx.stderr(job.stderr)
    return job.exit_code


def _cmd_bg(argv: list[str], ctx: CommandContext) -> int:
    """Report a job as running in the background."""
    raw = argv[1] if len(argv) > 1 else None
    job_id = _job_id(raw, ctx)
    job = ctx.session.jobs.get(job_id) if job_id is not None else None
    if job is None:
        return ctx.fail("bg", f"{raw or 'current'}: no such job")
    ctx.stdout(f"[{job.job_id}] {job.command} &\n")
    return 0


COMMANDS = [
    Command("cd", _cmd_cd, "change the working directory"),
    Command("pwd", _cmd_pwd, "print the working directory"),
    Command("export", _cmd_export, "set environment variables"),
    Command("unset", _cmd_unset, "remove environment variables"),
    Command("env", _cmd_env, "print the environment"),
    Command("printenv", _cmd_printenv, "print variable values"),
    Command("read", _cmd_read, "read a line of input into variables"),
    Command("alias", _cmd_alias, "define or list aliases"),
    Command("unalias", _cmd_unalias, "remove aliases"),
    Command("history", _cmd_history, "show command history"),
    Command("source", _cmd_source, "run commands from a file"),
    Command(".", _cmd_source, "run commands from a file"),
    Command("eval", _cmd_eval, "run arguments as a command line"),
    Command("exit", _cmd_exit, "leave the shell"),
    Command("true", _cmd_true, "succeed"),
    Command("false", _cmd_false, "fail"),
    Command("sleep", _cmd_sleep, "pause for a number of seconds"),
    Command("test", _cmd_test, "evaluate a conditional expression"),
    Command("[", _cmd_test, "evaluate a conditional expression"),
    Command("type", _cmd_type, "describe how a name is interpreted"),
    Command("which", _cmd_which, "locate a command"),
    Command("help", _cmd_help, "list commands"),
    Command("log", _cmd_log, "show shell log entries"),
    Command("jobs", _cmd_jobs, "list background jobs"),
    Command("fg", _cmd_fg, "replay a background job's output"),
    Command("bg", _cmd_bg, "show a job as running in the background"),
]
