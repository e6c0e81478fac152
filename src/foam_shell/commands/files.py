"""File commands — coreutils-style front ends over the virtual filesystem.

Every path argument is resolved against the session's working directory
before it reaches the filesystem.  Failures are reported as
``name: path: reason`` on stderr and the command carries on with its
remaining operands, returning 1 at the end.
"""

from __future__ import annotations

import re
from datetime import datetime

from foam_shell.commands.common import (
    EXIT_USAGE,
    UsageError,
    fs_error,
    parse_flags,
    read_inputs,
    usage,
    write_lines,
)
from foam_shell.fs.errors import FsError, NotFound
from foam_shell.fs.filesystem import FileType, Inode
from foam_shell.fs.globbing import glob_match
from foam_shell.fs.paths import basename
from foam_shell.registry import Command, CommandContext

_TYPE_CHAR = {FileType.FILE: "-", FileType.DIRECTORY: "d", FileType.SYMLINK: "l"}
_SYMBOLIC_MODE = re.compile(r"([ugoa]*)([+\-=])([rwx]*)")


def mode_string(file_type: FileType, mode: int) -> str:
    """Render ``ls -l`` style permissions, e.g. ``drwxr-xr-x``."""
    bits = "".join(
        letter if mode & (1 << (8 - index)) else "-"
        for index, letter in enumerate("rwxrwxrwx")
    )
    return _TYPE_CHAR[file_type] + bits


def _timestamp(seconds: float) -> str:
    return datetime.fromtimestamp(seconds).strftime("%b %d %H:%M")


def _usage_flags(ctx: CommandContext, name: str, exc: UsageError) -> int:
    return ctx.fail(name, exc, code=EXIT_USAGE)


# -- Listing -----------------------------------------------------------------


def _long_line(ctx: CommandContext, inode: Inode, name: str) -> str:
    line = (
        f"{mode_string(inode.file_type, inode.mode)} {inode.uid:>4} {inode.gid:>4} "
        f"{inode.size:>6} {_timestamp(inode.mtime)} {name}"
    )
    if inode.is_symlink:
        line += f" -> {ctx.fs.readlink(inode.path)}"
    return line


def _list_directory(ctx: CommandContext, path: str, *, show_all: bool, long: bool) -> list[str]:
    lines: list[str] = []
    if show_all:
        names = [".", "..", *ctx.fs.listdir(path)]
    else:
        names = [n for n in ctx.fs.listdir(path) if not n.startswith(".")]
    for name in names:
        if not long:
            lines.append(name)
            continue
        target = path if name == "." else ctx.session.resolve_path(name, base=path)
        lines.append(_long_line(ctx, ctx.fs.lstat(target), name))
    return lines


def _cmd_ls(argv: list[str], ctx: CommandContext) -> int:
    """List directory contents (``-a`` shows dotfiles, ``-l`` long format)."""
    try:
        flags, operands = parse_flags(argv[1:], "al")
    except UsageError as exc:
        return _usage_flags(ctx, "ls", exc)
    show_all, long = "a" in flags, "l" in flags
    operands = operands or ["."]
    code = 0
    blocks: list[list[str]] = []
    for raw in operands:
        path = ctx.resolve(raw)
        try:
            if ctx.fs.is_dir(path):
                lines = _list_directory(ctx, path, show_all=show_all, long=long)
                blocks.append([f"{raw}:", *lines] if len(operands) > 1 else lines)
            else:
                inode = ctx.fs.lstat(path)
                blocks.append([_long_line(ctx, inode, raw) if long else raw])
        except FsError as exc:
            code = fs_error(ctx, "ls", exc)
    output: list[str] = []
    for index, block in enumerate(blocks):
        if index and len(operands) > 1:
            output.append("")
        output.extend(block)
    write_lines(ctx, output)
    return code


def _cmd_cat(argv: list[str], ctx: CommandContext) -> int:
    """Concatenate files (or stdin) to stdout."""
    inputs, code = read_inputs(ctx, "cat", argv[1:])
    for _, text in inputs:
        ctx.stdout(text)
    return code


def _cmd_stat(argv: list[str], ctx: CommandContext) -> int:
    """Display file metadata; symlinks show their own record."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "stat <path>...")
    code = 0
    for raw in argv[1:]:
        try:
            info = ctx.fs.lstat(ctx.resolve(raw))
        except FsError as exc:
            code = fs_error(ctx, "stat", exc)
            continue
        file_line = f"  File: {raw}"
        if info.is_symlink:
            file_line += f" -> {info.content}"
        write_lines(
            ctx,
            [
                file_line,
                f"  Type: {info.file_type}",
                f"  Size: {info.size}",
                f"  Mode: {info.mode:04o} ({mode_string(info.file_type, info.mode)})",
                f"   Uid: {info.uid}   Gid: {info.gid}",
                f"Access: {datetime.fromtimestamp(info.atime).isoformat(sep=' ')}",
                f"Modify: {datetime.fromtimestamp(info.mtime).isoformat(sep=' ')}",
                f"Change: {datetime.fromtimestamp(info.ctime).isoformat(sep=' ')}",
            ],
        )
    return code


def _cmd_readlink(argv: list[str], ctx: CommandContext) -> int:
    """Print the target of a symbolic link."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "readlink <path>")
    try:
        ctx.stdout(ctx.fs.readlink(ctx.resolve(argv[1])) + "\n")
    except FsError as exc:
        return fs_error(ctx, "readlink", exc)
    return 0


def _cmd_realpath(argv: list[str], ctx: CommandContext) -> int:
    """Print the canonical form of each path (existence is not required)."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "realpath <path>...")
    write_lines(ctx, [ctx.resolve(arg) for arg in argv[1:]])
    return 0


def _cmd_glob(argv: list[str], ctx: CommandContext) -> int:
    """Print files matching a pattern (``*``, ``**``, ``?``) under a base."""
    args = argv[1:]
    if not args:
        return usage(ctx, "glob <pattern> [base_dir]")
    base = ctx.resolve(args[1] if len(args) > 1 else ".")
    try:
        write_lines(ctx, ctx.fs.glob(args[0], base))
    except FsError as exc:
        return fs_error(ctx, "glob", exc)
    return 0


def _cmd_find(argv: list[str], ctx: CommandContext) -> int:
    """Walk directory trees: ``find [path...] [-name PATTERN] [-type f|d|l]``."""
    args = argv[1:]
    roots: list[str] = []
    while args and not args[0].startswith("-"):
        roots.append(args.pop(0))
    name_pattern: str | None = None
    wanted: FileType | None = None
    types = {"f": FileType.FILE, "d": FileType.DIRECTORY, "l": FileType.SYMLINK}
    while args:
        match args:
            case ["-name", pattern, *rest]:
                name_pattern, args = pattern, rest
            case ["-type", kind, *rest] if kind in types:
                wanted, args = types[kind], rest
            case _:
                return usage(ctx, "find [path...] [-name PATTERN] [-type f|d|l]")

    code = 0
    found: list[str] = []
    for raw in roots or ["."]:
        real = ctx.resolve(raw)
        try:
            records = ctx.fs.walk(real)
        except FsError as exc:
            code = fs_error(ctx, "find", exc)
            continue
        prefix = raw.rstrip("/") if raw != "/" else ""
        for inode in records:
            if wanted is not None and inode.file_type is not wanted:
                continue
            if name_pattern is not None and not glob_match(name_pattern, basename(inode.path)):
                continue
            suffix = inode.path[len(real) :] if real != "/" else inode.path
            found.append((prefix + suffix) or raw)
    write_lines(ctx, found)
    return code


# -- Creating and removing ---------------------------------------------------


def _cmd_touch(argv: list[str], ctx: CommandContext) -> int:
    """Create empty files or update their timestamps."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "touch <path>...")
    code = 0
    for raw in argv[1:]:
        try:
            ctx.fs.touch(ctx.resolve(raw))
        except FsError as exc:
            code = fs_error(ctx, "touch", exc)
    return code


def _cmd_mkdir(argv: list[str], ctx: CommandContext) -> int:
    """Create directories (``-p`` creates parents and tolerates existing)."""
    try:
        flags, operands = parse_flags(argv[1:], "p")
    except UsageError as exc:
        return _usage_flags(ctx, "mkdir", exc)
    if not operands:
        return usage(ctx, "mkdir [-p] <path>...")
    code = 0
    for raw in operands:
        try:
            ctx.fs.mkdir(ctx.resolve(raw), recursive="p" in flags)
        except FsError as exc:
            code = fs_error(ctx, "mkdir", exc)
    return code


def _cmd_rmdir(argv: list[str], ctx: CommandContext) -> int:
    """Remove empty directories."""
    if len(argv) < 2:  # noqa: PLR2004
        return usage(ctx, "rmdir <path>...")
    code = 0
    for raw in argv[1:]:
        try:
            ctx.fs.rmdir(ctx.resolve(raw))
        except FsError as exc:
            code = fs_error(ctx, "rmdir", exc)
    return code


def _cmd_rm(argv: list[str], ctx: CommandContext) -> int:
    """Remove files; ``-r`` removes directories, ``-f`` ignores missing paths."""
    try:
        flags, operands = parse_flags(argv[1:], "rRf")
    except UsageError as exc:
        return _usage_flags(ctx, "rm", exc)
    recursive = bool(flags & {"r", "R"})
    force = "f" in flags
    if not operands:
        return 0 if force else usage(ctx, "rm [-rf] <path>...")
    code = 0
    for raw in operands:
        path = ctx.resolve(raw)
        try:
            inode = ctx.fs.lstat(path)
            if inode.is_dir:
                if not recursive:
                    code = ctx.fail("rm", f"cannot remove '{raw}': Is a directory")
                    continue
                ctx.fs.rmdir(path, recursive=True)
            else:
                ctx.fs.unlink(path)
        except NotFound as exc:
            if not force:
                code = fs_error(ctx, "rm", exc)
        except FsError as exc:
            code = fs_error(ctx, "rm", exc)
    return code


def _cmd_cp(argv: list[str], ctx: CommandContext) -> int:
    """Copy files; ``-r`` copies directories."""
    try:
        flags, operands = parse_flags(argv[1:], "rR")
    except UsageError as exc:
        return _usage_flags(ctx, "cp", exc)
    if len(operands) < 2:  # noqa: PLR2004
        return usage(ctx, "cp [-r] <source>... <dest>")
    *sources, dest = operands
    dest_path = ctx.resolve(dest)
    if len(sources) > 1 and not ctx.fs.is_dir(dest_path):
        return ctx.fail("cp", f"target '{dest}' is not a directory")
    code = 0
    for raw in sources:
        try:
            ctx.fs.copy(ctx.resolve(raw), dest_path, recursive=bool(flags & {"r", "R"}))
        except FsError as exc:
            code = fs_error(ctx, "cp", exc)
    return code


def _cmd_mv(argv: list[str], ctx: CommandContext) -> int:
    """Move or rename files and directories."""
    if len(argv) < 3:  # noqa: PLR2004
        return usage(ctx, "mv <source>... <dest>")
    *sources, dest = argv[1:]
    dest_path = ctx.resolve(dest)
    if len(sources) > 1 and not ctx.fs.is_dir(dest_path):
        return ctx.fail("mv", f"target '{dest}' is not a directory")
    code = 0
    for raw in sources:
        try:
            ctx.fs.rename(ctx.resolve(raw), dest_path)
        except FsError as exc:
            code = fs_error(ctx, "mv", exc)
    return code


def _cmd_ln(argv: list[str], ctx: CommandContext) -> int:
    """Create a symbolic link: ``ln -s <target> <link_name>``.

    The target is stored verbatim, so relative targets resolve against
    the link's directory when followed.
    """
    try:
        flags, operands = parse_flags(argv[1:], "sf")
    except UsageError as exc:
        return _usage_flags(ctx, "ln", exc)
    if len(operands) != 2:  # noqa: PLR2004
        return usage(ctx, "ln -s <target> <link_name>")
    if "s" not in flags:
        return ctx.fail("ln", "hard links are not supported; use -s")
    target, link = operands
    link_path = ctx.resolve(link)
    if ctx.fs.is_dir(link_path):
        link_path = ctx.session.resolve_path(basename(target) or target, base=link_path)
    try:
        if "f" in flags and ctx.fs.lexists(link_path) and not ctx.fs.lstat(link_path).is_dir:
            ctx.fs.unlink(link_path)
        ctx.fs.symlink(target, link_path)
    except FsError as exc:
        return fs_error(ctx, "ln", exc)
    return 0


def _apply_symbolic_mode(spec: str, mode: int) -> int:
    """Apply ``u+x``, ``go-w``, ``a=r`` style clauses (comma separated)."""
    for clause in spec.split(","):
        match = _SYMBOLIC_MODE.fullmatch(clause)
        if match is None:
            msg = f"invalid mode: '{spec}'"
            raise UsageError(msg)
        who, op, perms = match.groups()
        shifts = [{"u": 6, "g": 3, "o": 0}[w] for w in (who or "a").replace("a", "ugo")]
        bits = sum(
            {"r": 4, "w": 2, "x": 1}[p] << shift for p in perms for shift in shifts
        )
        if op == "+":
            mode |= bits
        elif op == "-":
            mode &= ~bits
        else:
            cleared = sum(7 << shift for shift in shifts)
            mode = (mode & ~cleared) | bits
    return mode


def _cmd_chmod(argv: list[str], ctx: CommandContext) -> int:
    """Change permission bits (octal like ``755`` or symbolic like ``u+x``)."""
    if len(argv) < 3:  # noqa: PLR2004
        return usage(ctx, "chmod <mode> <path>...")
    spec = argv[1]
    code = 0
    for raw in argv[2:]:
        path = ctx.resolve(raw)
        try:
            if re.fullmatch(r"[0-7]{1,4}", spec):
                mode = int(spec, 8)
            else:
                mode = _apply_symbolic_mode(spec, ctx.fs.stat(path).mode)
            ctx.fs.chmod(path, mode)
        except UsageError as exc:
            return ctx.fail("chmod", exc, code=EXIT_USAGE)
        except FsError as exc:
            code = fs_error(ctx, "chmod", exc)
    return code


def _cmd_tee(argv: list[str], ctx: CommandContext) -> int:
    """Copy stdin to stdout and to each file (``-a`` appends)."""
    try:
        flags, operands = parse_flags(argv[1:], "a")
    except UsageError as exc:
        return _usage_flags(ctx, "tee", exc)
    data = ctx.stdin or ""
    code = 0
    for raw in operands:
        try:
            ctx.fs.write_file(ctx.resolve(raw), data, append="a" in flags)
        except FsError as exc:
            code = fs_error(ctx, "tee", exc)
    ctx.stdout(data)
    return code


COMMANDS = [
    Command("ls", _cmd_ls, "list directory contents"),
    Command("cat", _cmd_cat, "print file contents"),
    Command("stat", _cmd_stat, "show file metadata"),
    Command("readlink", _cmd_readlink, "print a symlink's target"),
    Command("realpath", _cmd_realpath, "print canonical paths"),
    Command("glob", _cmd_glob, "list files matching a pattern"),
    Command("find", _cmd_find, "search a directory tree"),
    Command("touch", _cmd_touch, "create files or update timestamps"),
    Command("mkdir", _cmd_mkdir, "create directories"),
    Command("rmdir", _cmd_rmdir, "remove empty directories"),
    Command("rm", _cmd_rm, "remove files or directories"),
    Command("cp", _cmd_cp, "copy files and directories"),
    Command("mv", _cmd_mv, "move or rename files"),
    Command("ln", _cmd_ln, "create symbolic links"),
    Command("chmod", _cmd_chmod, "change permission bits"),
    Command("tee", _cmd_tee, "copy stdin to files and stdout"),
]
