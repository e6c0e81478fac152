"""Executor — run command lines against a session.

The executor is the shell proper.  For each line it:

1. expands ``$VAR`` / ``${VAR}`` / ``$?`` over the whole line,
2. splits it into statements, logic chains and pipelines,
3. per pipeline segment: runs command substitution, parses redirects,
   tokenizes, applies an alias, handles ``NAME=value`` assignments, and
   dispatches to the registered handler.

Data moves between stages as whole strings: each stage's stdout is
buffered completely before the next stage starts.  Only the last stage's
stdout reaches the caller; every stage's stderr does.

Exit codes:
    - ``0`` success, ``1`` generic failure
    - ``2`` parse error (e.g. a redirect without a target)
    - ``127`` command not found
    - ``130`` cancelled

No exception escapes line execution: handler errors become exit code 1
with a message on stderr and an ERROR log entry, and a redirect whose
file cannot be read or written (including a failing backing store)
becomes exit code 1 with a ``foam: target: reason`` message.
"""

from __future__ import annotations

from foam_shell.commands import default_registry
from foam_shell.env import is_valid_name
from foam_shell.expander import expand_variables, substitute_commands
from foam_shell.fs.errors import FsError
from foam_shell.lexer import scan, tokenize
from foam_shell.logging import Logger
from foam_shell.parser import (
    LogicOp,
    ParseError,
    Pipeline,
    Redirect,
    RedirectKind,
    Statement,
    parse_line,
    parse_redirects,
)
from foam_shell.registry import (
    CommandContext,
    CommandRegistry,
    ExecResult,
    ExitRequested,
    Sink,
)
from foam_shell.session import Session

MAX_EXEC_DEPTH = 64

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NOT_FOUND = 127
EXIT_CANCELLED = 130

_SOURCE = "shell"


def _reason(exc: OSError) -> str:
    """Return the strerror-style part of *exc* for a diagnostic."""
    if isinstance(exc, FsError):
        return exc.reason
    return exc.strerror or str(exc)


class Executor:
    """Interpret command lines for one session.

    The executor owns no state of its own beyond a cancellation flag, an
    exit flag and the current nesting depth; everything a command can
    change lives in the ``Session``.
    """

    def __init__(
        self,
        session: Session,
        *,
        registry: CommandRegistry | None = None,
        logger: Logger | None = None,
        max_depth: int = MAX_EXEC_DEPTH,
    ) -> None:
        """Create an executor.

        Args:
            session: The session commands run in.
            registry: Command table (``default_registry()`` if None).
            logger: Log buffer.  Defaults to the filesystem's logger, or
                a new one that is then shared with the filesystem.
            max_depth: Limit on nested executions (substitution,
                ``source``, ``eval``, ``xargs``).

        """
        self.session = session
        self.registry = registry if registry is not None else default_registry()
        if logger is None:
            logger = session.fs.logger if session.fs.logger is not None else Logger()
        if session.fs.logger is None:
            session.fs.logger = logger
        self.logger = logger
        self.max_depth = max_depth
        self.exit_requested = False
        self._cancelled = False
        self._depth = 0

    # -- Public API ----------------------------------------------------------

    @property
    def cancelled(self) -> bool:
        """Return True if a cancellation is pending for the current line."""
        return self._cancelled

    def cancel(self) -> None:
        """Stop scheduling further statements and stages of the current line."""
        self._cancelled = True

    def execute(self, line: str) -> ExecResult:
        """Run *line* and capture its output.

        Returns:
            The captured stdout, stderr and exit code.

        """
        out: list[str] = []
        err: list[str] = []
        code = self.execute_live(line, stdout=out.append, stderr=err.append)
        return ExecResult(stdout="".join(out), stderr="".join(err), exit_code=code)

    def execute_live(self, line: str, *, stdout: Sink, stderr: Sink) -> int:
        """Run *line*, streaming output to the caller's sinks.

        The line is recorded in the session history.  If a command calls
        ``exit``, ``exit_requested`` is set and its code returned.

        Returns:
            The exit code of the last statement.

        """
        self._cancelled = False
        stripped = line.strip()
        if stripped:
            self.session.history.append(stripped)
        try:
            return self._run_line(line, stdout, stderr)
        except ExitRequested as request:
            self.exit_requested = True
            self.session.last_exit_code = request.code
            return request.code

    # -- Line / statement / chain / pipeline --------------------------------

    def _nested(self, line: str) -> ExecResult:
        """Run *line* one level deeper and capture it (the ``exec`` hook)."""
        if self._depth >= self.max_depth:
            self.logger.error(f"nesting depth {self.max_depth} exceeded", source=_SOURCE)
            return ExecResult(
                stderr="foam: maximum nesting depth exceeded\n", exit_code=EXIT_FAILURE
            )
        out: list[str] = []
        err: list[str] = []
        self._depth += 1
        try:
            code = self._run_line(line, out.append, err.append)
        except ExitRequested as request:
            code = request.code
        finally:
            self._depth -= 1
        return ExecResult(stdout="".join(out), stderr="".join(err), exit_code=code)

    def _run_line(self, line: str, stdout: Sink, stderr: Sink) -> int:
        session = self.session
        expanded = expand_variables(line, session.env.as_dict(), session.last_exit_code)
        _, unterminated = scan(expanded)
        if unterminated:
            self.logger.warning(f"unterminated quote or escape in: {line!r}", source=_SOURCE)

        code = 0
        for statement in parse_line(expanded):
            if self._cancelled:
                code = EXIT_CANCELLED
                break
            if statement.background:
                code = self._run_background(statement, stdout)
            else:
                code = self._run_chain(statement.chain, stdout, stderr)
            session.last_exit_code = code
        if self._cancelled:
            code = EXIT_CANCELLED
            session.last_exit_code = code
        return code

    def _run_background(self, statement: Statement, stdout: Sink) -> int:
        """Run a ``&`` statement with its output captured into a job."""
        job = self.session.jobs.add(statement.text)
        out: list[str] = []
        err: list[str] = []
        code = self._run_chain(statement.chain, out.append, err.append)
        job.finish(stdout="".join(out), stderr="".join(err), exit_code=code)
        stdout(f"[{job.job_id}] {statement.text}\n")
        return 0

    def _run_chain(self, chain: list[Pipeline | LogicOp], stdout: Sink, stderr: Sink) -> int:
        """Run ``&&`` / ``||`` chains, skipping exactly one part per failed test."""
        code = 0
        skip = False
        for item in chain:
            if isinstance(item, LogicOp):
                skip = (item is LogicOp.AND and code != 0) or (item is LogicOp.OR and code == 0)
                continue
            if skip:
                skip = False
                continue
            if self._cancelled:
                return EXIT_CANCELLED
            code = self._run_pipeline(item.segments, stdout, stderr)
        return code

    def _run_pipeline(self, segments: list[str], stdout: Sink, stderr: Sink) -> int:
        """Thread buffered stdout from each stage into the next stage's stdin."""
        code = 0
        data: str | None = None
        last = len(segments) - 1
        for index, segment in enumerate(segments):
            if self._cancelled:
                return EXIT_CANCELLED
            if index == last:
                code = self._run_segment(segment, stdin=data, stdout=stdout, stderr=stderr)
            else:
                buffer: list[str] = []
                code = self._run_segment(segment, stdin=data, stdout=buffer.append, stderr=stderr)
                data = "".join(buffer)
        return code

    # -- Segment -------------------------------------------------------------

    def _run_segment(self, segment: str, *, stdin: str | None, stdout: Sink, stderr: Sink) -> int:
        """Substitute, apply redirects, and dispatch one command."""
        text = substitute_commands(segment, self._nested, stderr)
        try:
            command_text, redirects = parse_redirects(text)
        except ParseError as exc:
            self.logger.warning(f"{exc} in {segment!r}", source=_SOURCE)
            stderr(f"foam: {exc}\n")
            return EXIT_USAGE

        captures: list[tuple[Redirect, list[str]]] = []
        out_sink, err_sink = stdout, stderr
        for redirect in redirects:
            if redirect.kind is RedirectKind.STDIN:
                path = self.session.resolve_path(redirect.target)
                try:
                    stdin = self.session.fs.read_file(path)
                except OSError as exc:
                    self.logger.warning(f"redirect from {path} failed: {exc}", source=_SOURCE)
                    stderr(f"foam: {redirect.target}: {_reason(exc)}\n")
                    return EXIT_FAILURE
                continue
            if redirect.kind is RedirectKind.MERGE_ERRORS:
                # stderr follows stdout as it stands at this point
                err_sink = out_sink
                continue
            buffer: list[str] = []
            captures.append((redirect, buffer))
            if redirect.kind.is_output:
                out_sink = buffer.append
            elif redirect.kind.is_error:
                err_sink = buffer.append

        code = self._dispatch(tokenize(command_text), stdin=stdin, stdout=out_sink, stderr=err_sink)
        return self._flush(captures, code, stderr)

    def _flush(self, captures: list[tuple[Redirect, list[str]]], code: int, stderr: Sink) -> int:
        """Write redirect buffers to their files once the command is done."""
        for redirect, buffer in captures:
            path = self.session.resolve_path(redirect.target)
            try:
                self.session.fs.write_file(path, "".join(buffer), append=redirect.kind.append)
            except OSError as exc:
                self.logger.warning(f"redirect to {path} failed: {exc}", source=_SOURCE)
                stderr(f"foam: {redirect.target}: {_reason(exc)}\n")
                if code == 0:
                    code = EXIT_FAILURE
        return code

    def _dispatch(self, argv: list[str], *, stdin: str | None, stdout: Sink, stderr: Sink) -> int:
        """Resolve aliases and assignments, then call the handler."""
        if not argv:
            return 0
        name = argv[0]
        key, eq, value = name.partition("=")
        if eq and is_valid_name(key):
            self.session.env.set(key, value)
            return 0

        alias = self.session.aliases.get(name)
        if alias is not None:
            argv = tokenize(alias) + argv[1:]
            if not argv:
                return 0
            name = argv[0]

        command = self.registry.get(name)
        if command is None:
            self.logger.warning(f"command not found: {name}", source=_SOURCE)
            stderr(f"{name}: command not found\n")
            return EXIT_NOT_FOUND

        ctx = CommandContext(
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            session=self.session,
            registry=self.registry,
            exec=self._nested,
            logger=self.logger,
        )
        try:
            return command.handler(argv, ctx)
        except ExitRequested:
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.error(f"{name}: {exc}", source=_SOURCE)
            stderr(f"{name}: {exc}\n")
            return EXIT_FAILURE
