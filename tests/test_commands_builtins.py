"""Tests for the session builtins.

Builtins are the commands that change the shell itself: the working
directory, aliases, history, the interpreter's control flow
(``source``, ``eval``) and conditionals (``test`` / ``[``).  They are
exercised through the executor, exactly as a user types them.
"""

from unittest.mock import patch

from foam_shell.executor import EXIT_USAGE, Executor
from foam_shell.fs.filesystem import FileSystem
from foam_shell.session import Session


def _executor() -> Executor:
    """Create an executor over a fresh filesystem."""
    return Executor(Session(FileSystem()))


def _status(line: str) -> int:
    """Return the exit code of *line* in a fresh executor."""
    return _executor().execute(line).exit_code


# ---------------------------------------------------------------------------
# Cycle 1 — cd and pwd
# ---------------------------------------------------------------------------


class TestDirectoryCommands:
    """Verify cd and pwd."""

    def test_pwd(self) -> None:
        """pwd prints the working directory."""
        assert _executor().execute("pwd").stdout == "/home/user\n"

    def test_cd_absolute(self) -> None:
        """cd changes directory."""
        executor = _executor()
        executor.execute("cd /tmp")
        assert executor.execute("pwd").stdout == "/tmp\n"

    def test_cd_home_default(self) -> None:
        """cd with no argument goes home."""
        executor = _executor()
        executor.execute("cd /; cd")
        assert executor.session.cwd == "/home/user"

    def test_cd_dash(self) -> None:
        """``cd -`` returns to the previous directory and prints it."""
        executor = _executor()
        executor.execute("cd /tmp")
        result = executor.execute("cd -")
        assert result.stdout == "/home/user\n"
        assert executor.session.cwd == "/home/user"

    def test_cd_dash_without_oldpwd(self) -> None:
        """``cd -`` fails before any cd."""
        result = _executor().execute("cd -")
        assert result.exit_code == 1
        assert "OLDPWD not set" in result.stderr

    def test_cd_missing(self) -> None:
        """A missing target is reported with its resolved path."""
        result = _executor().execute("cd /missing")
        assert result.exit_code == 1
        assert result.stderr == "cd: /missing: No such file or directory\n"

    def test_cd_file(self) -> None:
        """A file cannot become the working directory."""
        result = _executor().execute("cd /etc/hostname")
        assert result.stderr == "cd: /etc/hostname: Not a directory\n"


# ---------------------------------------------------------------------------
# Cycle 2 — read, aliases and history
# ---------------------------------------------------------------------------


class TestRead:
    """Verify reading stdin into variables."""

    def test_words_into_names(self) -> None:
        """The last name receives the rest of the line."""
        executor = _executor()
        executor.execute("echo a b c | read X Y")
        assert executor.session.env.get("X") == "a"
        assert executor.session.env.get("Y") == "b c"

    def test_default_reply(self) -> None:
        """Without names, the line goes to REPLY."""
        executor = _executor()
        executor.execute("echo whole line | read")
        assert executor.session.env.get("REPLY") == "whole line"

    def test_no_input(self) -> None:
        """read without stdin fails."""
        assert _status("read X") == 1


class TestAliases:
    """Verify alias and unalias."""

    def test_list(self) -> None:
        """alias with no arguments lists definitions."""
        executor = _executor()
        executor.execute("alias ll='ls -l'")
        assert executor.execute("alias").stdout == "alias ll='ls -l'\n"

    def test_unalias(self) -> None:
        """unalias removes a definition."""
        executor = _executor()
        executor.execute("alias ll='ls -l'; unalias ll")
        assert executor.session.aliases == {}

    def test_unalias_all(self) -> None:
        """``unalias -a`` removes everything."""
        executor = _executor()
        executor.execute("alias a=echo; alias b=pwd; unalias -a")
        assert executor.session.aliases == {}

    def test_unalias_missing(self) -> None:
        """Removing an unknown alias fails."""
        assert _status("unalias nope") == 1


class TestHistory:
    """Verify the history builtin."""

    def test_numbered(self) -> None:
        """Entries are numbered from 1, including the history line itself."""
        executor = _executor()
        executor.execute("echo a")
        result = executor.execute("history")
        assert result.stdout == "    1  echo a\n    2  history\n"

    def test_last_n(self) -> None:
        """``history N`` shows only the last N entries."""
        executor = _executor()
        executor.execute("echo a")
        executor.execute("echo b")
        assert executor.execute("history 1").stdout == "    3  history 1\n"

    def test_clear(self) -> None:
        """``history -c`` empties the list."""
        executor = _executor()
        executor.execute("echo a")
        executor.execute("history -c")
        assert executor.session.history == []


# ---------------------------------------------------------------------------
# Cycle 3 — source and eval
# ---------------------------------------------------------------------------


class TestScripting:
    """Verify source, ``.`` and eval."""

    def test_source(self) -> None:
        """Each line runs in order, skipping blanks and comments."""
        executor = _executor()
        executor.session.fs.write_file(
            "/tmp/setup.sh", "export X=1\n# a comment\n\necho value=$X\ncd /tmp\n"
        )
        result = executor.execute("source /tmp/setup.sh")
        assert result.stdout == "value=1\n"
        assert executor.session.cwd == "/tmp"

    def test_dot(self) -> None:
        """``.`` is another name for source."""
        executor = _executor()
        executor.session.fs.write_file("/tmp/s.sh", "echo dotted\n")
        assert executor.execute(". /tmp/s.sh").stdout == "dotted\n"

    def test_source_missing(self) -> None:
        """A missing script is reported."""
        result = _executor().execute("source /tmp/none.sh")
        assert result.exit_code == 1
        assert "No such file or directory" in result.stderr

    def test_source_exit_code(self) -> None:
        """The script's last line decides the exit code."""
        executor = _executor()
        executor.session.fs.write_file("/tmp/s.sh", "echo ok\nfalse\n")
        assert executor.execute("source /tmp/s.sh").exit_code == 1

    def test_eval(self) -> None:
        """eval runs its joined arguments as a line."""
        result = _executor().execute("eval 'echo a; echo b'")
        assert result.stdout == "a\nb\n"

    def test_exit_non_numeric(self) -> None:
        """A non-numeric exit status is a usage error."""
        executor = _executor()
        result = executor.execute("exit soon")
        assert result.exit_code == EXIT_USAGE
        assert "numeric argument required" in result.stderr
        assert executor.exit_requested


class TestSleep:
    """Verify sleep's argument checking."""

    def test_fractional_seconds(self) -> None:
        """A fractional interval is passed on as seconds."""
        with patch("time.sleep") as fake_sleep:
            assert _status("sleep 0.5") == 0
        fake_sleep.assert_called_once_with(0.5)

    def test_invalid_interval(self) -> None:
        """Words, negatives and infinities are refused without sleeping."""
        for arg in ("soon", "-1", "inf"):
            with patch("time.sleep") as fake_sleep:
                result = _executor().execute(f"sleep {arg}")
            assert result.exit_code == 1
            assert result.stderr == f"sleep: invalid time interval '{arg}'\n"
            fake_sleep.assert_not_called()

    def test_missing_operand(self) -> None:
        """sleep needs exactly one operand."""
        assert _status("sleep") == EXIT_USAGE


# ---------------------------------------------------------------------------
# Cycle 4 — test and [
# ---------------------------------------------------------------------------


class TestConditionals:
    """Verify the ``test`` expression evaluator."""

    def test_string_tests(self) -> None:
        """``-z`` and ``-n`` check for empty strings."""
        assert _status("test -z ''") == 0
        assert _status("test -n ''") == 1
        assert _status("test -n abc") == 0

    def test_string_comparison(self) -> None:
        """``=`` and ``!=`` compare strings."""
        assert _status("[ abc = abc ]") == 0
        assert _status("[ abc != abc ]") == 1

    def test_integer_comparison(self) -> None:
        """Integer operators compare numerically."""
        assert _status("[ 2 -gt 10 ]") == 1
        assert _status("[ 10 -ge 10 ]") == 0
        assert _status("[ 1 -lt 2 ]") == 0

    def test_bad_integer(self) -> None:
        """A non-integer operand is a usage error."""
        result = _executor().execute("[ 1 -eq x ]")
        assert result.exit_code == EXIT_USAGE
        assert "integer expression expected" in result.stderr

    def test_file_tests(self) -> None:
        """``-e``, ``-f``, ``-d`` and ``-s`` inspect the filesystem."""
        assert _status("[ -e /etc/hostname ]") == 0
        assert _status("[ -f /etc/hostname ]") == 0
        assert _status("[ -d /etc/hostname ]") == 1
        assert _status("[ -d /tmp ]") == 0
        assert _status("[ -s /etc/hostname ]") == 0
        assert _status("[ -e /nope ]") == 1

    def test_permission_tests(self) -> None:
        """``-r``, ``-w`` and ``-x`` check the owner bits."""
        executor = _executor()
        executor.execute("touch /tmp/run")
        assert executor.execute("[ -x /tmp/run ]").exit_code == 1
        executor.execute("chmod u+x /tmp/run")
        assert executor.execute("[ -x /tmp/run ]").exit_code == 0
        assert executor.execute("[ -r /tmp/run ]").exit_code == 0

    def test_symlink_test(self) -> None:
        """``-L`` is true for a link, even a dangling one."""
        executor = _executor()
        executor.execute("ln -s /nope /tmp/dangling")
        assert executor.execute("[ -L /tmp/dangling ]").exit_code == 0
        assert executor.execute("[ -L /etc/hostname ]").exit_code == 1

    def test_negation(self) -> None:
        """``!`` inverts the result."""
        assert _status("[ ! -e /nope ]") == 0

    def test_and_or(self) -> None:
        """``-a`` and ``-o`` combine expressions."""
        assert _status("[ -n a -a -z '' ]") == 0
        assert _status("[ -z a -o -d /tmp ]") == 0
        assert _status("[ -z a -a -d /tmp ]") == 1

    def test_single_argument(self) -> None:
        """One argument is true when non-empty."""
        assert _status("test word") == 0
        assert _status("test ''") == 1
        assert _status("test") == 1

    def test_missing_bracket(self) -> None:
        """``[`` requires a closing ``]``."""
        result = _executor().execute("[ -d /tmp")
        assert result.exit_code == EXIT_USAGE
        assert result.stderr == "[: missing ']'\n"


# ---------------------------------------------------------------------------
# Cycle 5 — introspection
# ---------------------------------------------------------------------------


class TestIntrospection:
    """Verify type, which and help."""

    def test_type_builtin(self) -> None:
        """A registered name is a builtin."""
        assert _executor().execute("type echo").stdout == "echo is a shell builtin\n"

    def test_type_alias(self) -> None:
        """An alias is described with its value."""
        executor = _executor()
        executor.execute("alias ll='ls -l'")
        assert executor.execute("type ll").stdout == "ll is aliased to 'ls -l'\n"

    def test_type_missing(self) -> None:
        """An unknown name fails."""
        result = _executor().execute("type nope")
        assert result.exit_code == 1
        assert result.stderr == "type: nope: not found\n"

    def test_which(self) -> None:
        """which prints a notional location."""
        assert _executor().execute("which grep").stdout == "/usr/bin/grep\n"

    def test_which_missing(self) -> None:
        """which fails for unknown commands."""
        result = _executor().execute("which nope")
        assert result.exit_code == 1
        assert result.stderr == "which: no nope in PATH\n"

    def test_help_lists_commands(self) -> None:
        """help lists every command with a summary."""
        executor = _executor()
        lines = executor.execute("help").stdout.splitlines()
        assert lines[0] == "Available commands:"
        assert len(lines) == len(executor.registry) + 1

    def test_help_one(self) -> None:
        """``help NAME`` describes one command."""
        result = _executor().execute("help cd")
        assert result.stdout == "cd: change the working directory\n"
