"""Tests for the tab-completion engine.

The Completer class provides context-aware completion for the foam
shell.  Its logic is pure (no I/O) — it analyses the input line and
returns candidate strings, making it fully testable without readline.
"""

from unittest.mock import patch

from foam_shell.completer import Completer
from foam_shell.executor import Executor
from foam_shell.fs.filesystem import FileSystem
from foam_shell.session import Session


def _executor() -> Executor:
    """Create an executor over a fresh filesystem."""
    return Executor(Session(FileSystem()))


# ---------------------------------------------------------------------------
# Cycle 1 — command name completion
# ---------------------------------------------------------------------------


class TestCommandCompletion:
    """Verify completion of command names (first word on the line)."""

    def test_empty_line_returns_all_commands(self) -> None:
        """Pressing Tab on a blank line should list every command."""
        executor = _executor()
        candidates = Completer(executor).completions("", "")
        assert candidates == executor.registry.names()

    def test_partial_match(self) -> None:
        """A partial prefix should return only matching commands."""
        candidates = Completer(_executor()).completions("he", "he")
        assert candidates == ["head", "help"]

    def test_no_match_returns_empty(self) -> None:
        """An unrecognised prefix should return no candidates."""
        assert Completer(_executor()).completions("zzz", "zzz") == []

    def test_aliases_included(self) -> None:
        """Aliases complete like commands."""
        executor = _executor()
        executor.execute("alias hello='echo hello'")
        assert "hello" in Completer(executor).completions("hel", "hel")

    def test_after_pipe(self) -> None:
        """The word after a pipe is a command again."""
        candidates = Completer(_executor()).completions("gr", "cat /etc/hostname | gr")
        assert candidates == ["grep"]

    def test_after_semicolon(self) -> None:
        """The word after ``;`` is a command again."""
        assert Completer(_executor()).completions("pw", "cd /tmp; pw") == ["pwd"]


# ---------------------------------------------------------------------------
# Cycle 2 — path completion
# ---------------------------------------------------------------------------


class TestPathCompletion:
    """Verify completion of path arguments."""

    def test_absolute_directory(self) -> None:
        """Directories get a trailing slash."""
        assert Completer(_executor()).completions("/e", "cat /e") == ["/etc/"]

    def test_file_in_directory(self) -> None:
        """Files inside a typed directory complete with its prefix."""
        candidates = Completer(_executor()).completions("/etc/h", "cat /etc/h")
        assert candidates == ["/etc/hostname"]

    def test_relative_to_cwd(self) -> None:
        """Bare names complete against the working directory."""
        executor = _executor()
        executor.execute("cd /usr")
        assert Completer(executor).completions("b", "ls b") == ["bin/"]

    def test_dotfiles_hidden(self) -> None:
        """Dotfiles are hidden unless the prefix starts with a dot."""
        completer = Completer(_executor())
        assert completer.completions("", "cat ") == []
        assert completer.completions(".", "cat .") == [".bashrc"]

    def test_missing_directory(self) -> None:
        """An unknown directory yields nothing."""
        assert Completer(_executor()).completions("/nope/x", "cat /nope/x") == []


# ---------------------------------------------------------------------------
# Cycle 3 — variable completion
# ---------------------------------------------------------------------------


class TestVariableCompletion:
    """Verify completion of environment variable names."""

    def test_dollar_prefix(self) -> None:
        """``$HO`` completes to ``$HOME``."""
        assert Completer(_executor()).completions("$HO", "echo $HO") == ["$HOME"]

    def test_unset_argument(self) -> None:
        """Arguments to unset are variable names."""
        assert Completer(_executor()).completions("HO", "unset HO") == ["HOME"]

    def test_new_variable_visible(self) -> None:
        """Variables exported during the session are offered."""
        executor = _executor()
        executor.execute("export COLOR=blue")
        assert Completer(executor).completions("CO", "printenv CO") == ["COLOR"]


# ---------------------------------------------------------------------------
# Cycle 4 — readline callback
# ---------------------------------------------------------------------------


class TestReadlineCallback:
    """Verify the ``complete(text, state)`` protocol."""

    def test_states_enumerate_candidates(self) -> None:
        """Successive states walk the candidate list, then return None."""
        completer = Completer(_executor())
        with patch("readline.get_line_buffer", return_value="he"):
            assert completer.complete("he", 0) == "head"
            assert completer.complete("he", 1) == "help"
            assert completer.complete("he", 2) is None

    def test_uses_line_buffer_context(self) -> None:
        """The whole line decides between command and path completion."""
        completer = Completer(_executor())
        with patch("readline.get_line_buffer", return_value="ls /t"):
            assert completer.complete("/t", 0) == "/tmp/"
