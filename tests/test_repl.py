"""Tests for the REPL (Read-Eval-Print Loop) and its entry point.

The REPL is the interactive terminal interface.  Since it involves I/O,
we mostly test the pieces it is built from — the prompt, the banner,
executor construction and argument parsing — and drive the loop itself
with a patched ``input``.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from foam_shell.executor import Executor
from foam_shell.fs.filesystem import FileSystem
from foam_shell.repl import build_parser, build_prompt, create_executor, format_banner, main, run
from foam_shell.session import Session

EXIT_THREE = 3


class TestHelpers:
    """Verify the pure helper functions."""

    def test_prompt_shows_user_and_cwd(self) -> None:
        """The prompt reads ``user@foam:cwd$ ``."""
        session = Session(FileSystem())
        assert build_prompt(session) == "user@foam:/home/user$ "

    def test_prompt_follows_cd(self) -> None:
        """The prompt tracks the working directory."""
        executor = Executor(Session(FileSystem()))
        executor.execute("cd /tmp")
        assert build_prompt(executor.session) == "user@foam:/tmp$ "

    def test_banner_in_memory(self) -> None:
        """Without a state file the banner says so."""
        banner = format_banner()
        assert "foam-shell" in banner
        assert "state: in memory" in banner

    def test_banner_with_state(self) -> None:
        """The banner names the state file."""
        assert "state: /tmp/fs.json" in format_banner(Path("/tmp/fs.json"))

    def test_parser(self) -> None:
        """--state and -c are recognised."""
        args = build_parser().parse_args(["--state", "fs.json", "-c", "pwd"])
        assert args.state == Path("fs.json")
        assert args.command == "pwd"


class TestCreateExecutor:
    """Verify in-memory and persisted start-up."""

    def test_in_memory(self) -> None:
        """No path means a fresh default tree."""
        executor = create_executor()
        assert executor.session.fs.is_dir("/home/user")

    def test_new_state_file(self, tmp_path: Path) -> None:
        """A missing state file is created with the default tree."""
        path = tmp_path / "fs.json"
        create_executor(path)
        assert path.exists()

    def test_state_survives_restart(self, tmp_path: Path) -> None:
        """Changes are visible to the next executor on the same file."""
        path = tmp_path / "fs.json"
        create_executor(path).execute("echo kept > /tmp/note")
        assert create_executor(path).execute("cat /tmp/note").stdout == "kept\n"


class TestMain:
    """Verify the console entry point."""

    def test_one_shot(self, capsys: pytest.CaptureFixture[str]) -> None:
        """``-c`` runs one line and returns its exit code."""
        assert main(["-c", "echo hi"]) == 0
        assert capsys.readouterr().out == "hi\n"

    def test_one_shot_failure(self, capsys: pytest.CaptureFixture[str]) -> None:
        """The line's exit code becomes the process status."""
        assert main(["-c", "cat /nope"]) == 1
        assert "cat: /nope" in capsys.readouterr().err

    def test_bad_state_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """An unreadable state file is reported and the status is 1."""
        path = tmp_path / "bad.json"
        path.write_text('{"something": "else"}')
        assert main(["--state", str(path), "-c", "pwd"]) == 1
        assert "cannot load state" in capsys.readouterr().err


class TestRun:
    """Verify the interactive loop."""

    def test_runs_until_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Lines run in order; ``exit N`` stops the loop with status N."""
        executor = create_executor()
        with patch("builtins.input", side_effect=["echo looped", "exit 3", "echo never"]):
            assert run(executor) == EXIT_THREE
        out = capsys.readouterr().out
        assert "looped" in out
        assert "never" not in out

    def test_end_of_input(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Ctrl+D ends the loop cleanly."""
        executor = create_executor()
        with patch("builtins.input", side_effect=EOFError):
            assert run(executor) == 0
        capsys.readouterr()

    def test_interrupt_at_prompt(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Ctrl+C at the prompt discards the line and keeps going."""
        executor = create_executor()
        with patch("builtins.input", side_effect=[KeyboardInterrupt, "echo after", EOFError]):
            run(executor)
        assert "after" in capsys.readouterr().out
