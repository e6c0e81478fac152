"""Context-aware tab completer for the foam shell.

The completer separates **what to complete** (pure logic, fully
testable) from **how to wire it** (readline integration in the REPL).

The ``complete(text, state)`` method is the readline callback.  It
delegates to ``completions(text, line)`` which analyses the input
context and returns a list of candidate strings.
"""

from __future__ import annotations

import readline
from typing import TYPE_CHECKING

from foam_shell.fs.errors import FsError

if TYPE_CHECKING:
    from foam_shell.executor import Executor

# Characters after which a new command word starts.
_COMMAND_BREAKS = ("|", ";", "&")

# Commands whose arguments name environment variables.
_VARIABLE_COMMANDS: frozenset[str] = frozenset(["unset", "printenv", "export", "read"])


class Completer:
    """Context-aware tab completer for the foam shell."""

    def __init__(self, executor: Executor) -> None:
        """Create a completer attached to an executor.

        Args:
            executor: Supplies the session (cwd, environment, aliases)
                and the command table.

        """
        self._executor = executor

    def complete(self, text: str, state: int) -> str | None:
        """Readline callback — return the *state*-th candidate for *text*.

        Args:
            text: The partial word being completed.
            state: Index into the candidate list (0, 1, 2, …).

        Returns:
            The candidate at *state*, or ``None`` when exhausted.

        """
        line = readline.get_line_buffer()
        candidates = self.completions(text, line)
        if state < len(candidates):
            return candidates[state]
        return None

    def completions(self, text: str, line: str) -> list[str]:
        """Return completion candidates based on context.

        Args:
            text: The partial word under the cursor.
            line: The full input line so far.

        Returns:
            Sorted list of matching candidates.

        """
        current = line
        for brk in _COMMAND_BREAKS:
            current = current.rsplit(brk, 1)[-1]
        words = current.lstrip().split()

        if text.startswith("$"):
            return self._complete_dollar_vars(text)

        # No words yet, or still typing the first word → command completion
        if not words or (len(words) == 1 and not current.endswith(" ")):
            return self._complete_commands(text)

        if words[0] in _VARIABLE_COMMANDS:
            return self._complete_env_vars(text)
        return self._complete_paths(text)

    # -- private completers ------------------------------------------------

    def _complete_commands(self, text: str) -> list[str]:
        """Complete command names and aliases."""
        session = self._executor.session
        names = set(self._executor.registry.names()) | set(session.aliases)
        return sorted(name for name in names if name.startswith(text))

    def _complete_paths(self, text: str) -> list[str]:
        """Complete filesystem paths relative to the cwd.

        Split the partial path into a directory and a name prefix,
        list the directory, and filter by prefix.  Directories get a
        trailing ``/`` suffix.  Dotfiles only appear when the prefix
        starts with ``.``.
        """
        session = self._executor.session
        last_slash = text.rfind("/")
        typed_dir = text[: last_slash + 1]
        prefix = text[last_slash + 1 :]
        directory = session.resolve_path(typed_dir or ".")
        try:
            entries = session.fs.readdir(directory)
        except FsError:
            return []

        candidates: list[str] = []
        for entry in entries:
            if not entry.name.startswith(prefix):
                continue
            if entry.name.startswith(".") and not prefix.startswith("."):
                continue
            full = typed_dir + entry.name
            if session.fs.is_dir(session.resolve_path(full)):
                full += "/"
            candidates.append(full)
        return sorted(candidates)

    def _complete_env_vars(self, text: str) -> list[str]:
        """Complete environment variable names (without $ prefix)."""
        env = self._executor.session.env
        return sorted(key for key, _val in env.items() if key.startswith(text))

    def _complete_dollar_vars(self, text: str) -> list[str]:
        """Complete $VAR references with the dollar prefix."""
        prefix = text[1:]  # strip leading $
        env = self._executor.session.env
        return sorted(f"${key}" for key, _val in env.items() if key.startswith(prefix))
