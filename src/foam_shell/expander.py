"""Expander — variable expansion and command substitution.

Two passes, run at different times by the executor:

- ``expand_variables`` runs once over the *whole line* before any
  splitting.  ``$NAME`` and ``${NAME}`` become the variable's value (empty
  if unset) and ``$?`` the last exit code.  Because this happens first, a
  value containing ``;`` or ``|`` is re-parsed as shell syntax.
- ``substitute_commands`` runs per pipeline segment, after splitting and
  before redirect parsing.  ``$(...)`` (balanced parentheses) and
  ```...``` are executed as nested lines and replaced with their stdout,
  minus one trailing newline.

Neither pass touches text inside single quotes or after a backslash.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping

from foam_shell.lexer import CharKind, LexState, Lexer, Symbol
from foam_shell.registry import ExecResult, Sink

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_BRACED = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _expandable(symbol: Symbol) -> bool:
    """Return True if a ``$`` at *symbol* may start an expansion."""
    if symbol.kind is CharKind.BARE:
        return True
    return symbol.kind is CharKind.QUOTED and symbol.state is LexState.DOUBLE_QUOTE


def expand_variables(line: str, env: Mapping[str, str], last_exit_code: int = 0) -> str:
    """Replace ``$NAME``, ``${NAME}`` and ``$?`` in *line*.

    Args:
        line: The raw command line.
        env: Variable values.
        last_exit_code: The value for ``$?``.

    Returns:
        The expanded line.  A ``$`` not followed by a name, ``{name}`` or
        ``?`` is kept literally (so ``$(`` survives for substitution).

    """
    symbols = list(Lexer(line))
    out: list[str] = []
    i = 0
    while i < len(line):
        symbol = symbols[i]
        if symbol.char != "$" or not _expandable(symbol):
            out.append(symbol.char)
            i += 1
            continue
        rest = line[i + 1 :]
        if rest.startswith("?"):
            out.append(str(last_exit_code))
            i += 2
        elif match := _BRACED.match(rest):
            out.append(env.get(match.group(1), ""))
            i += 1 + match.end()
        elif match := _NAME.match(rest):
            out.append(env.get(match.group(0), ""))
            i += 1 + match.end()
        else:
            out.append("$")
            i += 1
    return "".join(out)


def find_substitutions(text: str) -> list[tuple[int, int, str]]:
    """Locate top-level ``$(...)`` and backtick spans in *text*.

    Returns:
        ``(start, end, inner)`` triples in order, where ``text[start:end]``
        is the whole match.  Unterminated forms are not reported.

    """
    spans: list[tuple[int, int, str]] = []
    start: int | None = None
    backtick = False
    depth = 0
    for symbol in Lexer(text):
        if start is None:
            if symbol.depth == 1 and depth == 0:
                start, backtick = symbol.index - 1, False
            elif symbol.in_backtick and not backtick:
                start, backtick = symbol.index, True
        elif backtick and not symbol.in_backtick:
            spans.append((start, symbol.index + 1, text[start + 1 : symbol.index]))
            start = None
            backtick = False
        elif not backtick and symbol.depth == 0:
            spans.append((start, symbol.index + 1, text[start + 2 : symbol.index]))
            start = None
        depth = symbol.depth
    return spans


def substitute_commands(
    text: str,
    run: Callable[[str], ExecResult],
    stderr: Sink | None = None,
) -> str:
    """Replace each top-level substitution in *text* with its output.

    Args:
        text: One pipeline segment.
        run: Executes a nested line and returns its captured result.
        stderr: Where the nested stderr is forwarded (dropped if None).

    Returns:
        The segment with substitutions replaced; unterminated ``$(`` or
        backtick forms are left as literal text.

    """
    spans = find_substitutions(text)
    if not spans:
        return text
    out: list[str] = []
    position = 0
    for start, end, inner in spans:
        out.append(text[position:start])
        result = run(inner)
        if result.stderr and stderr is not None:
            stderr(result.stderr)
        out.append(result.stdout.removesuffix("\n"))
        position = end
    out.append(text[position:])
    return "".join(out)
