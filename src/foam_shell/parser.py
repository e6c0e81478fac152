"""Parser — turn a command line into statements, chains, pipelines and redirects.

Splitting happens in layers, each using the quote-aware lexer so that
operators inside quotes, after a backslash, or inside ``$(...)`` and
backticks are plain text:

1. ``split_statements``  — on ``;``
2. ``split_background``  — a trailing single ``&``
3. ``split_logic``       — on ``&&`` / ``||``
4. ``split_pipeline``    — on single ``|``
5. ``parse_redirects``   — ``>``, ``>>``, ``2>``, ``2>>``, ``2>&1``, ``<`` per segment

``parse_line`` runs layers 1-4 and returns a small tree of dataclasses.
Redirect parsing is *not* part of ``parse_line``: command substitution has
to run on each segment first, and the substituted text may itself carry
redirect operators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from foam_shell.lexer import WHITESPACE, Symbol, scan, unquote


class ParseError(ValueError):
    """Raised when a command line is structurally malformed."""

    def __init__(self, token: str) -> None:
        """Create a parse error pointing at the offending *token*."""
        self.token = token
        super().__init__(f"syntax error near unexpected token '{token}'")


class LogicOp(StrEnum):
    """Operators joining pipelines inside a statement."""

    AND = "&&"
    OR = "||"


class RedirectKind(StrEnum):
    """Redirect operators recognized in a segment."""

    STDOUT = ">"
    APPEND = ">>"
    STDERR = "2>"
    STDERR_APPEND = "2>>"
    MERGE_ERRORS = "2>&1"
    STDIN = "<"

    @property
    def is_output(self) -> bool:
        """Return True for operators that capture stdout."""
        return self in (RedirectKind.STDOUT, RedirectKind.APPEND)

    @property
    def is_error(self) -> bool:
        """Return True for operators that capture stderr."""
        return self in (RedirectKind.STDERR, RedirectKind.STDERR_APPEND)

    @property
    def append(self) -> bool:
        """Return True if the target file is appended to, not truncated."""
        return self in (RedirectKind.APPEND, RedirectKind.STDERR_APPEND)


@dataclass(frozen=True)
class Redirect:
    """One redirect operator and its (unquoted, unresolved) target."""

    kind: RedirectKind
    target: str


@dataclass
class Pipeline:
    """A ``|``-chain of raw segment texts."""

    segments: list[str] = field(default_factory=list)


@dataclass
class Statement:
    """One ``;``-separated statement.

    Attributes:
        text: The statement text (without any trailing ``&``).
        chain: Alternating ``Pipeline`` and ``LogicOp`` items, always
            starting and ending with a ``Pipeline``.
        background: True if the statement ended in ``&``.

    """

    text: str
    chain: list[Pipeline | LogicOp] = field(default_factory=list)
    background: bool = False


def _cut(text: str, cuts: list[tuple[int, int]]) -> list[str]:
    """Split *text* at the given ``(start, end)`` operator spans."""
    pieces: list[str] = []
    start = 0
    for begin, end in cuts:
        pieces.append(text[start:begin])
        start = end
    pieces.append(text[start:])
    return pieces


def split_statements(line: str) -> list[str]:
    """Split *line* on top-level ``;`` and drop empty statements."""
    symbols, _ = scan(line)
    cuts = [(s.index, s.index + 1) for s in symbols if s.at_top_level and s.char == ";"]
    return [piece.strip() for piece in _cut(line, cuts) if piece.strip()]


def split_background(statement: str) -> tuple[str, bool]:
    """Strip a trailing single ``&`` from *statement*.

    Returns:
        ``(text, background)``.  ``&&`` at the end is not a background
        marker.

    """
    text = statement.rstrip()
    if not text.endswith("&") or text.endswith("&&"):
        return text, False
    symbols, _ = scan(text)
    if not symbols[-1].at_top_level:
        return text, False
    return text[:-1].rstrip(), True


def split_logic(statement: str) -> tuple[list[str], list[LogicOp]]:
    """Split *statement* on top-level ``&&`` and ``||``.

    Returns:
        ``(parts, operators)`` with ``len(parts) == len(operators) + 1``
        when every part is non-empty.  Empty parts (e.g. a leading
        ``&&``) are dropped along with the operator that followed them.

    """
    symbols, _ = scan(statement)
    cuts: list[tuple[int, int]] = []
    ops: list[LogicOp] = []
    i = 0
    while i < len(symbols) - 1:
        current, following = symbols[i], symbols[i + 1]
        pair = current.char + following.char
        if pair in ("&&", "||") and current.at_top_level and following.at_top_level:
            cuts.append((i, i + 2))
            ops.append(LogicOp(pair))
            i += 2
            continue
        i += 1

    pieces = [piece.strip() for piece in _cut(statement, cuts)]
    parts: list[str] = []
    operators: list[LogicOp] = []
    for index, piece in enumerate(pieces):
        if not piece:
            continue
        if parts and index > 0:
            operators.append(ops[index - 1])
        parts.append(piece)
    return parts, operators


def split_pipeline(part: str) -> list[str]:
    """Split a logic part on top-level single ``|`` and drop empty segments."""
    symbols, _ = scan(part)
    cuts: list[tuple[int, int]] = []
    for i, symbol in enumerate(symbols):
        if not (symbol.at_top_level and symbol.char == "|"):
            continue
        before = symbols[i - 1] if i > 0 else None
        after = symbols[i + 1] if i + 1 < len(symbols) else None
        if (before is not None and before.is_bare("|")) or (after is not None and after.is_bare("|")):
            continue
        cuts.append((i, i + 1))
    return [piece.strip() for piece in _cut(part, cuts) if piece.strip()]


def parse_line(line: str) -> list[Statement]:
    """Parse *line* into statements, logic chains and pipelines.

    A line whose first non-blank character is ``#`` is a comment and
    yields no statements.
    """
    if line.lstrip().startswith("#"):
        return []
    statements: list[Statement] = []
    for raw in split_statements(line):
        text, background = split_background(raw)
        parts, operators = split_logic(text)
        if not parts:
            continue
        chain: list[Pipeline | LogicOp] = [Pipeline(split_pipeline(parts[0]))]
        for op, part in zip(operators, parts[1:], strict=True):
            chain.append(op)
            chain.append(Pipeline(split_pipeline(part)))
        statements.append(Statement(text=text, chain=chain, background=background))
    return statements


# -- Redirects ---------------------------------------------------------------

_OPERATOR_CHARS = "<>"


def _read_operator(symbols: list[Symbol], i: int) -> tuple[RedirectKind, int] | None:
    """Recognize a redirect operator starting at symbol *i*.

    Returns:
        ``(kind, length)`` or None if no operator starts here.

    """
    symbol = symbols[i]
    if not symbol.at_top_level:
        return None

    def bare_at(j: int, char: str) -> bool:
        return j < len(symbols) and symbols[j].at_top_level and symbols[j].char == char

    if symbol.char == "2":
        at_word_start = i == 0 or symbols[i - 1].is_bare(WHITESPACE)
        if at_word_start and bare_at(i + 1, ">"):
            if bare_at(i + 2, "&") and bare_at(i + 3, "1"):
                return RedirectKind.MERGE_ERRORS, 4
            if bare_at(i + 2, ">"):
                return RedirectKind.STDERR_APPEND, 3
            return RedirectKind.STDERR, 2
        return None
    if symbol.char == ">":
        if bare_at(i + 1, ">"):
            return RedirectKind.APPEND, 2
        return RedirectKind.STDOUT, 1
    if symbol.char == "<":
        return RedirectKind.STDIN, 1
    return None


def parse_redirects(segment: str) -> tuple[str, list[Redirect]]:
    """Extract redirect operators and their targets from *segment*.

    Each operator is followed (after optional blanks) by a target word
    that runs up to the next unquoted blank or redirect operator.  The
    target is unquoted with the tokenizer rules.  ``2>&1`` takes no target;
    its ``Redirect`` carries the descriptor ``"1"``.

    Returns:
        ``(command_text, redirects)`` with redirects in encounter order.

    Raises:
        ParseError: If an operator has no target, or the target is some
            other ``&`` descriptor form (only ``2>&1`` is supported).

    """
    symbols, _ = scan(segment)
    redirects: list[Redirect] = []
    kept: list[str] = []
    i = 0
    while i < len(symbols):
        found = _read_operator(symbols, i)
        if found is None:
            kept.append(symbols[i].char)
            i += 1
            continue
        kind, length = found
        i += length
        if kind is RedirectKind.MERGE_ERRORS:
            redirects.append(Redirect(kind, "1"))
            kept.append(" ")
            continue
        while i < len(symbols) and symbols[i].is_bare(WHITESPACE):
            i += 1
        start = i
        while i < len(symbols) and not symbols[i].is_bare(WHITESPACE):
            if symbols[i].at_top_level and symbols[i].char in _OPERATOR_CHARS:
                break
            i += 1
        raw_target = segment[start:i]
        if not raw_target or symbols[start].is_bare("&"):
            token = symbols[start].char if start < len(symbols) else "newline"
            raise ParseError(token)
        redirects.append(Redirect(kind, unquote(raw_target)))
        kept.append(" ")
    return "".join(kept).strip(), redirects
