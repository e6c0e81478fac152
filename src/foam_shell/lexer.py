"""Quote-aware character scanner shared by every parsing stage.

The lexer is an explicit state machine over four states:

==================  ============================================  ==========
State               Entered by                                    Left by
==================  ============================================  ==========
``NORMAL``          start, closing quote, end of an escape        ``'`` ``"`` ``\\``
``SINGLE_QUOTE``    ``'`` in NORMAL                               ``'``
``DOUBLE_QUOTE``    ``"`` in NORMAL                               ``"`` ``\\``
``ESCAPED``         ``\\`` in NORMAL or DOUBLE_QUOTE               next char
==================  ============================================  ==========

Inside single quotes a backslash is literal.  ``ESCAPED`` remembers the
state it came from and returns there after consuming exactly one
character.

Each character is classified with a ``CharKind``:

- ``BARE``    — unquoted, unescaped; the only kind that can be syntax
  (``;``, ``|``, ``&``, ``>``, ``<``, whitespace).
- ``QUOTED``  — literal text inside quotes.
- ``ESCAPED`` — the literal character following a backslash.
- ``QUOTE``   — an opening or closing quote character (removed from words).
- ``ESCAPE``  — the backslash itself (removed from words).

On top of the quote states the lexer tracks command-substitution nesting
(``$(`` ... ``)`` depth and open backticks) so that the splitters never
cut a ``$(a | b)`` in half.  Unterminated quotes are lenient: they run to
the end of input and ``unterminated`` reports it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

WHITESPACE = frozenset(" \t")


class LexState(StrEnum):
    """The quoting state of the scanner."""

    NORMAL = "normal"
    SINGLE_QUOTE = "single_quote"
    DOUBLE_QUOTE = "double_quote"
    ESCAPED = "escaped"


class CharKind(StrEnum):
    """How one input character was consumed."""

    BARE = "bare"
    QUOTED = "quoted"
    ESCAPED = "escaped"
    QUOTE = "quote"
    ESCAPE = "escape"


@dataclass(frozen=True)
class Symbol:
    """One classified input character.

    Attributes:
        index: Offset in the scanned text.
        char: The character itself.
        kind: How the character was consumed.
        depth: ``$(`` nesting depth *after* this character.
        in_backtick: Whether a backtick substitution is open after it.
        state: The lexer state the character was read in.

    """

    index: int
    char: str
    kind: CharKind
    depth: int = 0
    in_backtick: bool = False
    state: LexState = LexState.NORMAL

    @property
    def is_literal(self) -> bool:
        """Return True if the character is word content (not quote syntax)."""
        return self.kind in (CharKind.BARE, CharKind.QUOTED, CharKind.ESCAPED)

    def is_bare(self, chars: str | frozenset[str]) -> bool:
        """Return True if this is an unquoted, unescaped char from *chars*."""
        return self.kind is CharKind.BARE and self.char in chars

    @property
    def at_top_level(self) -> bool:
        """Return True if the char is BARE and outside any substitution."""
        return self.kind is CharKind.BARE and self.depth == 0 and not self.in_backtick


class Lexer:
    """Classify the characters of *text* one at a time.

    Iterate to get ``Symbol`` objects; ``step()`` drives the quote state
    machine one character at a time and is what the unit tests exercise.
    """

    def __init__(self, text: str = "") -> None:
        """Create a lexer over *text* in the NORMAL state."""
        self.text = text
        self.state = LexState.NORMAL
        self.depth = 0
        self.in_backtick = False
        self._resume = LexState.NORMAL
        self._dollar = False

    @property
    def unterminated(self) -> bool:
        """Return True if input ended inside a quote or after a backslash."""
        return self.state is not LexState.NORMAL

    def step(self, char: str) -> CharKind:
        """Consume one character and return how it was classified."""
        state = self.state
        if state is LexState.ESCAPED:
            self.state = self._resume
            return CharKind.ESCAPED
        if state is LexState.SINGLE_QUOTE:
            if char == "'":
                self.state = LexState.NORMAL
                return CharKind.QUOTE
            return CharKind.QUOTED
        if state is LexState.DOUBLE_QUOTE:
            if char == "\\":
                self._resume = LexState.DOUBLE_QUOTE
                self.state = LexState.ESCAPED
                return CharKind.ESCAPE
            if char == '"':
                self.state = LexState.NORMAL
                return CharKind.QUOTE
            return CharKind.QUOTED
        if char == "\\":
            self._resume = LexState.NORMAL
            self.state = LexState.ESCAPED
            return CharKind.ESCAPE
        if char == "'":
            self.state = LexState.SINGLE_QUOTE
            return CharKind.QUOTE
        if char == '"':
            self.state = LexState.DOUBLE_QUOTE
            return CharKind.QUOTE
        return CharKind.BARE

    def _track_substitution(self, char: str, kind: CharKind, was_single: bool) -> None:
        """Update ``$(`` depth and backtick state after a character."""
        active = not was_single and kind in (CharKind.BARE, CharKind.QUOTED)
        if not active:
            self._dollar = False
            return
        if char == "`":
            self.in_backtick = not self.in_backtick
        elif char == "(" and (self._dollar or self.depth > 0):
            self.depth += 1
        elif char == ")" and self.depth > 0:
            self.depth -= 1
        self._dollar = char == "$"

    def __iter__(self) -> Iterator[Symbol]:
        """Yield a ``Symbol`` for every character of the text."""
        for index, char in enumerate(self.text):
            state = self.state
            kind = self.step(char)
            self._track_substitution(char, kind, state is LexState.SINGLE_QUOTE)
            yield Symbol(index, char, kind, self.depth, self.in_backtick, state)


def scan(text: str) -> tuple[list[Symbol], bool]:
    """Classify all of *text*.

    Returns:
        ``(symbols, unterminated)``.

    """
    lexer = Lexer(text)
    symbols = list(lexer)
    return symbols, lexer.unterminated


def tokenize(text: str) -> list[str]:
    """Split command text into argv words.

    Words are separated by unquoted spaces or tabs.  Quote characters and
    escaping backslashes are removed; the escaped character is kept
    literally.  A quoted empty string (``""`` or ``''``) produces an
    empty word.

    Examples::

        tokenize('echo "a b" c')      → ["echo", "a b", "c"]
        tokenize("echo 'x\\\\y'")       → ["echo", "x\\\\y"]
        tokenize("echo a\\ b")        → ["echo", "a b"]

    """
    words: list[str] = []
    current: list[str] = []
    started = False
    for symbol in Lexer(text):
        if symbol.is_bare(WHITESPACE):
            if started:
                words.append("".join(current))
                current = []
                started = False
        elif symbol.kind is CharKind.QUOTE:
            started = True
        elif symbol.kind is CharKind.ESCAPE:
            continue
        else:
            current.append(symbol.char)
            started = True
    if started:
        words.append("".join(current))
    return words


def unquote(word: str) -> str:
    """Remove quoting from a single word (used for redirect targets)."""
    words = tokenize(word)
    return "".join(words)


def quote(word: str) -> str:
    """Return *word* quoted so that ``tokenize`` yields it back unchanged."""
    if word and all(c.isalnum() or c in "@%+=:,./_-" for c in word):
        return word
    return "'" + word.replace("'", "'\\''") + "'"
