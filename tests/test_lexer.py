"""Tests for the quote-aware lexer.

The lexer is a four-state machine (NORMAL, SINGLE_QUOTE, DOUBLE_QUOTE,
ESCAPED).  Every later stage asks it the same question — "is this
character syntax, or just text?" — so the transitions are tested one
by one: each state against a quote, a backslash, a delimiter and the
end of input.

On top of that, ``tokenize`` turns text into argv words and ``quote``
produces text that ``tokenize`` turns back into the same word.
"""

from foam_shell.lexer import (
    CharKind,
    Lexer,
    LexState,
    quote,
    scan,
    tokenize,
    unquote,
)


def _lexer_in(state: LexState) -> Lexer:
    """Return a lexer already driven into *state*."""
    lexer = Lexer()
    prefix = {
        LexState.NORMAL: "",
        LexState.SINGLE_QUOTE: "'",
        LexState.DOUBLE_QUOTE: '"',
        LexState.ESCAPED: "\\",
    }[state]
    for char in prefix:
        lexer.step(char)
    assert lexer.state is state
    return lexer


# ---------------------------------------------------------------------------
# Cycle 1 — NORMAL state
# ---------------------------------------------------------------------------


class TestNormalState:
    """Verify transitions out of the unquoted state."""

    def test_single_quote_opens(self) -> None:
        """``'`` enters SINGLE_QUOTE and is a quote character."""
        lexer = _lexer_in(LexState.NORMAL)
        assert lexer.step("'") is CharKind.QUOTE
        assert lexer.state is LexState.SINGLE_QUOTE

    def test_double_quote_opens(self) -> None:
        """``"`` enters DOUBLE_QUOTE."""
        lexer = _lexer_in(LexState.NORMAL)
        assert lexer.step('"') is CharKind.QUOTE
        assert lexer.state is LexState.DOUBLE_QUOTE

    def test_backslash_escapes(self) -> None:
        """``\\`` enters ESCAPED."""
        lexer = _lexer_in(LexState.NORMAL)
        assert lexer.step("\\") is CharKind.ESCAPE
        assert lexer.state is LexState.ESCAPED

    def test_delimiter_is_bare(self) -> None:
        """Operators and blanks are BARE (syntax) in NORMAL."""
        lexer = _lexer_in(LexState.NORMAL)
        for char in " |;&><":
            assert lexer.step(char) is CharKind.BARE
        assert lexer.state is LexState.NORMAL

    def test_eof_is_terminated(self) -> None:
        """Ending in NORMAL is not an error."""
        assert not _lexer_in(LexState.NORMAL).unterminated


# ---------------------------------------------------------------------------
# Cycle 2 — SINGLE_QUOTE state
# ---------------------------------------------------------------------------


class TestSingleQuoteState:
    """Verify that single quotes make everything literal."""

    def test_quote_closes(self) -> None:
        """A second ``'`` returns to NORMAL."""
        lexer = _lexer_in(LexState.SINGLE_QUOTE)
        assert lexer.step("'") is CharKind.QUOTE
        assert lexer.state is LexState.NORMAL

    def test_double_quote_is_literal(self) -> None:
        """``"`` inside single quotes is text."""
        lexer = _lexer_in(LexState.SINGLE_QUOTE)
        assert lexer.step('"') is CharKind.QUOTED

    def test_backslash_is_literal(self) -> None:
        """No escaping happens inside single quotes."""
        lexer = _lexer_in(LexState.SINGLE_QUOTE)
        assert lexer.step("\\") is CharKind.QUOTED
        assert lexer.state is LexState.SINGLE_QUOTE

    def test_delimiter_is_quoted(self) -> None:
        """Operators inside single quotes are text."""
        lexer = _lexer_in(LexState.SINGLE_QUOTE)
        for char in " |;&><":
            assert lexer.step(char) is CharKind.QUOTED

    def test_eof_is_unterminated(self) -> None:
        """Ending inside single quotes is reported."""
        assert _lexer_in(LexState.SINGLE_QUOTE).unterminated


# ---------------------------------------------------------------------------
# Cycle 3 — DOUBLE_QUOTE state
# ---------------------------------------------------------------------------


class TestDoubleQuoteState:
    """Verify double-quote transitions."""

    def test_quote_closes(self) -> None:
        """A second ``"`` returns to NORMAL."""
        lexer = _lexer_in(LexState.DOUBLE_QUOTE)
        assert lexer.step('"') is CharKind.QUOTE
        assert lexer.state is LexState.NORMAL

    def test_single_quote_is_literal(self) -> None:
        """``'`` inside double quotes is text."""
        lexer = _lexer_in(LexState.DOUBLE_QUOTE)
        assert lexer.step("'") is CharKind.QUOTED

    def test_backslash_escapes_and_returns(self) -> None:
        """A backslash escapes one char, then double-quoting resumes."""
        lexer = _lexer_in(LexState.DOUBLE_QUOTE)
        assert lexer.step("\\") is CharKind.ESCAPE
        assert lexer.state is LexState.ESCAPED
        assert lexer.step('"') is CharKind.ESCAPED
        assert lexer.state is LexState.DOUBLE_QUOTE

    def test_delimiter_is_quoted(self) -> None:
        """Operators inside double quotes are text."""
        lexer = _lexer_in(LexState.DOUBLE_QUOTE)
        for char in " |;&><":
            assert lexer.step(char) is CharKind.QUOTED

    def test_eof_is_unterminated(self) -> None:
        """Ending inside double quotes is reported."""
        assert _lexer_in(LexState.DOUBLE_QUOTE).unterminated


# ---------------------------------------------------------------------------
# Cycle 4 — ESCAPED state
# ---------------------------------------------------------------------------


class TestEscapedState:
    """Verify that ESCAPED consumes exactly one character."""

    def test_quote_is_literal(self) -> None:
        """An escaped quote does not open a quote."""
        lexer = _lexer_in(LexState.ESCAPED)
        assert lexer.step("'") is CharKind.ESCAPED
        assert lexer.state is LexState.NORMAL

    def test_backslash_is_literal(self) -> None:
        """``\\\\`` yields one literal backslash."""
        lexer = _lexer_in(LexState.ESCAPED)
        assert lexer.step("\\") is CharKind.ESCAPED
        assert lexer.state is LexState.NORMAL

    def test_delimiter_is_literal(self) -> None:
        """An escaped operator is text, and NORMAL resumes after it."""
        lexer = _lexer_in(LexState.ESCAPED)
        assert lexer.step("|") is CharKind.ESCAPED
        assert lexer.step("|") is CharKind.BARE

    def test_eof_is_unterminated(self) -> None:
        """A trailing backslash is reported."""
        assert _lexer_in(LexState.ESCAPED).unterminated


# ---------------------------------------------------------------------------
# Cycle 5 — substitution tracking
# ---------------------------------------------------------------------------


class TestSubstitutionDepth:
    """Verify ``$(`` depth and backtick tracking in symbols."""

    def test_dollar_paren_depth(self) -> None:
        """Characters inside ``$( )`` are not at top level."""
        symbols, _ = scan("a $(b | c) d")
        pipe = next(s for s in symbols if s.char == "|")
        last = symbols[-1]
        assert not pipe.at_top_level
        assert last.at_top_level

    def test_plain_parens_do_not_nest(self) -> None:
        """A ``(`` without ``$`` is ordinary text."""
        symbols, _ = scan("(a | b)")
        pipe = next(s for s in symbols if s.char == "|")
        assert pipe.at_top_level

    def test_backtick(self) -> None:
        """Characters between backticks are not at top level."""
        symbols, _ = scan("x `a;b` y")
        semicolon = next(s for s in symbols if s.char == ";")
        assert not semicolon.at_top_level

    def test_single_quotes_hide_substitution(self) -> None:
        """``$(`` inside single quotes does not open a substitution."""
        symbols, _ = scan("'$(' | x")
        pipe = next(s for s in symbols if s.char == "|")
        assert pipe.at_top_level

    def test_symbol_records_state(self) -> None:
        """Each symbol remembers the state it was read in."""
        symbols, _ = scan('a"b"')
        assert symbols[0].state is LexState.NORMAL
        assert symbols[2].state is LexState.DOUBLE_QUOTE


# ---------------------------------------------------------------------------
# Cycle 6 — tokenize and quote
# ---------------------------------------------------------------------------


class TestTokenize:
    """Verify splitting text into argv words."""

    def test_whitespace_split(self) -> None:
        """Runs of spaces and tabs separate words."""
        assert tokenize("echo  a\tb ") == ["echo", "a", "b"]

    def test_double_quotes_group(self) -> None:
        """A double-quoted span is one word without its quotes."""
        assert tokenize('echo "a b" c') == ["echo", "a b", "c"]

    def test_single_quotes_keep_backslash(self) -> None:
        """A backslash in single quotes survives."""
        assert tokenize("echo 'x\\y'") == ["echo", "x\\y"]

    def test_escaped_space(self) -> None:
        """An escaped blank joins two halves into one word."""
        assert tokenize("a\\ b") == ["a b"]

    def test_adjacent_quotes_concatenate(self) -> None:
        """Quoted and bare pieces touching each other form one word."""
        assert tokenize("pre'mid'\"end\"") == ["premidend"]

    def test_empty_quotes_make_empty_word(self) -> None:
        """``""`` is an argument, just an empty one."""
        assert tokenize('printf "" x') == ["printf", "", "x"]

    def test_unterminated_quote_is_lenient(self) -> None:
        """An open quote runs to the end of input."""
        assert tokenize("echo 'abc def") == ["echo", "abc def"]

    def test_empty_input(self) -> None:
        """No text means no words."""
        assert tokenize("   ") == []

    def test_unquote(self) -> None:
        """unquote removes quoting from one word."""
        assert unquote("'my file.txt'") == "my file.txt"

    def test_quote_leaves_safe_words(self) -> None:
        """Plain words are not quoted."""
        assert quote("/tmp/a-b_c.txt") == "/tmp/a-b_c.txt"

    def test_quote_round_trip(self) -> None:
        """tokenize(quote(w)) gives back w for awkward words."""
        for word in ("a b", "it's", "", "$HOME", "x|y;z", 'say "hi"'):
            assert tokenize(quote(word)) == [word]
