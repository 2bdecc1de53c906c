"""Lexer for scanning SQLite statement text.

Only the lexical structure needed to find statement boundaries and
parameter slots is recognised; everything else is passed through as
WORD or OTHER tokens.
"""

from __future__ import annotations

import ply.lex as lex


class SqlLexer:
    """Lexer for tokenizing SQLite SQL text."""

    tokens = [
        "STRING",
        "QUOTED_IDENTIFIER",
        "UNTERMINATED",
        "PARAM_NUMBERED",
        "PARAM_ANONYMOUS",
        "PARAM_NAMED",
        "SEMICOLON",
        "WORD",
        "OTHER",
    ]

    # Whitespace other than newlines
    t_ignore = " \t\r\f\v"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    # Rules are functions so they are tried in definition order.

    def t_LINE_COMMENT(self, t: lex.LexToken) -> None:
        r"--[^\n]*"
        pass

    def t_BLOCK_COMMENT(self, t: lex.LexToken) -> None:
        r"/\*[\s\S]*?(\*/|\Z)"
        t.lexer.lineno += t.value.count("\n")

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"'([^']|'')*'"
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_QUOTED_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"]|"")*"|`([^`]|``)*`|\[[^\]]*\]'
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_UNTERMINATED(self, t: lex.LexToken) -> lex.LexToken:
        r"""['"`\[][\s\S]*\Z"""
        # An open quote swallows the rest of the input; the engine reports it
        return t

    def t_PARAM_NUMBERED(self, t: lex.LexToken) -> lex.LexToken:
        r"\?[0-9]+"
        t.value = (t.value, int(t.value[1:]))
        return t

    def t_PARAM_ANONYMOUS(self, t: lex.LexToken) -> lex.LexToken:
        r"\?"
        return t

    def t_PARAM_NAMED(self, t: lex.LexToken) -> lex.LexToken:
        r"[:@$][a-zA-Z0-9_$]+(::[a-zA-Z0-9_$]+)*"
        return t

    def t_SEMICOLON(self, t: lex.LexToken) -> lex.LexToken:
        r";"
        return t

    def t_WORD(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_\x80-\U0010ffff][a-zA-Z0-9_$\x80-\U0010ffff]*"
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_OTHER(self, t: lex.LexToken) -> lex.LexToken:
        r"."
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens.

        Each call works on its own clone, so one built lexer can be shared.
        """
        lexer = self.lexer.clone()
        lexer.input(data)
        tokens = []
        while True:
            tok = lexer.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


_shared: SqlLexer | None = None


def shared_lexer() -> SqlLexer:
    """Return a built lexer, building it on first use."""
    global _shared
    if _shared is None:
        lexer = SqlLexer()
        lexer.build()
        _shared = lexer
    return _shared
