"""Split a batch of SQL text into consecutive statements."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field

from sqlbridge.parsing.sql_lexer import SqlLexer, shared_lexer

PARAM_TOKENS = ("PARAM_NUMBERED", "PARAM_ANONYMOUS", "PARAM_NAMED")


@dataclass
class Statement:
    """One statement found in a batch.

    ``start``/``end`` are offsets into the batch text; ``parameter_count`` is
    the largest parameter index the statement declares, computed the way
    SQLite assigns indexes (``?`` takes the next index, ``?NNN`` takes NNN,
    a repeated ``:name`` reuses its first index).
    """

    text: str
    start: int
    end: int
    parameter_count: int = 0
    parameter_names: dict[str, int] = field(default_factory=dict)

    @property
    def has_named_parameters(self) -> bool:
        return bool(self.parameter_names)


class StatementSplitter:
    """Cursor over the unparsed remainder of a batch.

    Each call to :meth:`next_statement` consumes one complete statement
    (up to and including its terminating semicolon, or to the end of the
    text) and advances :attr:`offset` past it.
    """

    def __init__(self, sql: str, lexer: SqlLexer | None = None) -> None:
        self.sql = sql
        self.offset = 0
        self._tokens = (lexer or shared_lexer()).tokenize(sql)
        self._pos = 0  # index into self._tokens

    @property
    def exhausted(self) -> bool:
        """True once only whitespace and comments remain."""
        return self._pos >= len(self._tokens)

    @property
    def remaining(self) -> str:
        return self.sql[self.offset:]

    def next_statement(self) -> Statement | None:
        """Consume and return the next statement, or None at the end.

        Empty statements (a bare ``;``) are skipped.
        """
        while not self.exhausted:
            first = self._pos
            start = self._tokens[first].lexpos
            if self._tokens[first].type == "SEMICOLON":
                self._pos += 1
                self.offset = start + 1
                continue
            end = len(self.sql)
            last = len(self._tokens)

            for i in range(first, len(self._tokens)):
                tok = self._tokens[i]
                if tok.type != "SEMICOLON":
                    continue
                candidate_end = tok.lexpos + 1
                # Semicolons inside trigger bodies do not end the statement
                if sqlite3.complete_statement(self.sql[start:candidate_end]):
                    end = candidate_end
                    last = i + 1
                    break

            body = self._tokens[first:last]
            self._pos = last
            self.offset = end
            return self._build_statement(body, start, end)
        self.offset = len(self.sql)
        return None

    def __iter__(self):
        while True:
            stmt = self.next_statement()
            if stmt is None:
                return
            yield stmt

    def _build_statement(self, body: list, start: int, end: int) -> Statement:
        count = 0
        names: dict[str, int] = {}
        for tok in body:
            if tok.type == "PARAM_NUMBERED":
                count = max(count, tok.value[1])
            elif tok.type == "PARAM_ANONYMOUS":
                count += 1
            elif tok.type == "PARAM_NAMED":
                if tok.value not in names:
                    count += 1
                    names[tok.value] = count

        text = self.sql[start:end]
        if names:
            text = self._number_parameters(body, start, end, names)
        return Statement(text, start, end, count, names)

    def _number_parameters(self, body: list, start: int, end: int, names: dict[str, int]) -> str:
        """Rewrite parameter slots as ``?NNN`` so they bind positionally.

        Indexes are those SQLite itself would assign, so binding order is
        unchanged.
        """
        pieces = []
        cursor = start
        count = 0
        for tok in body:
            if tok.type not in PARAM_TOKENS:
                continue
            if tok.type == "PARAM_NUMBERED":
                raw, index = tok.value
                count = max(count, index)
            elif tok.type == "PARAM_ANONYMOUS":
                raw = tok.value
                count += 1
                index = count
            else:
                raw = tok.value
                index = names[raw]
                count = max(count, index)
            pieces.append(self.sql[cursor:tok.lexpos])
            pieces.append(f"?{index}")
            cursor = tok.lexpos + len(raw)
        pieces.append(self.sql[cursor:end])
        return "".join(pieces)
