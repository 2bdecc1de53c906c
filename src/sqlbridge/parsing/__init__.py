"""Lexical scanning of SQL batches."""

from sqlbridge.parsing.splitter import Statement, StatementSplitter
from sqlbridge.parsing.sql_lexer import SqlLexer, shared_lexer

__all__ = [
    "SqlLexer",
    "Statement",
    "StatementSplitter",
    "shared_lexer",
]
