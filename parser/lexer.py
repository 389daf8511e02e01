# parser/lexer.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Lexical analyzer for history logs using SLY

"""Lexical analyzer for history log text.

A history log holds one event per line; fields are separated by tabs or
spaces, so newlines are significant while other whitespace is not.

Supported Tokens:
- Integers: indices, timestamps, client processes, register values
- Keywords: ``:ok``, ``:read``, ``:nemesis`` ... (colon-prefixed names)
- Names: node names, plus the reserved words nil / true / false
- Strings: double-quoted, JSON escapes
- Vectors: ``[`` and ``]``, items separated by whitespace or commas
- Comments: ``#`` to end of line, kept so directives can be read
"""

import json

from sly import Lexer
from utils.logger import get_logger


class HistoryLexer(Lexer):
    """SLY-based lexer for history logs."""

    tokens = {
        "INT",
        "KEYWORD",
        "NAME",
        "NIL",
        "TRUE",
        "FALSE",
        "STRING",
        "LBRACKET",
        "RBRACKET",
        "COMMENT",
        "NEWLINE",
    }

    ignore = " \t\r,"

    LBRACKET = r"\["
    RBRACKET = r"\]"

    @_(r"\#[^\n]*")
    def COMMENT(self, t):
        t.value = t.value[1:].strip()
        return t

    @_(r"\n+")
    def NEWLINE(self, t):
        self.lineno += len(t.value)
        return t

    @_(r'"(?:[^"\\\n]|\\.)*"')
    def STRING(self, t):
        t.value = json.loads(t.value)
        return t

    @_(r"-?\d+")
    def INT(self, t):
        t.value = int(t.value)
        return t

    @_(r":[a-zA-Z_][a-zA-Z0-9_\-]*")
    def KEYWORD(self, t):
        t.value = t.value[1:]
        return t

    NAME = r"[a-zA-Z_][a-zA-Z0-9_.\-]*"
    NAME["nil"] = "NIL"
    NAME["true"] = "TRUE"
    NAME["false"] = "FALSE"

    def error(self, t):
        """Reject characters outside the log alphabet.

        Raises:
            ValueError: Always raised with character and line information
        """
        logger = get_logger()

        illegal_char = t.value[0]
        logger.debug(f"Illegal character '{illegal_char}' at index {self.index}")
        self.index += 1

        raise ValueError(f"Illegal character '{illegal_char}' on line {self.lineno}")
