# parser/grammar.py
# This file is part of Tessera - A Linearizability Test Harness
#
# LALR(1) grammar and parser for history logs using SLY

"""History log grammar implementation using SLY parser generator.

Each non-blank line is either a comment or one event::

    event   : INT INT process KEYWORD KEYWORD value [NAME] [STRING]
    process : INT | KEYWORD
    value   : NIL | TRUE | FALSE | INT | STRING | '[' value* ']'

The fields of an event are its index, timestamp (ns), process, type, function,
value and, optionally, the node a client operation was sent to and the
reason an operation failed or went ambiguous. Vectors are read back as
tuples so values stay hashable.

The parser yields a list of entries in file order: ``("event", Op, lineno)``
or ``("comment", text, lineno)``.
"""

from sly import Parser

from model.operation import NEMESIS, Op, OpType

from .exceptions import HistoryParseError
from .lexer import HistoryLexer
from utils.logger import get_logger


class _HistoryParser(Parser):
    """SLY-based LALR(1) parser for history logs."""

    tokens = HistoryLexer.tokens

    @_("lines")
    def start(self, p):
        return p.lines

    @_("lines line")
    def lines(self, p):
        if p.line is not None:
            p.lines.append(p.line)
        return p.lines

    @_("empty")
    def lines(self, p):
        return []

    @_("")
    def empty(self, p):
        pass

    @_("event NEWLINE")
    def line(self, p):
        return ("event", p.event, p.lineno)

    @_("COMMENT NEWLINE")
    def line(self, p):
        return ("comment", p.COMMENT, p.lineno)

    @_("NEWLINE")
    def line(self, p):
        return None

    @_("INT INT process KEYWORD KEYWORD value")
    def event(self, p):
        return self._event(p, None, None)

    @_("INT INT process KEYWORD KEYWORD value NAME")
    def event(self, p):
        return self._event(p, p.NAME, None)

    @_("INT INT process KEYWORD KEYWORD value STRING")
    def event(self, p):
        return self._event(p, None, p.STRING)

    @_("INT INT process KEYWORD KEYWORD value NAME STRING")
    def event(self, p):
        return self._event(p, p.NAME, p.STRING)

    def _event(self, p, node, error):
        try:
            op_type = OpType(p.KEYWORD0)
        except ValueError:
            raise HistoryParseError(f"Unknown event type ':{p.KEYWORD0}'", p.lineno)
        return Op(
            process=p.process,
            type=op_type,
            f=p.KEYWORD1,
            value=p.value,
            time=p.INT1,
            index=p.INT0,
            node=node,
            error=error,
        )

    @_("INT")
    def process(self, p):
        return p.INT

    @_("KEYWORD")
    def process(self, p):
        if p.KEYWORD != NEMESIS:
            raise HistoryParseError(f"Unknown process ':{p.KEYWORD}'", p.lineno)
        return NEMESIS

    @_("NIL")
    def value(self, p):
        return None

    @_("TRUE")
    def value(self, p):
        return True

    @_("FALSE")
    def value(self, p):
        return False

    @_("INT")
    def value(self, p):
        return p.INT

    @_("STRING")
    def value(self, p):
        return p.STRING

    @_("LBRACKET items RBRACKET")
    def value(self, p):
        return tuple(p.items)

    @_("items value")
    def items(self, p):
        p.items.append(p.value)
        return p.items

    @_("empty")
    def items(self, p):
        return []

    def parse(self, text: str):
        """Parse history log text into a list of entries.

        Args:
            text: Full contents of a history log

        Returns:
            ``("event" | "comment", payload, lineno)`` tuples in file order

        Raises:
            HistoryParseError: If the text contains syntax errors
        """
        logger = get_logger()

        if text and not text.endswith("\n"):
            text += "\n"

        try:
            entries = super().parse(HistoryLexer().tokenize(text))
        except HistoryParseError:
            logger.debug("Parse error encountered")
            raise
        except Exception as e:
            logger.debug(f"Unexpected parsing error: {e}")
            raise HistoryParseError(f"Parse failed: {e}")

        if entries is None:
            entries = []
        logger.debug(f"Parsed {len(entries)} history log entries")
        return entries

    def error(self, token):
        """Handle syntax errors during parsing.

        Raises:
            HistoryParseError: Always raises with the offending token
        """
        if token:
            raise HistoryParseError(
                f"Syntax error near {token.value!r} (type: {token.type})", token.lineno
            )
        raise HistoryParseError("Syntax error: unexpected end of history log")
