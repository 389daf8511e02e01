# parser/__init__.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Reading saved history logs back into histories

"""History log parsing.

A finished run can be saved as a history log (see ``utils.history_log``)
and re-checked offline. This package turns the log text back into a
validated ``History``, together with the cluster node list recorded in the
``# nodes: n1|n2|...`` directive, if present.

Example:
    >>> from parser import read_history
    >>> log = read_history("run.history")
    >>> LinearizabilityChecker().check(log.history)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from model.history import History, HistoryError
from model.operation import Op
from utils.logger import get_logger

from .exceptions import HistoryParseError, ParseError
from .grammar import _HistoryParser

NODES_DIRECTIVE = "nodes:"


@dataclass(frozen=True)
class HistoryLog:
    history: History
    nodes: Optional[Tuple[str, ...]] = None


def parse_history(source: str) -> HistoryLog:
    """Parse history log text.

    Args:
        source: Contents of a history log

    Returns:
        The validated history and the directive's node list, if any

    Raises:
        HistoryParseError: The text is malformed, or its events do not form a
            well-formed history
    """
    logger = get_logger()

    entries = _HistoryParser().parse(source)

    events: List[Op] = []
    nodes: Optional[Tuple[str, ...]] = None
    for kind, payload, lineno in entries:
        if kind == "event":
            events.append(payload)
        elif payload.startswith(NODES_DIRECTIVE):
            if nodes is not None:
                raise HistoryParseError("Multiple nodes directives found", lineno)
            listed = payload[len(NODES_DIRECTIVE):]
            nodes = tuple(n.strip() for n in listed.split("|") if n.strip())

    try:
        history = History(events)
    except HistoryError as exc:
        raise HistoryParseError(f"Not a well-formed history: {exc}") from exc

    logger.debug(f"Read {len(history)} events for nodes {nodes or 'unknown'}")
    return HistoryLog(history, nodes)


def read_history(path: Union[str, Path]) -> HistoryLog:
    """Read and parse a history log file.

    Raises:
        HistoryParseError: The file cannot be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise HistoryParseError(f"Could not read history file {path}: {exc}") from exc
    return parse_history(text)


__all__ = ["parse_history", "read_history", "HistoryLog", "HistoryParseError", "ParseError"]
