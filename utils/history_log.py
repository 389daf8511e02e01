# utils/history_log.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Writing histories as text logs that can be re-checked offline

"""History log writer.

One event per line, tab separated::

    index  time  process  :type  :f  value  [node]  ["error"]

Processes are integers or ``:nemesis``. Values are ``nil``, integers,
``true`` / ``false``, double-quoted strings or ``[...]`` vectors. Values of
any other type are written as strings. ``parser.read_history`` reads the
format back.
"""

import json
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from model.history import History
from model.operation import NEMESIS, Op

HEADER = "# tessera history log"


def format_value(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(format_value(v) for v in value) + "]"
    return json.dumps(str(value))


def format_event(op: Op) -> str:
    process = f":{NEMESIS}" if op.process == NEMESIS else str(op.process)
    fields = [
        str(op.index),
        str(op.time),
        process,
        f":{op.type.value}",
        f":{op.f}",
        format_value(op.value),
    ]
    if op.node is not None:
        fields.append(op.node)
    if op.error is not None:
        fields.append(json.dumps(op.error))
    return "\t".join(fields)


def format_history(history: History, nodes: Optional[Iterable[str]] = None) -> str:
    lines: List[str] = [HEADER]
    if nodes is not None:
        lines.append(f"# nodes: {'|'.join(nodes)}")
    lines.extend(format_event(op) for op in history)
    return "\n".join(lines) + "\n"


def write_history(
    path: Union[str, Path], history: History, nodes: Optional[Iterable[str]] = None
) -> Path:
    """Write ``history`` to ``path``; returns the path written."""
    path = Path(path)
    path.write_text(format_history(history, nodes), encoding="utf-8")
    return path
