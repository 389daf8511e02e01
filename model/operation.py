# model/operation.py

"""
Op
==

Immutable record of one history event. An operation appears twice in a
history: once as an ``invoke`` and once as its terminal event (``ok``,
``fail`` or ``info``). Client processes are integers; the fault process
uses the ``NEMESIS`` sentinel.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union

READ = "read"
WRITE = "write"
CAS = "cas"
START = "start"
STOP = "stop"

CLIENT_FUNCTIONS = frozenset({READ, WRITE, CAS})
NEMESIS_FUNCTIONS = frozenset({START, STOP})

NEMESIS = "nemesis"  #: Process identifier of the fault process.

ProcessId = Union[int, str]


class OpType(Enum):
    INVOKE = "invoke"
    OK = "ok"  # definitely happened
    FAIL = "fail"  # definitely did not happen
    INFO = "info"  # may or may not have happened

    def is_terminal(self) -> bool:
        return self is not OpType.INVOKE

    def __str__(self) -> str:
        return f":{self.value}"


@dataclass(frozen=True, slots=True)
class Op:
    process: ProcessId
    type: OpType
    f: str
    value: Any = None
    time: int = -1
    index: int = -1
    node: Optional[str] = None
    error: Optional[str] = None

    def is_client(self) -> bool:
        """True for operations issued by a worker process."""
        return self.process != NEMESIS

    def is_invoke(self) -> bool:
        return self.type is OpType.INVOKE

    def complete(self, op_type: OpType, value: Any, time: int, error: Optional[str] = None) -> Op:
        """Return the terminal event for this invocation."""
        if not op_type.is_terminal():
            raise ValueError("completion type must be ok, fail or info")
        return replace(self, type=op_type, value=value, time=time, index=-1, error=error)

    def __str__(self) -> str:
        node = f" @{self.node}" if self.node else ""
        return f"{self.process} {self.type} :{self.f} {self.value!r}{node}"


def invoke_op(process: ProcessId, f: str, value: Any = None) -> Op:
    """Build an un-timed invocation, as produced by a generator."""
    return Op(process=process, type=OpType.INVOKE, f=f, value=value)
