# runner/recorder.py

"""
HistoryRecorder
===============

Thread-safe, append-only event log shared by every worker and the nemesis.
Timestamps are nanoseconds on a monotonic clock, relative to the moment the
recorder was created. One mutex serialises appends; ``freeze`` produces the
immutable ``History``, ordered by timestamp with ties kept in append order.
"""

from __future__ import annotations
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from model.history import History
from model.operation import Op, OpType, ProcessId
from utils.logger import get_logger

UNFINISHED = "process did not finish before the run ended"


class HistoryRecorder:
    def __init__(self, clock: Callable[[], int] = time.monotonic_ns):
        self._clock = clock
        self._origin = clock()
        self._events: List[Op] = []
        self._open: Dict[ProcessId, Op] = {}
        self._lock = threading.Lock()
        self.logger = get_logger()

    def now(self) -> int:
        return self._clock() - self._origin

    def invoke(self, op: Op, node: Optional[str] = None) -> Op:
        """Stamp and append an invocation; returns the recorded event."""
        with self._lock:
            event = Op(
                process=op.process,
                type=OpType.INVOKE,
                f=op.f,
                value=op.value,
                time=self.now(),
                node=node,
            )
            self._events.append(event)
            self._open[op.process] = event
        self.logger.op_invoked(event.process, event.f, event.value, node)
        return event

    def complete(
        self, invoke: Op, op_type: OpType, value: Any, error: Optional[str] = None
    ) -> Op:
        """Stamp and append the terminal event of ``invoke``."""
        with self._lock:
            event = invoke.complete(op_type, value, self.now(), error)
            self._events.append(event)
            self._open.pop(invoke.process, None)
        self.logger.op_completed(event.process, op_type.value, event.f, value, error)
        return event

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def freeze(self) -> History:
        """Close every outstanding invocation as ``info`` and build the History."""
        with self._lock:
            now = self.now()
            for invoke in self._open.values():
                self.logger.warning(f"Process {invoke.process} still in {invoke.f}; recording info")
                self._events.append(invoke.complete(OpType.INFO, None, now, UNFINISHED))
            self._open.clear()
            return History(self._events)
