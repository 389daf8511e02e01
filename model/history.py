# model/history.py

"""
History
=======

The complete, time-ordered record of a test run. Events are ordered by
their timestamp, ties broken by recording order, and re-indexed so that
``history[i].index == i``. Every process alternates invoke / terminal
events; a violation raises ``HistoryError``.

``pairs()`` joins each invocation with its terminal event. An invocation
that never completed (its worker was still blocked when the run ended) is
reported with ``completion=None`` and counts as ``info``.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .fault import FaultInterval
from .operation import NEMESIS, START, STOP, Op, OpType, ProcessId


class HistoryError(ValueError):
    """Raised when a sequence of events is not a well-formed history."""


@dataclass(frozen=True, slots=True)
class OpPair:
    invoke: Op
    completion: Optional[Op] = None

    @property
    def process(self) -> ProcessId:
        return self.invoke.process

    @property
    def f(self) -> str:
        return self.invoke.f

    @property
    def type(self) -> OpType:
        """Terminal type; an op that never returned is ``info``."""
        return self.completion.type if self.completion is not None else OpType.INFO

    @property
    def input(self) -> Any:
        return self.invoke.value

    @property
    def output(self) -> Any:
        return self.completion.value if self.completion is not None else None

    @property
    def invoke_time(self) -> int:
        return self.invoke.time

    @property
    def complete_time(self) -> Optional[int]:
        return self.completion.time if self.completion is not None else None

    @property
    def latency(self) -> Optional[int]:
        if self.completion is None:
            return None
        return self.completion.time - self.invoke.time

    @property
    def node(self) -> Optional[str]:
        return self.invoke.node

    def __str__(self) -> str:
        return f"{self.process} :{self.f} {self.input!r} -> {self.type} {self.output!r}"


class History:
    """Immutable, validated sequence of events."""

    def __init__(self, events: Iterable[Op] = ()):
        ordered = sorted(enumerate(events), key=lambda item: (item[1].time, item[0]))
        self._events: Tuple[Op, ...] = tuple(
            replace(ev, index=i) for i, (_, ev) in enumerate(ordered)
        )
        self._validate()

    def _validate(self) -> None:
        outstanding: Dict[ProcessId, Op] = {}
        for ev in self._events:
            pending = outstanding.get(ev.process)
            if ev.is_invoke():
                if pending is not None:
                    raise HistoryError(
                        f"Process {ev.process} invoked {ev.f} at index {ev.index} "
                        f"while {pending.f} from index {pending.index} is outstanding"
                    )
                outstanding[ev.process] = ev
            else:
                if pending is None:
                    raise HistoryError(
                        f"Completion at index {ev.index} for process {ev.process} "
                        f"has no matching invocation"
                    )
                if pending.f != ev.f:
                    raise HistoryError(
                        f"Completion :{ev.f} at index {ev.index} does not match "
                        f"invocation :{pending.f} at index {pending.index}"
                    )
                del outstanding[ev.process]

    @property
    def events(self) -> Tuple[Op, ...]:
        return self._events

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Op]:
        return iter(self._events)

    def __getitem__(self, i: int) -> Op:
        return self._events[i]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, History) and self._events == other._events

    def __hash__(self) -> int:
        return hash(self._events)

    def client_ops(self) -> Tuple[Op, ...]:
        return tuple(ev for ev in self._events if ev.is_client())

    def nemesis_ops(self) -> Tuple[Op, ...]:
        return tuple(ev for ev in self._events if not ev.is_client())

    def processes(self) -> List[ProcessId]:
        """Client process ids in order of first appearance."""
        seen: Dict[ProcessId, None] = {}
        for ev in self._events:
            if ev.is_client():
                seen.setdefault(ev.process, None)
        return list(seen)

    def duration(self) -> int:
        """Nanoseconds between the first and the last event."""
        if not self._events:
            return 0
        return self._events[-1].time - self._events[0].time

    def pairs(self, client_only: bool = True) -> List[OpPair]:
        """Join invocations with completions, in invocation order."""
        open_invokes: Dict[ProcessId, int] = {}
        result: List[OpPair] = []
        for ev in self._events:
            if client_only and not ev.is_client():
                continue
            if ev.is_invoke():
                open_invokes[ev.process] = len(result)
                result.append(OpPair(ev))
            else:
                slot = open_invokes.pop(ev.process)
                result[slot] = OpPair(result[slot].invoke, ev)
        return result

    def fault_intervals(self) -> List[FaultInterval]:
        """Partition windows described by the nemesis events."""
        intervals: List[FaultInterval] = []
        active: Optional[Tuple[int, Any]] = None
        for ev in self._events:
            if ev.process != NEMESIS or ev.is_invoke():
                continue
            if ev.f == START and active is None and _is_halves(ev.value):
                active = (ev.time, ev.value)
            elif ev.f == STOP and active is not None:
                intervals.append(FaultInterval(active[0], ev.time, active[1]))
                active = None
        if active is not None:
            intervals.append(FaultInterval(active[0], None, active[1]))
        return intervals

    def __str__(self) -> str:
        return "\n".join(f"{ev.index}\t{ev.time}\t{ev}" for ev in self._events)


def _is_halves(value: Any) -> bool:
    return (
        isinstance(value, tuple)
        and len(value) == 2
        and all(isinstance(half, tuple) for half in value)
    )
