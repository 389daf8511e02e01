# model/fault.py

"""
FaultInterval
=============

A window of real time during which the cluster was split into two halves.
``start`` is when the partition became active (the apply action had
completed); ``end`` is when the heal action completed, or ``None`` when the
history ends partitioned.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

Halves = Tuple[Tuple[str, ...], Tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class FaultInterval:
    start: int
    end: Optional[int]
    halves: Halves

    def active_at(self, time: int) -> bool:
        """True if the partition was in force at ``time``."""
        return self.start <= time and (self.end is None or time <= self.end)

    @property
    def minority(self) -> FrozenSet[str]:
        a, b = self.halves
        return frozenset(a if len(a) <= len(b) else b)

    @property
    def majority(self) -> FrozenSet[str]:
        a, b = self.halves
        return frozenset(b if len(a) <= len(b) else a)

    def __str__(self) -> str:
        a, b = self.halves
        end = "open" if self.end is None else str(self.end)
        return f"[{self.start}, {end}] {sorted(a)} | {sorted(b)}"


def complete_grudge(halves: Halves) -> Dict[str, FrozenSet[str]]:
    """
    Map every node to the set of peers whose traffic it must drop: all nodes
    in the other half. Nodes in the same half keep talking.
    """
    a, b = frozenset(halves[0]), frozenset(halves[1])
    grudge: Dict[str, FrozenSet[str]] = {}
    for node in a:
        grudge[node] = b
    for node in b:
        grudge[node] = a
    return grudge
