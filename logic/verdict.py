# logic/verdict.py

"""
Verdict enumeration and check result for the linearizability checker,
capturing the three possible outcomes of checking a history against the
register model.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Tuple

from model.history import OpPair


class Verdict(Enum):
    """Three-state result of a linearizability check."""
    LINEARIZABLE = auto()  # some valid linearization exists
    NOT_LINEARIZABLE = auto()  # every candidate order violates the model
    UNKNOWN = auto()  # search gave up (configuration bound reached)

    def is_conclusive(self) -> bool:
        return self is not Verdict.UNKNOWN

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True)
class CheckResult:
    """
    Outcome of one checker run.

    Attributes:
        verdict: Overall verdict.
        op: Earliest operation no configuration could linearize (violations only).
        value: Value that operation carried (read result, written value, cas pair).
        previous_states: Register values still possible just before ``op``.
        reason: One model explanation for why ``op`` could not be applied.
        op_count: Operations that took part in the search.
        configurations: Configurations explored during the search.
    """
    verdict: Verdict
    op: Optional[OpPair] = None
    value: Any = None
    previous_states: Tuple[Any, ...] = field(default_factory=tuple)
    reason: Optional[str] = None
    op_count: int = 0
    configurations: int = 0

    @property
    def valid(self) -> bool:
        return self.verdict is Verdict.LINEARIZABLE

    def __str__(self) -> str:
        if self.verdict is not Verdict.NOT_LINEARIZABLE:
            return str(self.verdict)
        states = ", ".join(repr(s) for s in self.previous_states) or "none"
        return (
            f"{self.verdict}: {self.op} (value {self.value!r}) cannot be linearized; "
            f"possible register values before it: {states}; {self.reason}"
        )
