# client/adapter.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Client adapter contract and tagged operation outcomes

"""Client adapter contract.

A client adapter opens one connection per worker process, performs register
operations over it and closes it at shutdown. ``invoke`` never raises: every
transport or decoding problem is folded into a tagged ``Outcome``.

Outcome kinds:
    OK:         the operation definitely happened and returned ``value``
    FAIL:       the operation definitely did not happen
    AMBIGUOUS:  the operation may or may not have happened
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Mapping, Optional

from model.operation import Op


class OutcomeKind(Enum):
    """Tag of an adapter result."""

    OK = auto()
    FAIL = auto()
    AMBIGUOUS = auto()


@dataclass(frozen=True, slots=True)
class Outcome:
    """Tagged result of one adapter call.

    Attributes:
        kind: Which of ok / fail / ambiguous this is
        value: Returned value for OK outcomes
        reason: Explanation for FAIL and AMBIGUOUS outcomes
        metadata: Informational response metadata (leader, term, index)
    """

    kind: OutcomeKind
    value: Any = None
    reason: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @classmethod
    def ok(cls, value: Any = None, metadata: Optional[Mapping[str, Any]] = None) -> Outcome:
        return cls(OutcomeKind.OK, value=value, metadata=dict(metadata or {}))

    @classmethod
    def fail(cls, reason: str) -> Outcome:
        return cls(OutcomeKind.FAIL, reason=reason)

    @classmethod
    def ambiguous(cls, reason: str) -> Outcome:
        return cls(OutcomeKind.AMBIGUOUS, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    def __str__(self) -> str:
        if self.kind is OutcomeKind.OK:
            return f"ok({self.value!r})"
        return f"{self.kind.name.lower()}({self.reason})"


@dataclass(frozen=True, slots=True)
class Connection:
    """Per-process connection value returned by ``ClientAdapter.open``.

    Attributes:
        node: Node name the connection is bound to
        address: Base address requests are sent to
        handle: Adapter-specific transport handle (e.g. an HTTP session)
    """

    node: str
    address: str
    handle: Any = field(default=None, compare=False)


class ClientAdapter(ABC):
    """Capability to run register operations against one node."""

    @abstractmethod
    def open(self, node: str) -> Connection:
        """Open a connection to ``node``. May raise; failure is fatal to the run."""

    @abstractmethod
    def invoke(self, conn: Connection, op: Op) -> Outcome:
        """Perform ``op`` over ``conn``. Never raises."""

    @abstractmethod
    def close(self, conn: Connection) -> None:
        """Release ``conn``."""
