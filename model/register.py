# model/register.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Sequential specification of a compare-and-swap register

"""Compare-and-swap register model.

The model is a pure state-transition function used only by the
linearizability checker. Stepping a register with an operation yields the
successor register, or an ``Inconsistent`` value naming why the operation
cannot have taken effect against the current state.

Transitions for current value ``v``:
    read(x):        valid iff x == v, state unchanged
    write(x):       always valid, state becomes x
    cas(old, new):  valid iff v == old, state becomes new

The initial value is ``None`` (the register was never written).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional, Union

from .operation import CAS, READ, WRITE


@dataclass(frozen=True, slots=True)
class Inconsistent:
    """Terminal model state: the operation is illegal here.

    Attributes:
        reason: Human-readable explanation of the violation
    """

    reason: str

    def __str__(self) -> str:
        return self.reason


@dataclass(frozen=True, slots=True)
class CASRegister:
    """A single register holding one value.

    Attributes:
        value: Current register contents, ``None`` if never written
    """

    value: Optional[Any] = None

    def step(self, f: str, value: Any) -> Union[CASRegister, Inconsistent]:
        """Apply one operation to the register.

        Args:
            f: Operation function (read, write or cas)
            value: Observed value for reads, written value for writes,
                ``(old, new)`` pair for cas

        Returns:
            Successor register, or Inconsistent if the transition is illegal

        Raises:
            ValueError: If ``f`` is not a register operation
        """
        if f == READ:
            if value == self.value:
                return self
            return Inconsistent(f"can't read {value!r} from register {self.value!r}")

        if f == WRITE:
            return CASRegister(value)

        if f == CAS:
            old, new = value
            if old == self.value:
                return CASRegister(new)
            return Inconsistent(f"can't CAS {self.value!r} from {old!r} to {new!r}")

        raise ValueError(f"Unknown register operation: {f}")

    def __str__(self) -> str:
        return repr(self.value)


def is_inconsistent(state: object) -> bool:
    """True if ``state`` is the result of an illegal step."""
    return isinstance(state, Inconsistent)
