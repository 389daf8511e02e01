# logic/checker.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Just-in-time linearizability search over a recorded history

"""Linearizability checker for single-register histories.

The checker sweeps the history in real-time order while maintaining the set
of *configurations* that are still possible. A configuration is a pair of a
model state and the set of open operations (invoked, not yet returned) that
it has already linearized.

- On an invocation the operation becomes open; configurations are untouched.
- On a return of operation X, every configuration that already linearized X
  simply forgets it. Every other configuration is expanded by linearizing
  open operations one at a time, in any order the model accepts, until X
  has been linearized. Configurations that can never reach X die.
- If no configuration survives a return, the history is not linearizable
  and X is the earliest operation no candidate order can explain.

Only open operations are ever candidates, so real-time precedence (A returns
before B is invoked ⇒ A precedes B) holds by construction, and with it each
process's own order since a process never has two operations open. A return
and an invocation with the same timestamp are concurrent: the sweep takes
all calls at a timestamp before its returns.

Operations are prepared as follows:
    fail:               dropped, they definitely did not happen
    info read:          dropped, reads have no effect on state
    info write / cas:   stay open forever; they may be linearized at any
                        point after their invocation, or never

Example:
    >>> from logic.checker import LinearizabilityChecker
    >>> result = LinearizabilityChecker().check(history)
    >>> result.valid
    True
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from model.history import History, OpPair
from model.operation import READ, OpType
from model.register import CASRegister, is_inconsistent
from utils.logger import get_logger

from .verdict import CheckResult, Verdict

Config = Tuple[Any, FrozenSet[int]]


@dataclass(frozen=True, slots=True)
class _Candidate:
    """An operation taking part in the search."""

    id: int
    pair: OpPair
    f: str
    value: Any


def _freeze(value: Any) -> Any:
    """Make decoded JSON values hashable (lists become tuples)."""
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, tuple):
        return tuple(_freeze(v) for v in value)
    return value


def prepare_operations(history: History) -> Tuple[List[_Candidate], List[Tuple[str, int]]]:
    """Select the operations the search must consider.

    Args:
        history: Complete test history

    Returns:
        Candidate operations, and the sweep: ``("call" | "return", id)``
        steps in real-time order. Ambiguous operations never return.
    """
    candidates: List[_Candidate] = []
    by_invoke_index: Dict[int, int] = {}
    by_completion_index: Dict[int, int] = {}

    for pair in history.pairs():
        if pair.type is OpType.FAIL:
            continue
        if pair.f == READ:
            if pair.type is not OpType.OK:
                continue
            value = _freeze(pair.output)
        else:
            value = _freeze(pair.input)
        cid = len(candidates)
        candidates.append(_Candidate(cid, pair, pair.f, value))
        by_invoke_index[pair.invoke.index] = cid
        if pair.type is OpType.OK:
            by_completion_index[pair.completion.index] = cid

    # At equal timestamps every call is swept before any return: only a
    # strictly earlier return orders two operations.
    steps: List[Tuple[int, int, int, str, int]] = []
    for ev in history.client_ops():
        if ev.index in by_invoke_index:
            steps.append((ev.time, 0, ev.index, "call", by_invoke_index[ev.index]))
        elif ev.index in by_completion_index:
            steps.append((ev.time, 1, ev.index, "return", by_completion_index[ev.index]))
    steps.sort()
    sweep = [(step, cid) for _, _, _, step, cid in steps]
    return candidates, sweep


class LinearizabilityChecker:
    """Decides whether a history is linearizable with respect to a model.

    Args:
        model_factory: Builds the initial model state
        max_configurations: Give up with ``Verdict.UNKNOWN`` once this many
            configurations have been explored; ``None`` means no bound
    """

    def __init__(
        self,
        model_factory: Callable[[], Any] = CASRegister,
        max_configurations: Optional[int] = None,
    ):
        self.model_factory = model_factory
        self.max_configurations = max_configurations
        self.logger = get_logger()

    def check(self, history: History) -> CheckResult:
        """Check ``history`` and return a verdict.

        Repeated calls on the same history return equal results: the
        sweep, the candidate order and the configuration order depend only
        on the history itself.
        """
        candidates, sweep = prepare_operations(history)
        self.logger.debug(f"Checking {len(candidates)} operations, {len(sweep)} sweep steps")

        configs: Dict[Config, None] = {(self.model_factory(), frozenset()): None}
        open_ops: Dict[int, None] = {}
        explored = 1

        for step, cid in sweep:
            if step == "call":
                open_ops[cid] = None
                continue

            target = candidates[cid]
            survivors, visited, reason = self._advance(configs, open_ops, candidates, target)
            explored += visited

            if self.max_configurations is not None and explored > self.max_configurations:
                self.logger.warning(
                    f"Configuration bound {self.max_configurations} exceeded at "
                    f"{target.pair}; giving up"
                )
                return CheckResult(
                    Verdict.UNKNOWN, op_count=len(candidates), configurations=explored
                )

            if not survivors:
                previous = tuple(sorted({_state_value(s) for s, _ in configs}, key=repr))
                self.logger.checker_summary(len(candidates), explored)
                return CheckResult(
                    Verdict.NOT_LINEARIZABLE,
                    op=target.pair,
                    value=target.value,
                    previous_states=previous,
                    reason=reason,
                    op_count=len(candidates),
                    configurations=explored,
                )

            configs = survivors
            del open_ops[cid]

        self.logger.checker_summary(len(candidates), explored)
        return CheckResult(
            Verdict.LINEARIZABLE, op_count=len(candidates), configurations=explored
        )

    def _advance(
        self,
        configs: Dict[Config, None],
        open_ops: Dict[int, None],
        candidates: List[_Candidate],
        target: _Candidate,
    ) -> Tuple[Dict[Config, None], int, Optional[str]]:
        """Linearize ``target`` in every configuration that can reach it.

        Returns:
            Surviving configurations (with ``target`` closed), number of
            configurations visited, and the last model complaint about
            ``target`` (used to explain a violation)
        """
        survivors: Dict[Config, None] = {}
        visited = set(configs)
        frontier: List[Config] = []
        reason: Optional[str] = None

        for config in configs:
            state, linearized = config
            if target.id in linearized:
                survivors[(state, linearized - {target.id})] = None
            else:
                frontier.append(config)

        while frontier:
            state, linearized = frontier.pop()
            for oid in open_ops:
                if oid in linearized:
                    continue
                op = candidates[oid]
                successor = state.step(op.f, op.value)
                if is_inconsistent(successor):
                    if oid == target.id:
                        reason = successor.reason
                    continue
                if oid == target.id:
                    survivors[(successor, linearized)] = None
                    continue
                nxt = (successor, linearized | {oid})
                if nxt not in visited:
                    visited.add(nxt)
                    frontier.append(nxt)

            if self.max_configurations is not None and len(visited) > self.max_configurations:
                break

        return survivors, len(visited), reason


def _state_value(state: Any) -> Any:
    return state.value if isinstance(state, CASRegister) else state


def check_linearizable(history: History, max_configurations: Optional[int] = None) -> CheckResult:
    """Check ``history`` against a fresh compare-and-swap register."""
    return LinearizabilityChecker(CASRegister, max_configurations).check(history)

