# logic/fault_audit.py

"""
Fault-isolation audit.

During a partition, a node in the minority half must not acknowledge a
write (or a successful cas) that the majority never learns about. For every
such acknowledgement the audit looks for a confirmation after the heal: a
read against a majority node returning the written value, or a successful
cas against a majority node whose expected value is the written value.
Acknowledgements without confirmation are reported.

Partitions that were never healed cannot be audited and are skipped.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, List

from model.fault import FaultInterval
from model.history import History, OpPair
from model.operation import CAS, READ, WRITE, OpType
from utils.logger import get_logger


@dataclass(frozen=True)
class UnconfirmedAck:
    pair: OpPair
    interval: FaultInterval
    value: Any

    def __str__(self) -> str:
        return (
            f"{self.pair} acknowledged by minority node {self.pair.node} during "
            f"{self.interval}, value {self.value!r} never observed by the majority"
        )


def _written_value(pair: OpPair) -> Any:
    if pair.f == WRITE:
        return pair.input
    return pair.input[1]


def _observes(pair: OpPair, value: Any) -> bool:
    if pair.type is not OpType.OK:
        return False
    if pair.f == READ:
        return pair.output == value
    if pair.f == CAS:
        return pair.input[0] == value
    return False


def _acked_during(pair: OpPair, interval: FaultInterval) -> bool:
    if pair.f not in (WRITE, CAS) or pair.type is not OpType.OK:
        return False
    if pair.node not in interval.minority:
        return False
    return interval.active_at(pair.invoke_time) or interval.active_at(pair.complete_time)


def audit_fault_isolation(history: History) -> List[UnconfirmedAck]:
    """Report minority acknowledgements the majority never confirmed."""
    logger = get_logger()
    pairs = history.pairs()
    findings: List[UnconfirmedAck] = []

    for interval in history.fault_intervals():
        if interval.end is None:
            logger.debug(f"Skipping unhealed partition {interval}")
            continue
        majority = interval.majority
        after_heal = [
            p for p in pairs if p.invoke_time > interval.end and p.node in majority
        ]
        for pair in pairs:
            if not _acked_during(pair, interval):
                continue
            value = _written_value(pair)
            if not any(_observes(later, value) for later in after_heal):
                findings.append(UnconfirmedAck(pair, interval, value))

    return findings
