# model/__init__.py

"""
Domain objects for describing a test run: operations and their history,
the register model, the cluster topology and partition intervals. These
types carry no execution or checking logic.
"""

from .operation import (
    CAS,
    NEMESIS,
    READ,
    START,
    STOP,
    WRITE,
    Op,
    OpType,
    invoke_op,
)
from .history import History, HistoryError, OpPair
from .register import CASRegister, Inconsistent, is_inconsistent
from .topology import ClusterTopology
from .fault import FaultInterval, complete_grudge

__all__ = [
    "CAS",
    "NEMESIS",
    "READ",
    "START",
    "STOP",
    "WRITE",
    "Op",
    "OpType",
    "invoke_op",
    "History",
    "HistoryError",
    "OpPair",
    "CASRegister",
    "Inconsistent",
    "is_inconsistent",
    "ClusterTopology",
    "FaultInterval",
    "complete_grudge",
]
