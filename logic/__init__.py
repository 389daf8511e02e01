# logic/__init__.py

"""History analysis interface.

This package provides:
  • LinearizabilityChecker: decides linearizability of a history
  • Verdict / CheckResult: outcome of a check
  • PerfAnalyzer: latency and throughput report (side channel)
  • audit_fault_isolation: unconfirmed minority acknowledgements
"""

from .checker import LinearizabilityChecker, check_linearizable
from .fault_audit import UnconfirmedAck, audit_fault_isolation
from .perf import LatencyStats, PerfAnalyzer, PerfReport
from .verdict import CheckResult, Verdict

__all__ = [
    "LinearizabilityChecker",
    "check_linearizable",
    "UnconfirmedAck",
    "audit_fault_isolation",
    "LatencyStats",
    "PerfAnalyzer",
    "PerfReport",
    "CheckResult",
    "Verdict",
]
