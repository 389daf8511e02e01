# runner/__init__.py

"""Test execution: workload generators, nemesis, executor and the top-level run."""

from .config import TestConfig
from .errors import HarnessError, NemesisError, SetupError
from .executor import ConcurrentExecutor
from .harness import TestResult, analyze, run_test
from .nemesis import FaultScheduler, IptablesNet, Net, SshRemote
from .recorder import HistoryRecorder

__all__ = [
    "TestConfig",
    "HarnessError",
    "NemesisError",
    "SetupError",
    "ConcurrentExecutor",
    "TestResult",
    "analyze",
    "run_test",
    "FaultScheduler",
    "IptablesNet",
    "Net",
    "SshRemote",
    "HistoryRecorder",
]
