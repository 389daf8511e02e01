# runner/config.py

"""
TestConfig
==========

Every knob of a test run in one immutable value. Defaults reproduce the
standard register workload: five workers, thirty seconds of load, one
second of mean think time and a partition toggled every five seconds.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from client.retry import RetryPolicy
from model.topology import ClusterTopology


@dataclass(frozen=True)
class TestConfig:
    topology: ClusterTopology
    concurrency: int = 5
    time_limit: float = 30.0  # seconds of load
    stagger: float = 1.0  # mean think time per process
    fault_interval: float = 5.0  # seconds between nemesis transitions
    nemesis: bool = True
    key: str = "foo"
    value_range: int = 5  # values "0" .. str(value_range - 1)
    timeout: float = 5.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    join_grace: float = 10.0
    seed: Optional[int] = None

    # pytest would otherwise try to collect this class
    __test__ = False

    def __post_init__(self) -> None:
        if self.concurrency <= 0:
            raise ValueError("concurrency must be positive")
        if self.time_limit <= 0:
            raise ValueError("time_limit must be positive")
        if self.stagger < 0 or self.fault_interval < 0:
            raise ValueError("stagger and fault_interval must not be negative")
        if self.value_range <= 0:
            raise ValueError("value_range must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.join_grace < 0:
            raise ValueError("join_grace must not be negative")
        if not self.topology.nodes:
            raise ValueError("topology must contain at least one node")
