# runner/harness.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Top-level test run: load + faults, then analysis

"""
run_test wires the pieces together:

    1. build the client workload and the nemesis cycle from ``TestConfig``
    2. run them concurrently with ``ConcurrentExecutor``
    3. check the frozen history for linearizability
    4. compute the performance report and the fault-isolation audit

Fatal setup or nemesis errors propagate as ``HarnessError`` subclasses; a
run that completes always yields a ``TestResult``.
"""

from __future__ import annotations
import random
from dataclasses import dataclass
from typing import List, Optional

from client.adapter import ClientAdapter
from client.http_client import HttpRegisterClient
from logic.checker import LinearizabilityChecker
from logic.fault_audit import UnconfirmedAck, audit_fault_isolation
from logic.perf import PerfAnalyzer, PerfReport
from logic.verdict import CheckResult, Verdict
from model.history import History
from utils.logger import get_logger

from .config import TestConfig
from .executor import ConcurrentExecutor
from .generator import nemesis_cycle, register_workload, time_limit
from .nemesis import FaultScheduler, IptablesNet, Net


@dataclass(frozen=True)
class TestResult:
    check: CheckResult
    history: History
    perf: PerfReport
    fault_report: List[UnconfirmedAck]

    __test__ = False

    @property
    def verdict(self) -> Verdict:
        return self.check.verdict

    @property
    def valid(self) -> bool:
        return self.check.valid


def analyze(history: History, max_configurations: Optional[int] = None) -> TestResult:
    """Check and report on a finished history."""
    logger = get_logger()
    check = LinearizabilityChecker(max_configurations=max_configurations).check(history)
    perf = PerfAnalyzer().analyze(history)
    findings = audit_fault_isolation(history)

    logger.info(perf.summary())
    for finding in findings:
        logger.warning(f"[AUDIT] {finding}")
    if not check.valid:
        logger.info(str(check))
    logger.final_verdict(str(check.verdict))
    return TestResult(check, history, perf, findings)


def run_test(
    config: TestConfig,
    client: Optional[ClientAdapter] = None,
    net: Optional[Net] = None,
    max_configurations: Optional[int] = None,
) -> TestResult:
    """Run one test against the cluster described by ``config``."""
    logger = get_logger()
    topology = config.topology
    if client is None:
        client = HttpRegisterClient(topology, config.key, config.timeout, config.retry)

    logger.test_start(str(topology), config.concurrency, config.time_limit, config.nemesis)

    executor = ConcurrentExecutor(
        topology,
        client,
        config.concurrency,
        join_grace=config.join_grace,
        seed=config.seed,
    )
    workload = register_workload(config.time_limit, config.stagger, config.value_range)

    scheduler = None
    nemesis_gen = None
    if config.nemesis:
        rng = random.Random(config.seed) if config.seed is not None else random.Random()
        scheduler = FaultScheduler(topology, net or IptablesNet(topology), executor.recorder, rng)
        nemesis_gen = time_limit(config.time_limit, nemesis_cycle(config.fault_interval))

    history = executor.run(workload, scheduler, nemesis_gen)
    if not workload.expired:
        logger.warning(f"Run stopped before its {config.time_limit}s time limit")
    logger.info(f"Run finished: {len(history)} events from {len(history.processes())} processes")
    return analyze(history, max_configurations)
