# runner/nemesis.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Network partition fault injection

"""Partition nemesis.

``FaultScheduler`` is a two-state machine (healthy / partitioned) driven by
``start`` and ``stop`` operations from a generator:

    healthy     --start-->  partitioned   (random halves, complete grudge)
    partitioned --stop-->   healthy       (heal)

A start while partitioned or a stop while healthy changes nothing but is
still recorded. Each transition is synchronous: the invocation is recorded
before the network action and the completion after it returns, so the
completion timestamps bound the interval during which the fault was in
force. Any failure to change the network raises ``NemesisError``.

The network itself sits behind ``Net``. ``IptablesNet`` drops inbound
traffic with iptables on each node over ssh.
"""

from __future__ import annotations
import random
import shlex
import subprocess
import threading
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional, Sequence

from model.fault import Halves, complete_grudge
from model.operation import NEMESIS, START, STOP, Op, OpType, invoke_op
from model.topology import ClusterTopology
from utils.logger import get_logger

from .errors import NemesisError
from .generator import GenContext, Generator
from .recorder import HistoryRecorder

Grudge = Dict[str, FrozenSet[str]]

SSH_TIMEOUT = 10.0  # seconds per remote command


class Net(ABC):
    """Capability to cut and restore traffic between nodes."""

    @abstractmethod
    def drop_all(self, grudge: Grudge) -> None:
        """Make every node drop traffic from each peer in its grudge set."""

    @abstractmethod
    def heal(self) -> None:
        """Restore full connectivity."""


class SshRemote:
    """Runs shell commands on cluster nodes through the ssh binary."""

    def __init__(
        self,
        user: str = "root",
        timeout: float = SSH_TIMEOUT,
        options: Sequence[str] = ("-o", "StrictHostKeyChecking=no", "-o", "BatchMode=yes"),
    ):
        self.user = user
        self.timeout = timeout
        self.options = tuple(options)
        self.logger = get_logger()

    def argv(self, host: str, command: str) -> List[str]:
        return ["ssh", *self.options, f"{self.user}@{host}", command]

    def run(self, host: str, command: str) -> str:
        """Run ``command`` on ``host``; NemesisError on failure or timeout."""
        argv = self.argv(host, command)
        self.logger.debug(f"ssh {host}: {command}")
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise NemesisError(f"{host}: '{command}' timed out after {self.timeout}s") from e
        except OSError as e:
            raise NemesisError(f"{host}: cannot run ssh: {e}") from e
        if proc.returncode != 0:
            raise NemesisError(
                f"{host}: '{command}' exited {proc.returncode}: {proc.stderr.strip()}"
            )
        return proc.stdout


def _host(address: str) -> str:
    """Host part of a ``host[:port]`` address."""
    return address.rsplit(":", 1)[0] if ":" in address else address


class IptablesNet(Net):
    """Partitions via iptables DROP rules on each node's INPUT chain."""

    def __init__(self, topology: ClusterTopology, remote: Optional[SshRemote] = None):
        self.topology = topology
        self.remote = remote or SshRemote()

    def _host_of(self, node: str) -> str:
        return _host(self.topology.address(node))

    def drop_all(self, grudge: Grudge) -> None:
        for node in sorted(grudge):
            for peer in sorted(grudge[node]):
                source = shlex.quote(self._host_of(peer))
                self.remote.run(self._host_of(node), f"iptables -A INPUT -s {source} -j DROP -w")

    def heal(self) -> None:
        for node in self.topology.nodes:
            host = self._host_of(node)
            self.remote.run(host, "iptables -F -w")
            self.remote.run(host, "iptables -X -w")


def random_halves(nodes: Sequence[str], rng: random.Random) -> Halves:
    """Shuffle ``nodes`` and split them, the smaller half (floor(n/2)) first."""
    shuffled = list(nodes)
    rng.shuffle(shuffled)
    cut = len(shuffled) // 2
    return tuple(shuffled[:cut]), tuple(shuffled[cut:])


class NemesisState(Enum):
    HEALTHY = auto()
    PARTITIONED = auto()


class FaultScheduler:
    """Applies partition start / stop operations and records them."""

    def __init__(
        self,
        topology: ClusterTopology,
        net: Net,
        recorder: HistoryRecorder,
        rng: Optional[random.Random] = None,
    ):
        self.topology = topology
        self.net = net
        self.recorder = recorder
        self.rng = rng or random.Random()
        self.state = NemesisState.HEALTHY
        self.halves: Optional[Halves] = None
        # Serialises transitions with a teardown from another thread.
        self._lock = threading.RLock()
        self.logger = get_logger()

    def apply(self, op: Op) -> Op:
        """Perform one nemesis operation; returns its recorded completion."""
        with self._lock:
            invoke = self.recorder.invoke(op)
            try:
                if op.f == START:
                    value = self._start()
                elif op.f == STOP:
                    value = self._stop()
                else:
                    raise NemesisError(f"Unknown nemesis operation: {op.f}")
            except NemesisError as e:
                self.recorder.complete(invoke, OpType.INFO, None, str(e))
                self.logger.error(f"[NEMESIS] {op.f} failed: {e}")
                raise
            return self.recorder.complete(invoke, OpType.INFO, value)

    def _start(self):
        if self.state is NemesisState.PARTITIONED:
            self.logger.nemesis_transition("start", "already partitioned, nothing to do")
            return "already partitioned"
        halves = random_halves(self.topology.nodes, self.rng)
        # Until heal succeeds the network may be partly cut.
        self.state = NemesisState.PARTITIONED
        self.halves = halves
        self.net.drop_all(complete_grudge(halves))
        self.logger.nemesis_transition("start", f"cut off {list(halves[0])} from {list(halves[1])}")
        return halves

    def _stop(self):
        if self.state is NemesisState.HEALTHY:
            self.logger.nemesis_transition("stop", "not partitioned, nothing to do")
            return "not partitioned"
        self.net.heal()
        self.state = NemesisState.HEALTHY
        self.halves = None
        self.logger.nemesis_transition("stop", "network healed")
        return "network healed"

    def run(self, gen: Generator, ctx: GenContext) -> None:
        """Pull and apply nemesis operations until ``gen`` is exhausted."""
        while True:
            op = gen.op(ctx)
            if op is None:
                return
            self.apply(op)

    def teardown(self) -> None:
        """Heal a cluster left partitioned, recording the heal."""
        with self._lock:
            if self.state is NemesisState.PARTITIONED:
                self.logger.info("[NEMESIS] healing cluster at teardown")
                self.apply(invoke_op(NEMESIS, STOP))
