# runner/executor.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Runs worker processes and the nemesis concurrently against the cluster

"""Concurrent executor.

One thread per worker process plus one nemesis thread. Worker ``i`` starts
as process ``i`` bound to node ``nodes[i % n]``. Its loop:

    pull op -> record invoke -> client.invoke -> record completion -> repeat

Completions map from adapter outcomes as follows:
    ok                      -> ok (value read, or the invocation's value)
    ok(False) from a cas    -> fail, the comparison did not match
    fail                    -> fail
    ambiguous / exception   -> info

After an ``info`` the worker cannot know whether its operation is still in
flight, so it continues under a fresh process id (``process + concurrency``)
and the old process never appears again.

The executor stops pulling when the generators are exhausted or the stop
signal is set; in-flight calls are left to complete or time out. Workers
still running after the join grace period are abandoned and their open
invocations are recorded as ``info`` when the history is frozen. The nemesis
is always joined in full, since its network actions are individually
bounded and teardown must not overlap a transition.
"""

import random
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from client.adapter import ClientAdapter, Connection, Outcome, OutcomeKind
from model.history import History
from model.operation import CAS, NEMESIS, READ, Op, OpType
from model.topology import ClusterTopology
from utils.logger import get_logger

from .errors import NemesisError, SetupError
from .generator import GenContext, Generator
from .nemesis import FaultScheduler
from .recorder import HistoryRecorder

JOIN_POLL = 0.05  # seconds


def completion_for(op: Op, outcome: Outcome) -> Tuple[OpType, Any, Optional[str]]:
    """Terminal (type, value, error) recorded for ``op`` given ``outcome``."""
    if outcome.kind is OutcomeKind.OK:
        if op.f == READ:
            return OpType.OK, outcome.value, None
        if op.f == CAS and outcome.value is False:
            return OpType.FAIL, op.value, "compare failed"
        return OpType.OK, op.value, None
    kept = None if op.f == READ else op.value
    if outcome.kind is OutcomeKind.FAIL:
        return OpType.FAIL, kept, outcome.reason
    return OpType.INFO, kept, outcome.reason


class ConcurrentExecutor:
    """Drives a workload and an optional nemesis against a cluster.

    Args:
        topology: Cluster to run against
        client: Adapter used by every worker
        concurrency: Number of worker processes
        join_grace: Seconds to wait for workers after the run ends
        seed: Seed for per-process random choices
    """

    def __init__(
        self,
        topology: ClusterTopology,
        client: ClientAdapter,
        concurrency: int,
        join_grace: float = 10.0,
        seed: Optional[int] = None,
        recorder: Optional[HistoryRecorder] = None,
    ):
        self.topology = topology
        self.client = client
        self.concurrency = concurrency
        self.join_grace = join_grace
        self.seed = seed
        self.recorder = recorder or HistoryRecorder()
        self.stop = threading.Event()
        self.logger = get_logger()
        self._drained = threading.Event()
        self._nemesis_error: Optional[NemesisError] = None

    def _rng(self, salt: int) -> random.Random:
        if self.seed is None:
            return random.Random()
        return random.Random(self.seed * 1_000_003 + salt)

    def open_connections(self) -> List[Connection]:
        """One connection per worker, all opened before any load starts."""
        conns: List[Connection] = []
        for slot in range(self.concurrency):
            node = self.topology.node_for(slot)
            try:
                conns.append(self.client.open(node))
            except Exception as e:
                self._close_all(conns)
                raise SetupError(f"Could not open connection to {node}: {e}") from e
        return conns

    def _close_all(self, conns: List[Connection]) -> None:
        for conn in conns:
            try:
                self.client.close(conn)
            except Exception as e:
                self.logger.warning(f"Closing connection to {conn.node} failed: {e}")

    def _worker(self, slot: int, conn: Connection, gen: Generator) -> None:
        process = slot
        rng = self._rng(slot)
        while not self.stop.is_set():
            op = gen.op(GenContext(process, self.stop, rng))
            if op is None:
                self._drained.set()
                break
            invoke = self.recorder.invoke(op, conn.node)
            try:
                outcome = self.client.invoke(conn, invoke)
            except Exception as e:
                self.logger.warning(f"Process {process} {invoke.f} raised {type(e).__name__}: {e}")
                outcome = Outcome.ambiguous(f"{type(e).__name__}: {e}")
            op_type, value, error = completion_for(invoke, outcome)
            self.recorder.complete(invoke, op_type, value, error)
            if op_type is OpType.INFO:
                process += self.concurrency

    def _nemesis(self, scheduler: FaultScheduler, gen: Generator) -> None:
        ctx = GenContext(NEMESIS, self.stop, self._rng(-1))
        try:
            scheduler.run(gen, ctx)
        except NemesisError as e:
            self._nemesis_error = e
            self.stop.set()

    def run(
        self,
        workload: Generator,
        scheduler: Optional[FaultScheduler] = None,
        nemesis_gen: Optional[Generator] = None,
    ) -> History:
        """Run until the workload is exhausted; returns the frozen history."""
        conns = self.open_connections()
        threads: Dict[str, threading.Thread] = {}
        for slot, conn in enumerate(conns):
            threads[f"worker-{slot}"] = threading.Thread(
                target=self._worker,
                args=(slot, conn, workload),
                name=f"worker-{slot}",
                daemon=True,
            )
        if scheduler is not None and nemesis_gen is not None:
            threads["nemesis"] = threading.Thread(
                target=self._nemesis, args=(scheduler, nemesis_gen), name="nemesis", daemon=True
            )

        try:
            for thread in threads.values():
                thread.start()
            workers = [t for name, t in threads.items() if name != "nemesis"]
            self._await_workers(workers)
            # Workers are done: wake a sleeping nemesis.
            self.stop.set()
            nemesis = threads.get("nemesis")
            if nemesis is not None:
                # Every network action is bounded by the remote timeout, and a
                # transition must finish before teardown may heal.
                nemesis.join()
            if scheduler is not None:
                try:
                    scheduler.teardown()
                except NemesisError as e:
                    if self._nemesis_error is None:
                        self._nemesis_error = e
                    else:
                        self.logger.error(f"[NEMESIS] heal at teardown failed: {e}")
        finally:
            self.stop.set()
            self._close_all(conns)

        if self._nemesis_error is not None:
            raise self._nemesis_error
        return self.recorder.freeze()

    def _await_workers(self, workers: List[threading.Thread]) -> None:
        """
        Wait for every worker. Once the workload is drained or the run was
        stopped, stragglers get ``join_grace`` seconds before being abandoned.
        """
        grace_from: Optional[float] = None
        while True:
            alive = [t for t in workers if t.is_alive()]
            if not alive:
                return
            if grace_from is None and (self._drained.is_set() or self.stop.is_set()):
                grace_from = time.monotonic()
            if grace_from is not None and time.monotonic() - grace_from >= self.join_grace:
                for thread in alive:
                    self.logger.warning(
                        f"{thread.name} still running after {self.join_grace}s; abandoning it"
                    )
                return
            alive[0].join(JOIN_POLL)
