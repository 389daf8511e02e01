# tests/runner_tests/test_concurrent_executor.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Test suite for the concurrent executor and the history recorder

import threading
import time

import pytest

from client.adapter import Outcome
from logic.checker import check_linearizable
from model.operation import CAS, NEMESIS, READ, WRITE, OpType, invoke_op
from runner.errors import NemesisError, SetupError
from runner.executor import ConcurrentExecutor, completion_for
from runner.generator import Generator, NemesisCycle, TimeLimit, register_workload
from runner.nemesis import FaultScheduler, Net
from runner.recorder import UNFINISHED, HistoryRecorder


class Scripted(Generator):
    """Hands out a fixed list of (f, value) operations, then is exhausted."""

    def __init__(self, *ops):
        self.ops = list(ops)
        self.lock = threading.Lock()

    def op(self, ctx):
        with self.lock:
            if not self.ops:
                return None
            f, value = self.ops.pop(0)
        return invoke_op(ctx.process, f, value)


class SlowNet(Net):
    """Takes longer to cut the network than the join grace allows."""

    def __init__(self, delay):
        self.delay = delay
        self.calls = []

    def drop_all(self, grudge):
        self.calls.append("drop_all")
        time.sleep(self.delay)

    def heal(self):
        self.calls.append("heal")


class TestCompletionMapping:
    def test_read_ok_records_value_read(self):
        assert completion_for(invoke_op(0, READ), Outcome.ok("2")) == (OpType.OK, "2", None)

    def test_write_ok_records_written_value(self):
        assert completion_for(invoke_op(0, WRITE, "3"), Outcome.ok({"ack": 1}))[:2] == (
            OpType.OK, "3",
        )

    def test_cas_compare_failure_is_definite_fail(self):
        op_type, value, error = completion_for(invoke_op(0, CAS, ("0", "1")), Outcome.ok(False))
        assert op_type is OpType.FAIL
        assert value == ("0", "1")
        assert error == "compare failed"

    def test_ambiguous_becomes_info(self):
        op_type, value, error = completion_for(
            invoke_op(0, WRITE, "1"), Outcome.ambiguous("read timed out")
        )
        assert (op_type, value, error) == (OpType.INFO, "1", "read timed out")

    def test_failed_read_drops_value(self):
        assert completion_for(invoke_op(0, READ), Outcome.fail("refused"))[:2] == (
            OpType.FAIL, None,
        )


class TestHistoryRecorder:
    def test_timestamps_relative_to_creation(self):
        ticks = iter([1000, 1005, 1009])
        recorder = HistoryRecorder(clock=lambda: next(ticks))
        invoke = recorder.invoke(invoke_op(0, READ), node="n1")
        done = recorder.complete(invoke, OpType.OK, "1")
        assert (invoke.time, done.time) == (5, 9)
        assert invoke.node == "n1" and done.node == "n1"

    def test_freeze_closes_outstanding_invocations_as_info(self):
        recorder = HistoryRecorder()
        recorder.invoke(invoke_op(4, WRITE, "2"))
        history = recorder.freeze()
        last = history.events[-1]
        assert (last.process, last.type, last.error) == (4, OpType.INFO, UNFINISHED)
        assert len(recorder) == 2
        assert recorder.freeze() == history


class TestConcurrentExecutor:
    def test_correct_register_yields_linearizable_history(self, five_nodes, atomic_client):
        executor = ConcurrentExecutor(five_nodes, atomic_client, concurrency=3, seed=11)
        history = executor.run(register_workload(0.3, stagger_s=0.005))

        assert len(history) > 0
        assert check_linearizable(history).valid
        invoked_nodes = {ev.node for ev in history if ev.is_invoke()}
        assert invoked_nodes <= {"n1", "n2", "n3"}
        assert len(atomic_client.closed) == 3

    def test_process_alternation_holds(self, five_nodes, atomic_client):
        executor = ConcurrentExecutor(five_nodes, atomic_client, concurrency=4)
        history = executor.run(Scripted(*[(WRITE, str(i % 5)) for i in range(40)]))
        assert len(history.pairs()) == 40
        assert all(pair.completion is not None for pair in history.pairs())

    def test_exception_in_client_becomes_info_and_new_process(self, five_nodes, atomic_client):
        calls = []
        original = atomic_client.invoke

        def flaky(conn, op):
            calls.append(op)
            if len(calls) == 1:
                raise RuntimeError("socket exploded")
            return original(conn, op)

        atomic_client.invoke = flaky
        executor = ConcurrentExecutor(five_nodes, atomic_client, concurrency=1)
        history = executor.run(Scripted((WRITE, "1"), (WRITE, "2")))

        first, second = history.pairs()
        assert (first.process, first.type) == (0, OpType.INFO)
        assert "socket exploded" in first.completion.error
        assert (second.process, second.type) == (1, OpType.OK)

    def test_open_failure_is_fatal_and_closes_opened(self, five_nodes, atomic_client):
        original = atomic_client.open

        def open_or_refuse(node):
            if node == "n3":
                raise ConnectionRefusedError("n3 is down")
            return original(node)

        atomic_client.open = open_or_refuse
        executor = ConcurrentExecutor(five_nodes, atomic_client, concurrency=5)
        with pytest.raises(SetupError, match="n3"):
            executor.run(Scripted((READ, None)))
        assert atomic_client.closed == atomic_client.opened
        assert len(executor.recorder) == 0

    def test_stuck_worker_abandoned_after_grace(self, five_nodes, atomic_client):
        release = threading.Event()

        def blocking(conn, op):
            release.wait(5.0)
            return Outcome.ok(op.value)

        atomic_client.invoke = blocking
        executor = ConcurrentExecutor(five_nodes, atomic_client, concurrency=2, join_grace=0.1)
        try:
            history = executor.run(Scripted((WRITE, "1")))
        finally:
            release.set()

        (pair,) = history.pairs()
        assert pair.type is OpType.INFO
        assert pair.completion.error == UNFINISHED

    def test_nemesis_failure_aborts_run(self, five_nodes, atomic_client, failing_net):
        executor = ConcurrentExecutor(five_nodes, atomic_client, concurrency=2, join_grace=1.0)
        scheduler = FaultScheduler(five_nodes, failing_net, executor.recorder)
        with pytest.raises(NemesisError):
            executor.run(
                register_workload(5.0, stagger_s=0.01),
                scheduler,
                TimeLimit(5.0, NemesisCycle(0.0)),
            )
        assert len(atomic_client.closed) == 2
        assert failing_net.calls[-1] == ("heal", None)

    def test_slow_partition_finishes_before_teardown_heals(self, five_nodes, atomic_client):
        net = SlowNet(delay=1.0)
        executor = ConcurrentExecutor(five_nodes, atomic_client, concurrency=2, join_grace=0.1)
        scheduler = FaultScheduler(five_nodes, net, executor.recorder)
        history = executor.run(
            register_workload(0.3, stagger_s=0.01),
            scheduler,
            TimeLimit(5.0, NemesisCycle(0.25)),
        )

        nemesis = [ev for ev in history if ev.process == NEMESIS]
        assert [ev.f for ev in nemesis if ev.is_invoke()] == ["start", "stop"]
        assert nemesis[-1].value == "network healed"
        assert net.calls == ["drop_all", "heal"]
        assert check_linearizable(history).valid
