# tests/model_tests/test_history_model.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Test suite for history ordering, validation, pairing and fault intervals

import pytest

from model.history import History, HistoryError
from model.operation import NEMESIS, Op, OpType


def E(process, op_type, f, value=None, time=0, node=None):
    """Factory for creating history events in tests."""
    return Op(process, OpType(op_type), f, value, time=time, node=node)


class TestHistoryOrdering:
    def test_events_sorted_by_time_and_reindexed(self):
        h = History([
            E(0, "ok", "write", "1", time=20),
            E(0, "invoke", "write", "1", time=10),
        ])
        assert [ev.type for ev in h] == [OpType.INVOKE, OpType.OK]
        assert [ev.index for ev in h] == [0, 1]

    def test_ties_keep_recording_order(self):
        h = History([
            E(0, "invoke", "read", time=5),
            E(1, "invoke", "write", "2", time=5),
        ])
        assert [ev.process for ev in h] == [0, 1]

    def test_equal_histories_compare_equal(self):
        events = [E(0, "invoke", "read", time=1), E(0, "ok", "read", "1", time=2)]
        assert History(events) == History(list(events))
        assert hash(History(events)) == hash(History(events))


class TestHistoryValidation:
    def test_double_invoke_rejected(self):
        with pytest.raises(HistoryError, match="outstanding"):
            History([
                E(0, "invoke", "read", time=1),
                E(0, "invoke", "write", "1", time=2),
            ])

    def test_orphan_completion_rejected(self):
        with pytest.raises(HistoryError, match="no matching invocation"):
            History([E(3, "ok", "read", "1", time=1)])

    def test_mismatched_function_rejected(self):
        with pytest.raises(HistoryError):
            History([
                E(0, "invoke", "read", time=1),
                E(0, "ok", "write", "1", time=2),
            ])

    def test_history_error_is_a_value_error(self):
        assert issubclass(HistoryError, ValueError)


class TestHistoryPairs:
    def test_pairs_join_invocations_with_completions(self):
        h = History([
            E(0, "invoke", "write", "1", time=1, node="n1"),
            E(1, "invoke", "read", time=2, node="n2"),
            E(0, "ok", "write", "1", time=3),
            E(1, "ok", "read", "1", time=4),
        ])
        pairs = h.pairs()
        assert [p.f for p in pairs] == ["write", "read"]
        assert pairs[0].latency == 2
        assert pairs[1].output == "1"
        assert pairs[1].node == "n2"

    def test_unfinished_invocation_counts_as_info(self):
        h = History([E(0, "invoke", "write", "1", time=1)])
        (pair,) = h.pairs()
        assert pair.completion is None
        assert pair.type is OpType.INFO
        assert pair.latency is None

    def test_nemesis_events_excluded_from_client_pairs(self):
        h = History([
            E(NEMESIS, "invoke", "start", time=1),
            E(NEMESIS, "info", "start", (("n1",), ("n2", "n3")), time=2),
        ])
        assert h.pairs() == []
        assert len(h.pairs(client_only=False)) == 1
        assert h.processes() == []


class TestFaultIntervals:
    HALVES = (("n1", "n2"), ("n3", "n4", "n5"))

    def test_start_and_stop_bound_an_interval(self):
        h = History([
            E(NEMESIS, "invoke", "start", time=10),
            E(NEMESIS, "info", "start", self.HALVES, time=12),
            E(NEMESIS, "invoke", "stop", time=50),
            E(NEMESIS, "info", "stop", "network healed", time=55),
        ])
        (interval,) = h.fault_intervals()
        assert (interval.start, interval.end) == (12, 55)
        assert interval.minority == frozenset({"n1", "n2"})
        assert interval.majority == frozenset({"n3", "n4", "n5"})
        assert interval.active_at(30)
        assert not interval.active_at(60)

    def test_unhealed_partition_is_open_ended(self):
        h = History([
            E(NEMESIS, "invoke", "start", time=10),
            E(NEMESIS, "info", "start", self.HALVES, time=12),
        ])
        (interval,) = h.fault_intervals()
        assert interval.end is None
        assert interval.active_at(10**12)

    def test_noop_start_does_not_open_interval(self):
        h = History([
            E(NEMESIS, "invoke", "stop", time=1),
            E(NEMESIS, "info", "stop", "not partitioned", time=2),
            E(NEMESIS, "invoke", "start", time=3),
            E(NEMESIS, "info", "start", "already partitioned", time=4),
        ])
        assert h.fault_intervals() == []
