# tests/logic_tests/test_perf_report.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Test suite for latency and throughput reporting

import pytest

from logic.perf import PerfAnalyzer, latency_stats, percentile
from model.history import History
from model.operation import Op, OpType

MS = 1_000_000
S = 1_000_000_000


def E(process, op_type, f, value=None, time=0):
    return Op(process, OpType(op_type), f, value, time=time)


class TestPercentiles:
    def test_nearest_rank(self):
        values = [1.0, 2.0, 3.0, 4.0]
        assert percentile(values, 0.5) == 2.0
        assert percentile(values, 0.99) == 4.0
        assert percentile(values, 0.0) == 1.0

    def test_latency_stats_of_single_sample(self):
        stats = latency_stats([7.5])
        assert stats.count == 1
        assert stats.min_ms == stats.p99_ms == stats.max_ms == 7.5


class TestPerfAnalyzer:
    def test_latency_grouped_by_function_and_outcome(self):
        h = History([
            E(0, "invoke", "write", "1", time=0),
            E(0, "ok", "write", "1", time=2 * MS),
            E(1, "invoke", "read", time=S),
            E(1, "fail", "read", None, time=S + 3 * MS),
            E(0, "invoke", "write", "2", time=S),
            E(0, "ok", "write", "2", time=S + 4 * MS),
        ])
        report = PerfAnalyzer().analyze(h)

        writes = report.latencies[("write", "ok")]
        assert writes.count == 2
        assert writes.min_ms == pytest.approx(2.0)
        assert writes.mean_ms == pytest.approx(3.0)
        assert writes.max_ms == pytest.approx(4.0)
        assert report.latencies[("read", "fail")].count == 1
        assert report.total_ops == 3

    def test_throughput_buckets(self):
        h = History([
            E(0, "invoke", "write", "1", time=0),
            E(0, "ok", "write", "1", time=2 * MS),
            E(0, "invoke", "write", "2", time=S),
            E(0, "ok", "write", "2", time=S + 4 * MS),
        ])
        report = PerfAnalyzer(bucket_s=1.0).analyze(h)
        assert report.throughput["ok"] == [1.0, 1.0]

    def test_unfinished_operations_have_no_latency(self):
        h = History([E(0, "invoke", "write", "1", time=0)])
        report = PerfAnalyzer().analyze(h)
        assert report.latencies == {}
        assert report.total_ops == 1

    def test_empty_history(self):
        report = PerfAnalyzer().analyze(History())
        assert report.total_ops == 0
        assert "0 client operations" in report.summary()

    def test_bucket_width_must_be_positive(self):
        with pytest.raises(ValueError):
            PerfAnalyzer(bucket_s=0)
