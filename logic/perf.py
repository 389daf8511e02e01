# logic/perf.py

"""
Latency and throughput statistics derived from a history. Purely a
reporting side channel: nothing here feeds the linearizability verdict.
"""

from __future__ import annotations
import math
import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from model.history import History

NANOS_PER_MS = 1_000_000
NANOS_PER_S = 1_000_000_000


@dataclass(frozen=True)
class LatencyStats:
    count: int
    min_ms: float
    mean_ms: float
    p50_ms: float
    p95_ms: float
    p99_ms: float
    max_ms: float

    def __str__(self) -> str:
        return (
            f"n={self.count} min={self.min_ms:.2f} mean={self.mean_ms:.2f} "
            f"p50={self.p50_ms:.2f} p95={self.p95_ms:.2f} p99={self.p99_ms:.2f} "
            f"max={self.max_ms:.2f} (ms)"
        )


@dataclass(frozen=True)
class PerfReport:
    """
    latencies: (function, outcome type) -> latency distribution
    throughput: outcome type -> ops/s in each bucket, bucket i covering
        ``[i * bucket_s, (i + 1) * bucket_s)`` seconds after the first event
    """
    latencies: Dict[Tuple[str, str], LatencyStats] = field(default_factory=dict)
    throughput: Dict[str, List[float]] = field(default_factory=dict)
    bucket_s: float = 1.0
    total_ops: int = 0

    def summary(self) -> str:
        lines = [f"{self.total_ops} client operations"]
        for (f, op_type), stats in sorted(self.latencies.items()):
            lines.append(f"  {f:<5} {op_type:<4} {stats}")
        for op_type, buckets in sorted(self.throughput.items()):
            rates = " ".join(f"{r:.1f}" for r in buckets)
            lines.append(f"  {op_type:<4} ops/s per {self.bucket_s:g}s: {rates}")
        return "\n".join(lines)


def percentile(sorted_values: List[float], q: float) -> float:
    """Nearest-rank percentile of an already sorted, non-empty list."""
    rank = max(1, math.ceil(q * len(sorted_values)))
    return sorted_values[rank - 1]


def latency_stats(latencies_ms: List[float]) -> LatencyStats:
    values = sorted(latencies_ms)
    return LatencyStats(
        count=len(values),
        min_ms=values[0],
        mean_ms=statistics.fmean(values),
        p50_ms=percentile(values, 0.50),
        p95_ms=percentile(values, 0.95),
        p99_ms=percentile(values, 0.99),
        max_ms=values[-1],
    )


class PerfAnalyzer:
    """Builds a PerfReport from the client operations of a history."""

    def __init__(self, bucket_s: float = 1.0):
        if bucket_s <= 0:
            raise ValueError("bucket_s must be positive")
        self.bucket_s = bucket_s

    def analyze(self, history: History) -> PerfReport:
        pairs = history.pairs()
        if not pairs:
            return PerfReport(bucket_s=self.bucket_s)

        origin = history[0].time
        grouped: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        completions: Dict[str, List[int]] = defaultdict(list)

        for pair in pairs:
            op_type = pair.type.value
            latency = pair.latency
            if latency is not None:
                grouped[(pair.f, op_type)].append(latency / NANOS_PER_MS)
            completed_at = pair.complete_time
            if completed_at is not None:
                completions[op_type].append(completed_at - origin)

        bucket_ns = self.bucket_s * NANOS_PER_S
        n_buckets = max(1, math.ceil((history.duration() + 1) / bucket_ns))
        throughput: Dict[str, List[float]] = {}
        for op_type, times in completions.items():
            counts = [0] * n_buckets
            for t in times:
                counts[min(int(t // bucket_ns), n_buckets - 1)] += 1
            throughput[op_type] = [c / self.bucket_s for c in counts]

        return PerfReport(
            latencies={k: latency_stats(v) for k, v in grouped.items()},
            throughput=throughput,
            bucket_s=self.bucket_s,
            total_ops=len(pairs),
        )
