# runner/generator.py
# This file is part of Tessera - A Linearizability Test Harness
#
# Lazy, composable sources of operations for workers and the nemesis

"""Operation generators.

A generator is pulled by a process whenever that process is ready for its
next operation. ``op`` returns an un-timed invocation, or ``None`` once the
generator is exhausted; an exhausted generator stays exhausted. One
generator instance is shared by every worker thread, so implementations
guard mutable state with a lock.

Sleeps are waits on the run's stop signal: setting it wakes every sleeping
process, which then sees an exhausted generator.

Building blocks:
    read() / write(values) / cas(values)   single-op constructors
    mix(constructors)                      uniform choice per pull
    stagger(seconds, gen)                  random think time before a pull
    time_limit(duration, gen)              stops after ``duration`` seconds
    nemesis_cycle(interval)                sleep, start, sleep, stop, ...
"""

from __future__ import annotations
import random
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple

from model.operation import CAS, READ, START, STOP, WRITE, Op, ProcessId, invoke_op

Constructor = Callable[["GenContext"], Op]


@dataclass
class GenContext:
    """What a pulling process hands to its generator."""

    process: ProcessId
    stop: threading.Event
    rng: random.Random = field(default_factory=random.Random)

    def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; False if the stop signal cut it short."""
        if seconds <= 0:
            return not self.stop.is_set()
        return not self.stop.wait(seconds)


class Generator(ABC):
    """Lazy operation source."""

    @abstractmethod
    def op(self, ctx: GenContext) -> Optional[Op]:
        """Next invocation for ``ctx.process``, or None when exhausted."""


def register_values(value_range: int = 5) -> Tuple[str, ...]:
    """Register values ``"0"`` .. ``str(value_range - 1)``."""
    return tuple(str(v) for v in range(value_range))


def read() -> Constructor:
    return lambda ctx: invoke_op(ctx.process, READ)


def write(values: Sequence[str]) -> Constructor:
    return lambda ctx: invoke_op(ctx.process, WRITE, ctx.rng.choice(values))


def cas(values: Sequence[str]) -> Constructor:
    return lambda ctx: invoke_op(
        ctx.process, CAS, (ctx.rng.choice(values), ctx.rng.choice(values))
    )


class Mix(Generator):
    """Uniform random choice among constructors on every pull."""

    def __init__(self, constructors: Sequence[Constructor]):
        if not constructors:
            raise ValueError("mix needs at least one constructor")
        self.constructors = tuple(constructors)

    def op(self, ctx: GenContext) -> Optional[Op]:
        if ctx.stop.is_set():
            return None
        return ctx.rng.choice(self.constructors)(ctx)


class Stagger(Generator):
    """Sleep uniformly on ``[0, 2 * seconds)`` before each pull."""

    def __init__(self, seconds: float, gen: Generator):
        if seconds < 0:
            raise ValueError("stagger must not be negative")
        self.seconds = seconds
        self.gen = gen

    def op(self, ctx: GenContext) -> Optional[Op]:
        if not ctx.sleep(ctx.rng.uniform(0, 2 * self.seconds)):
            return None
        return self.gen.op(ctx)


class TimeLimit(Generator):
    """
    Delegates until ``duration`` seconds have passed since the first pull,
    then yields nothing ever again. An op produced by the inner generator
    after the deadline (it slept across it) is discarded.
    """

    def __init__(
        self,
        duration: float,
        gen: Generator,
        clock: Callable[[], float] = time.monotonic,
    ):
        if duration <= 0:
            raise ValueError("time limit must be positive")
        self.duration = duration
        self.gen = gen
        self._clock = clock
        self._deadline: Optional[float] = None
        self._expired = False
        self._lock = threading.Lock()

    def _live(self) -> bool:
        with self._lock:
            if self._expired:
                return False
            now = self._clock()
            if self._deadline is None:
                self._deadline = now + self.duration
            elif now >= self._deadline:
                self._expired = True
                return False
            return True

    @property
    def expired(self) -> bool:
        return self._expired

    def op(self, ctx: GenContext) -> Optional[Op]:
        if not self._live():
            return None
        result = self.gen.op(ctx)
        if result is None or not self._live():
            return None
        return result


class NemesisCycle(Generator):
    """``sleep(interval) -> start -> sleep(interval) -> stop``, forever."""

    def __init__(self, interval: float):
        if interval < 0:
            raise ValueError("fault interval must not be negative")
        self.interval = interval
        self._next = START
        self._lock = threading.Lock()

    def op(self, ctx: GenContext) -> Optional[Op]:
        if not ctx.sleep(self.interval):
            return None
        with self._lock:
            f = self._next
            self._next = STOP if f == START else START
        return invoke_op(ctx.process, f)


def mix(constructors: Sequence[Constructor]) -> Generator:
    return Mix(constructors)


def stagger(seconds: float, gen: Generator) -> Generator:
    return Stagger(seconds, gen)


def time_limit(duration: float, gen: Generator) -> TimeLimit:
    return TimeLimit(duration, gen)


def nemesis_cycle(interval: float) -> Generator:
    return NemesisCycle(interval)


def register_workload(
    time_limit_s: float, stagger_s: float = 1.0, value_range: int = 5
) -> TimeLimit:
    """The standard client workload: staggered read / write / cas mix."""
    values = register_values(value_range)
    return time_limit(time_limit_s, stagger(stagger_s, mix([read(), write(values), cas(values)])))
