"""Pluggable value sources for engines that do not yet run a real model.

Several engines (vocal signature, rhythm, most visual channels) synthesize
their readings instead of measuring them. The synthesis draws from a
``ValueSource`` so tests can make it deterministic, and an engine may be
handed an ``Estimator`` instead, in which case its readings come from that
estimator and the simulation is bypassed.
"""

from __future__ import annotations

import itertools
import random
from typing import Callable, Iterable, Mapping, Protocol, runtime_checkable

from canisense.analysis.types import Signal, now_ms

Clock = Callable[[], int]
"""Returns the current time in milliseconds since the epoch."""


@runtime_checkable
class ValueSource(Protocol):
    """Uniform source of floats in [0, 1). ``random.Random`` satisfies it."""

    def random(self) -> float: ...


@runtime_checkable
class Estimator(Protocol):
    """Produces raw readings, keyed by channel name, for one signal."""

    def estimate(self, signal: Signal) -> Mapping[str, float]: ...


def default_source() -> ValueSource:
    """Unseeded random source used when nothing is injected."""
    return random.Random()


def system_clock() -> int:
    return now_ms()


class ScriptedSource:
    """Replays a fixed sequence of values, cycling when exhausted.

    Usage::

        source = ScriptedSource([0.1, 0.9])
        source.random()  # 0.1
        source.random()  # 0.9
        source.random()  # 0.1
    """

    def __init__(self, values: Iterable[float]) -> None:
        values = list(values)
        if not values:
            raise ValueError("ScriptedSource needs at least one value")
        for v in values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"Scripted value out of [0, 1): {v!r}")
        self._values = values
        self._cycle = itertools.cycle(values)
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        return next(self._cycle)


class FixedClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start_ms: int = 0) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class StaticEstimator:
    """Returns the same readings for every signal."""

    def __init__(self, readings: Mapping[str, float]) -> None:
        self._readings = dict(readings)

    def estimate(self, signal: Signal) -> Mapping[str, float]:
        return dict(self._readings)
