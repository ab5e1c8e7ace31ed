"""Temporal engines: stateful summaries of how the observation evolves.

These engines accept every signal type: each tick advances their state once
per signal they see. Their raw observation ("level", "stress", "recovering",
"state") comes from an estimator or from the built-in simulation; the
state-keeping logic is the engine's own.
"""

from __future__ import annotations

import math
from typing import Mapping

from canisense.analysis.engines.base import EstimatedEngine
from canisense.analysis.estimators import Clock, Estimator, ValueSource
from canisense.analysis.types import Signal


class TemporalVariationEngine(EstimatedEngine):
    """Absolute change of the observed level since the previous tick."""

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "temporalVariation",
            "Variation temporelle",
            "Variations des signaux dans le temps.",
            clock=clock,
            source=source,
            estimator=estimator,
        )
        self._previous = 0.0

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {"level": math.sin(self._seconds()) * 0.5 + 0.5}

    async def _compute(self, signal: Signal) -> None:
        level = self._readings(signal).get("level")
        if level is None:
            return
        level = float(level)
        variation = abs(level - self._previous)
        self._previous = level
        self._emit("signalVariation", variation, "delta", 0.8)

    def _reset_state(self) -> None:
        self._previous = 0.0


class AccumulationEngine(EstimatedEngine):
    """Exponential moving average of momentary stress."""

    ALPHA = 0.1

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "accumulation",
            "Accumulation",
            "Accumule le stress ou l'excitation au fil du temps.",
            clock=clock,
            source=source,
            estimator=estimator,
        )
        self.accumulated_stress = 0.0

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {"stress": self._source.random() * 0.1}

    async def _compute(self, signal: Signal) -> None:
        sample = self._readings(signal).get("stress")
        if sample is None:
            return
        self.accumulated_stress = (
            self.ALPHA * float(sample) + (1 - self.ALPHA) * self.accumulated_stress
        )
        self._emit("accumulatedStress", self.accumulated_stress, "level", 0.9)

    def _reset_state(self) -> None:
        self.accumulated_stress = 0.0


class RecoveryEngine(EstimatedEngine):
    """Recovery level: climbs by 0.1 on recovering ticks, erodes by 0.01 otherwise."""

    RECOVERY_CHANCE = 0.1
    RECOVERY_STEP = 0.1
    DECAY_STEP = 0.01

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "recovery",
            "Récupération",
            "Récupération après des périodes d'activité.",
            clock=clock,
            source=source,
            estimator=estimator,
        )
        self.recovery_level = 1.0

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {"recovering": 1.0 if self._source.random() < self.RECOVERY_CHANCE else 0.0}

    async def _compute(self, signal: Signal) -> None:
        recovering = self._readings(signal).get("recovering")
        if recovering is None:
            return
        if recovering:
            self.recovery_level = min(1.0, self.recovery_level + self.RECOVERY_STEP)
        else:
            self.recovery_level = max(0.0, self.recovery_level - self.DECAY_STEP)
        self._emit("recoveryLevel", self.recovery_level, "ratio", 0.7)

    def _reset_state(self) -> None:
        self.recovery_level = 1.0


class TransitionEngine(EstimatedEngine):
    """Flags ticks where the binary behavioural state flipped."""

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "transition",
            "Transitions",
            "Transitions rapides vs progressives.",
            clock=clock,
            source=source,
            estimator=estimator,
        )
        self._previous_state = 0

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {"state": 1.0 if math.sin(self._seconds()) > 0 else 0.0}

    async def _compute(self, signal: Signal) -> None:
        reading = self._readings(signal).get("state")
        if reading is None:
            return
        state = 1 if reading else 0
        transition = 1.0 if state != self._previous_state else 0.0
        self._previous_state = state
        self._emit("rapidTransition", transition, "boolean", 0.8)

    def _reset_state(self) -> None:
        self._previous_state = 0
