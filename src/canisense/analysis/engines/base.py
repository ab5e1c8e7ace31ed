"""Common engine behaviour: type filtering, metric history, failure containment."""

from __future__ import annotations

import logging
from typing import Mapping

from canisense.analysis.estimators import (
    Clock,
    Estimator,
    ValueSource,
    default_source,
    system_clock,
)
from canisense.analysis.types import SIGNAL_TYPES, Metric, Signal

logger = logging.getLogger(__name__)


class BaseEngine:
    """Shared implementation of the ``Engine`` protocol.

    Subclasses declare ``ACCEPTS`` and implement ``_compute``, calling
    ``_emit`` once per metric. ``process`` returns only what was emitted
    during that call.
    """

    ACCEPTS: frozenset[str] = SIGNAL_TYPES

    def __init__(
        self,
        id: str,
        name: str,
        description: str,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.id = id
        self.name = name
        self.description = description
        self.is_active = True
        self._clock: Clock = clock or system_clock
        self._metrics: list[Metric] = []
        self._pending: list[Metric] | None = None

    @property
    def accepts(self) -> frozenset[str]:
        return self.ACCEPTS

    async def process(self, signal: Signal) -> list[Metric]:
        if signal.type not in self.ACCEPTS:
            return []

        self._pending = []
        try:
            await self._compute(signal)
        except Exception:
            logger.exception("Engine %s failed on %s signal; no metrics this tick", self.id, signal.type)
            return []
        finally:
            emitted, self._pending = self._pending, None

        self._metrics.extend(emitted)
        if emitted:
            logger.debug("[%s] emitted %d metrics", self.id, len(emitted))
        return list(emitted)

    def get_metrics(self) -> list[Metric]:
        return list(self._metrics)

    def reset(self) -> None:
        self._metrics = []
        self._reset_state()

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    async def _compute(self, signal: Signal) -> None:
        raise NotImplementedError

    def _reset_state(self) -> None:
        """Restore engine-specific state; stateless engines keep the no-op."""

    def _emit(
        self,
        name: str,
        value: float,
        unit: str | None = None,
        reliability: float = 1.0,
    ) -> Metric:
        if self._pending is None:
            raise RuntimeError(f"Engine {self.id} emitted {name!r} outside process()")
        metric = Metric(
            name=name,
            value=float(value),
            unit=unit,
            timestamp=self._clock(),
            reliability=reliability,
        )
        self._pending.append(metric)
        return metric

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"<{type(self).__name__} {self.id!r} {state}>"


class EstimatedEngine(BaseEngine):
    """Engine whose readings come from an ``Estimator`` or a simulation.

    ``CHANNELS`` maps each emitted metric name to its ``(unit, reliability)``
    and fixes the emission order. With an estimator, channels absent from its
    readings are skipped.
    """

    CHANNELS: dict[str, tuple[str, float]] = {}

    def __init__(
        self,
        id: str,
        name: str,
        description: str,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(id, name, description, clock=clock)
        self._source: ValueSource = source or default_source()
        self._estimator = estimator

    def _readings(self, signal: Signal) -> Mapping[str, float]:
        if self._estimator is not None:
            return self._estimator.estimate(signal)
        return self._simulate(signal)

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        raise NotImplementedError

    def _seconds(self) -> float:
        return self._clock() / 1000

    async def _compute(self, signal: Signal) -> None:
        readings = self._readings(signal)
        for channel, (unit, reliability) in self.CHANNELS.items():
            if channel in readings:
                self._emit(channel, readings[channel], unit, reliability)
