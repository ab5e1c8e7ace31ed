"""Context engines: time of day, session duration, recent history, baseline.

History and profile are read-only snapshots handed in by the caller. A
``context`` signal carrying ``history`` or ``profile`` in its payload
replaces the corresponding snapshot for later ticks.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from canisense.analysis.engines.base import BaseEngine
from canisense.analysis.estimators import Clock
from canisense.analysis.types import DogProfile, HistoryEntry, Signal, SyntheticState

logger = logging.getLogger(__name__)

RECENT_WINDOW = 5


class TimeOfDayEngine(BaseEngine):
    """Local hour of the day as a fraction of 24."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        super().__init__(
            "timeOfDay",
            "Heure de la journée",
            "Heure actuelle pour contextualiser les comportements.",
            clock=clock,
        )

    async def _compute(self, signal: Signal) -> None:
        hour = datetime.fromtimestamp(self._clock() / 1000).hour
        self._emit("hourOfDay", hour / 24, "ratio", 1.0)


class SessionDurationEngine(BaseEngine):
    """Minutes elapsed since the session started."""

    def __init__(self, start_time: int | None = None, *, clock: Clock | None = None) -> None:
        super().__init__(
            "sessionDuration",
            "Durée de la session",
            "Temps écoulé depuis le début de la session.",
            clock=clock,
        )
        self.start_time = start_time if start_time is not None else self._clock()

    async def _compute(self, signal: Signal) -> None:
        minutes = (self._clock() - self.start_time) / 1000 / 60
        self._emit("sessionDuration", minutes, "minutes", 1.0)


def _coerce_history(items: Iterable[Any]) -> tuple[HistoryEntry, ...]:
    entries = []
    for item in items:
        if isinstance(item, HistoryEntry):
            entries.append(item)
        elif isinstance(item, Mapping):
            entries.append(HistoryEntry.from_dict(item))
        else:
            raise TypeError(f"Unsupported history entry: {item!r}")
    return tuple(entries)


class RecentHistoryEngine(BaseEngine):
    """Share of stressed outcomes among the last five analyses."""

    def __init__(
        self,
        history: Iterable[HistoryEntry | Mapping[str, Any]] = (),
        *,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(
            "recentHistory",
            "Historique récent",
            "Analyses passées récentes.",
            clock=clock,
        )
        self.history = _coerce_history(history)

    async def _compute(self, signal: Signal) -> None:
        if signal.type == "context" and "history" in signal.data:
            self.history = _coerce_history(signal.data["history"])
            logger.debug("[%s] history snapshot replaced (%d entries)", self.id, len(self.history))

        recent = self.history[-RECENT_WINDOW:]
        if recent:
            stressed = sum(1 for entry in recent if entry.state == SyntheticState.STRESSE.value)
            average = stressed / len(recent)
        else:
            average = 0.0
        self._emit("averageRecentStress", average, "ratio", 0.8)


class BaselineEngine(BaseEngine):
    """Declared energy level of the dog, scaled to 0-1."""

    def __init__(
        self,
        profile: DogProfile | Mapping[str, Any] | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(
            "baseline",
            "Baseline individuelle",
            "Comparaison aux comportements de base du chien.",
            clock=clock,
        )
        self.profile = profile if isinstance(profile, DogProfile) else DogProfile.from_dict(profile)

    async def _compute(self, signal: Signal) -> None:
        if signal.type == "context" and "profile" in signal.data:
            profile = signal.data["profile"]
            self.profile = profile if isinstance(profile, DogProfile) else DogProfile.from_dict(profile)
        self._emit("baselineActivation", self.profile.energy / 10, "ratio", 0.7)
