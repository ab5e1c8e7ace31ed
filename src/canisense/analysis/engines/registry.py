"""Engine registry — ordered index of the engines a pipeline runs."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from canisense.analysis.backends.pose import PoseBackend, PoseLoader
from canisense.analysis.engines import Engine
from canisense.analysis.engines.audio import RhythmEngine, SoundActivityEngine, VocalSignatureEngine
from canisense.analysis.engines.context import (
    BaselineEngine,
    RecentHistoryEngine,
    SessionDurationEngine,
    TimeOfDayEngine,
)
from canisense.analysis.engines.temporal import (
    AccumulationEngine,
    RecoveryEngine,
    TemporalVariationEngine,
    TransitionEngine,
)
from canisense.analysis.engines.visual import (
    BodyPostureEngine,
    EarsEngine,
    GlobalMovementEngine,
    HeadGazeEngine,
    TailEngine,
)
from canisense.analysis.estimators import Clock, Estimator, ValueSource
from canisense.analysis.types import DogProfile, HistoryEntry

logger = logging.getLogger(__name__)

# Registration order: visual, audio, temporal, context.
ENGINE_IDS: tuple[str, ...] = (
    "globalMovement",
    "bodyPosture",
    "tail",
    "ears",
    "headGaze",
    "soundActivity",
    "vocalSignature",
    "rhythm",
    "temporalVariation",
    "accumulation",
    "recovery",
    "transition",
    "timeOfDay",
    "sessionDuration",
    "recentHistory",
    "baseline",
)


class EngineRegistry:
    """In-memory registry preserving registration order."""

    def __init__(self) -> None:
        self._engines: dict[str, Engine] = {}

    def register(self, engine: Engine) -> None:
        if engine.id in self._engines:
            raise ValueError(f"Duplicate engine id registered: {engine.id!r}")
        self._engines[engine.id] = engine

    def get(self, engine_id: str) -> Engine | None:
        return self._engines.get(engine_id)

    def ids(self) -> list[str]:
        return list(self._engines)

    def all(self) -> list[Engine]:
        return list(self._engines.values())

    def __len__(self) -> int:
        return len(self._engines)

    def __contains__(self, engine_id: object) -> bool:
        return engine_id in self._engines


def build_default_registry(
    *,
    session_start: int,
    clock: Clock | None = None,
    source: ValueSource | None = None,
    estimators: Mapping[str, Estimator] | None = None,
    history: Iterable[HistoryEntry | Mapping[str, Any]] = (),
    profile: DogProfile | Mapping[str, Any] | None = None,
    pose_backend: PoseBackend | None = None,
    pose_loader: PoseLoader | None = None,
) -> EngineRegistry:
    """Instantiate one of every known engine, in registration order.

    Args:
        session_start: Session start (ms) for the session-duration engine.
        clock: Shared clock for metric timestamps.
        source: Value source for simulated channels (shared, drawn in order).
        estimators: Optional per-engine-id estimator replacing the simulation.
        history: Recent analyses snapshot for the recent-history engine.
        profile: Dog profile snapshot for the baseline engine.
        pose_backend: Ready pose backend for the posture engine.
        pose_loader: Async loader for the pose backend, if not ready-made.
    """
    estimators = dict(estimators or {})

    def sim(engine_id: str) -> dict[str, Any]:
        return {"clock": clock, "source": source, "estimator": estimators.pop(engine_id, None)}

    registry = EngineRegistry()
    for engine in (
        GlobalMovementEngine(**sim("globalMovement")),
        BodyPostureEngine(clock=clock, backend=pose_backend, loader=pose_loader),
        TailEngine(**sim("tail")),
        EarsEngine(**sim("ears")),
        HeadGazeEngine(**sim("headGaze")),
        SoundActivityEngine(clock=clock),
        VocalSignatureEngine(**sim("vocalSignature")),
        RhythmEngine(**sim("rhythm")),
        TemporalVariationEngine(**sim("temporalVariation")),
        AccumulationEngine(**sim("accumulation")),
        RecoveryEngine(**sim("recovery")),
        TransitionEngine(**sim("transition")),
        TimeOfDayEngine(clock=clock),
        SessionDurationEngine(session_start, clock=clock),
        RecentHistoryEngine(history, clock=clock),
        BaselineEngine(profile, clock=clock),
    ):
        registry.register(engine)

    if estimators:
        logger.warning(
            "Estimators supplied for engines that do not take one: %s",
            ", ".join(sorted(estimators)),
        )
    return registry
