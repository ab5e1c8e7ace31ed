"""Analysis pipeline — dispatches signals to engines and produces interpretations."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from canisense.analysis.backends.pose import PoseBackend, PoseLoader
from canisense.analysis.engines import Engine
from canisense.analysis.engines.registry import EngineRegistry, build_default_registry
from canisense.analysis.estimators import Clock, Estimator, ValueSource, system_clock
from canisense.analysis.fusion import fuse_metrics
from canisense.analysis.interpretation import DEFAULT_LOCALE, interpret_latent_state, supported_locales
from canisense.analysis.normalization import normalize_metrics
from canisense.analysis.types import (
    DogProfile,
    FusionResult,
    HistoryEntry,
    Metric,
    Signal,
    UserInterpretation,
)
from canisense.core.config.analysis import AnalysisConfig

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Owns the engine bank for one observation session.

    Engines run sequentially, in registration order, so the metric order
    is reproducible for identical inputs. The pipeline does no locking:
    callers must not overlap ``process_signal`` with another
    ``process_signal``, ``reset`` or ``get_analysis`` on the same instance.

    Usage::

        pipeline = AnalysisPipeline(AnalysisConfig.all_engines())
        await pipeline.process_signal(Signal.audio(samples, 44100))
        interpretation = pipeline.get_analysis()
    """

    def __init__(
        self,
        config: AnalysisConfig,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimators: Mapping[str, Estimator] | None = None,
        history: Iterable[HistoryEntry | Mapping[str, Any]] = (),
        profile: DogProfile | Mapping[str, Any] | None = None,
        pose_backend: PoseBackend | None = None,
        pose_loader: PoseLoader | None = None,
        locale: str = DEFAULT_LOCALE,
        engines: Iterable[Engine] | None = None,
    ) -> None:
        if locale not in supported_locales():
            raise ValueError(f"Unsupported locale {locale!r}; expected one of {supported_locales()}")

        self.config = config
        self.locale = locale
        self._clock: Clock = clock or system_clock
        self.session_start = self._clock()

        if engines is not None:
            self._registry = EngineRegistry()
            for engine in engines:
                self._registry.register(engine)
        else:
            self._registry = build_default_registry(
                session_start=self.session_start,
                clock=self._clock,
                source=source,
                estimators=estimators,
                history=history,
                profile=profile,
                pose_backend=pose_backend,
                pose_loader=pose_loader,
            )
        self._engines: list[Engine] = self._registry.all()

        for engine in self._engines:
            engine.is_active = engine.id in config.active_engines

        unknown = config.unknown_engines(self._registry.ids())
        if unknown:
            logger.warning("Ignoring unknown engine ids in config: %s", ", ".join(unknown))

        logger.info(
            "Analysis pipeline ready: %d/%d engines active",
            len(self.get_active_engines()),
            len(self._engines),
        )

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_signal(self, signal: Signal) -> list[Metric]:
        """Run the signal through every active engine, in registration order."""
        produced: list[Metric] = []
        for engine in self._engines:
            if not engine.is_active:
                continue
            produced.extend(await engine.process(signal))

        self._debug(
            "Processed %s signal @%d: %d metrics",
            signal.type,
            signal.timestamp,
            len(produced),
        )
        return produced

    def get_fusion(self) -> FusionResult:
        """Normalize and fuse everything accumulated so far."""
        normalized = normalize_metrics(self.get_all_metrics())
        return fuse_metrics(normalized, self.config.fusion_weights)

    def get_analysis(self) -> UserInterpretation:
        """Full normalize -> fuse -> interpret pass over accumulated metrics."""
        fusion = self.get_fusion()
        interpretation = interpret_latent_state(fusion, self.locale)
        self._debug(
            "Analysis: %s (confidence %.3f, latent %s)",
            interpretation.synthetic_state.value,
            interpretation.confidence,
            fusion.latent_state.to_dict(),
        )
        return interpretation

    def reset(self) -> None:
        """Clear every engine's history; configuration is untouched."""
        for engine in self._engines:
            engine.reset()
        self._debug("Pipeline reset")

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    def get_active_engines(self) -> list[Engine]:
        return [e for e in self._engines if e.is_active]

    def get_engines(self) -> list[Engine]:
        return list(self._engines)

    def get_engine(self, engine_id: str) -> Engine | None:
        return self._registry.get(engine_id)

    def get_all_metrics(self) -> list[Metric]:
        """Every engine's history, in registration order."""
        return [m for engine in self._engines for m in engine.get_metrics()]

    def now(self) -> int:
        """Current time in ms from the pipeline clock."""
        return self._clock()

    def _debug(self, msg: str, *args: Any) -> None:
        level = logging.INFO if self.config.enable_debug else logging.DEBUG
        logger.log(level, msg, *args)
