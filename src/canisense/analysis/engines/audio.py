"""Audio engines: sound activity, vocal signature, rhythm."""

from __future__ import annotations

import math
from typing import Mapping

from canisense.analysis.engines.base import BaseEngine, EstimatedEngine
from canisense.analysis.estimators import Clock, Estimator, ValueSource
from canisense.analysis.types import AudioBuffer, Signal

_AUDIO = frozenset({"audio"})

SILENCE_RMS = 0.01


class SoundActivityEngine(BaseEngine):
    """Average volume, peaks and prolonged silence, computed from the samples."""

    ACCEPTS = _AUDIO

    def __init__(self, *, clock: Clock | None = None) -> None:
        super().__init__(
            "soundActivity",
            "Activité sonore",
            "Volume moyen, pics, silence prolongé.",
            clock=clock,
        )

    async def _compute(self, signal: Signal) -> None:
        buffer: AudioBuffer = signal.data
        samples = buffer.samples
        if not samples:
            return
        rms = math.sqrt(sum(s * s for s in samples) / len(samples))
        peak = max(abs(s) for s in samples)
        self._emit("averageVolume", rms * 100, "dB", 0.8)
        self._emit("peaks", peak * 120, "dB", 0.9)
        self._emit("prolongedSilence", 1.0 if rms < SILENCE_RMS else 0.0, "boolean", 0.7)


class VocalSignatureEngine(EstimatedEngine):
    """Barking, whining, growling and panting probabilities."""

    ACCEPTS = _AUDIO
    CHANNELS = {
        "barking": ("probability", 0.8),
        "whining": ("probability", 0.7),
        "growling": ("probability", 0.9),
        "panting": ("probability", 0.6),
    }

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "vocalSignature",
            "Signature vocale",
            "Aboiement, gémissement, grognement, souffle.",
            clock=clock,
            source=source,
            estimator=estimator,
        )

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {channel: self._source.random() for channel in self.CHANNELS}


class RhythmEngine(EstimatedEngine):
    """Repetition, irregularity and bursts in the vocal stream."""

    ACCEPTS = _AUDIO
    CHANNELS = {
        "repetition": ("ratio", 0.8),
        "irregularity": ("ratio", 0.7),
        "bursts": ("boolean", 0.9),
    }

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "rhythm",
            "Rythme",
            "Répétition, irrégularité, salves.",
            clock=clock,
            source=source,
            estimator=estimator,
        )

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {
            "repetition": self._source.random(),
            "irregularity": self._source.random(),
            "bursts": 1.0 if self._source.random() < 0.5 else 0.0,
        }
