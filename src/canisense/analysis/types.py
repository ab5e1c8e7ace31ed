"""Shared vocabulary for the analysis core: signals in, metrics and interpretations out."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Mapping, Sequence, Union

SignalType = Literal["video", "audio", "context"]

SIGNAL_TYPES: frozenset[str] = frozenset({"video", "audio", "context"})


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Metric
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Metric:
    """One named, timestamped, reliability-weighted measurement."""

    name: str
    value: float
    unit: str | None = None
    timestamp: int = 0           # ms since epoch
    reliability: float = 1.0     # 0-1, used for confidence only

    def with_value(self, value: float) -> Metric:
        """Return a copy carrying a new value; everything else is kept."""
        return replace(self, value=value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": round(self.value, 4),
            "unit": self.unit,
            "timestamp": self.timestamp,
            "reliability": self.reliability,
        }


# ---------------------------------------------------------------------------
# Signal payloads
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VideoFrame:
    """Decoded pixel buffer (RGBA, row-major) plus its dimensions."""

    pixels: bytes | Sequence[int]
    width: int
    height: int


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded mono sample buffer (floats in [-1, 1]) plus its sample rate."""

    samples: Sequence[float]
    sample_rate: int


SignalData = Union[VideoFrame, AudioBuffer, Mapping[str, Any]]


@dataclass(frozen=True)
class Signal:
    """One timestamped unit of sensor input, consumed once by each active engine."""

    type: SignalType
    data: SignalData
    timestamp: int = field(default_factory=now_ms)

    def __post_init__(self) -> None:
        if self.type not in SIGNAL_TYPES:
            raise ValueError(
                f"Unknown signal type {self.type!r}; expected one of {sorted(SIGNAL_TYPES)}"
            )

    @classmethod
    def video(
        cls,
        pixels: bytes | Sequence[int],
        width: int,
        height: int,
        timestamp: int | None = None,
    ) -> Signal:
        frame = VideoFrame(pixels=pixels, width=width, height=height)
        return cls("video", frame, timestamp if timestamp is not None else now_ms())

    @classmethod
    def audio(
        cls,
        samples: Sequence[float],
        sample_rate: int,
        timestamp: int | None = None,
    ) -> Signal:
        buffer = AudioBuffer(samples=samples, sample_rate=sample_rate)
        return cls("audio", buffer, timestamp if timestamp is not None else now_ms())

    @classmethod
    def context(
        cls, data: Mapping[str, Any] | None = None, timestamp: int | None = None
    ) -> Signal:
        return cls(
            "context",
            MappingProxyType(dict(data or {})),
            timestamp if timestamp is not None else now_ms(),
        )


# ---------------------------------------------------------------------------
# Fusion / interpretation results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LatentState:
    """4-dimensional internal summary; values are nominally 0-1 but not clamped."""

    activation: float = 0.0
    tension: float = 0.0
    vigilance: float = 0.0
    fatigue: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "activation": round(self.activation, 4),
            "tension": round(self.tension, 4),
            "vigilance": round(self.vigilance, 4),
            "fatigue": round(self.fatigue, 4),
        }


@dataclass(frozen=True)
class FusionResult:
    """Latent state plus overall confidence and the top-ranked metrics."""

    latent_state: LatentState
    confidence: float
    dominant_signals: tuple[Metric, ...] = ()


class SyntheticState(str, Enum):
    """Final discrete label shown to the end user."""

    CALME = "Calme"
    EXCITE = "Excité"
    STRESSE = "Stressé"
    MIXTE = "Mixte"


# Confidence bands used by the observation screen
CONFIDENCE_HIGH = 0.7
CONFIDENCE_MEDIUM = 0.4


@dataclass(frozen=True)
class UserInterpretation:
    """The sole structured result surfaced to callers."""

    synthetic_state: SyntheticState
    confidence: float
    explanation: str
    metrics: tuple[Metric, ...] = ()

    @property
    def confidence_level(self) -> str:
        """Coarse confidence band: 'Élevé', 'Moyen' or 'Faible'."""
        if self.confidence > CONFIDENCE_HIGH:
            return "Élevé"
        if self.confidence > CONFIDENCE_MEDIUM:
            return "Moyen"
        return "Faible"

    def to_dict(self) -> dict[str, Any]:
        return {
            "synthetic_state": self.synthetic_state.value,
            "confidence": round(self.confidence, 4),
            "confidence_level": self.confidence_level,
            "explanation": self.explanation,
            "metrics": [m.to_dict() for m in self.metrics],
        }


# ---------------------------------------------------------------------------
# Context snapshots (history / profile / feedback records kept by the UI layer)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HistoryEntry:
    """One past analysis as remembered by the caller."""

    date: str
    state: str
    explanation: str = ""

    @classmethod
    def from_interpretation(
        cls, interpretation: UserInterpretation, when: datetime | None = None
    ) -> HistoryEntry:
        when = when or datetime.now()
        return cls(
            date=when.strftime("%d/%m/%Y %H:%M:%S"),
            state=interpretation.synthetic_state.value,
            explanation=interpretation.explanation,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HistoryEntry:
        return cls(
            date=str(data.get("date", "")),
            state=str(data.get("state", "")),
            explanation=str(data.get("explanation", "")),
        )


DEFAULT_ENERGY = 5.0


@dataclass(frozen=True)
class DogProfile:
    """Owner-declared profile; energy is on a 0-10 scale."""

    name: str = ""
    age: str = ""
    energy: float = DEFAULT_ENERGY

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> DogProfile:
        if not data:
            return cls()
        try:
            energy = float(data.get("energy") or DEFAULT_ENERGY)
        except (TypeError, ValueError):
            energy = DEFAULT_ENERGY
        return cls(
            name=str(data.get("name", "")),
            age=str(data.get("age", "")),
            energy=energy,
        )


@dataclass(frozen=True)
class UserFeedback:
    """Owner verdict on a finished analysis."""

    analysis_id: str
    timestamp: int
    correct: bool
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "analysis_id": self.analysis_id,
            "timestamp": self.timestamp,
            "correct": self.correct,
            "comment": self.comment,
        }
