"""Per-metric normalization: raw engine scales -> unit interval.

Every rule is deterministic and keyed by metric name. Only ``value``
changes; name, unit, timestamp and reliability are carried over. Names
missing from the table are clamped to [0, 1].
"""

from __future__ import annotations

from typing import Callable, Iterable

from canisense.analysis.types import Metric

Rule = Callable[[float], float]


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def _scaled(divisor: float) -> Rule:
    return lambda v: _clamp(v / divisor)


def _identity(value: float) -> float:
    return value


# Already ratios or probabilities in [0, 1]
_CLAMPED = (
    "agitation",
    "rigidity",
    "asymmetry",
    "microMovements",
    "stability",
    "recoveryLevel",
    "signalVariation",
    "barking",
    "whining",
    "growling",
    "panting",
    "repetition",
    "irregularity",
    "hourOfDay",
    "averageRecentStress",
    "baselineActivation",
)

# Booleans (0/1) and geometric ratios passed through as-is
_PASS_THROUGH = (
    "bodyHeight",
    "position",
    "rapidVariations",
    "suddenMovements",
    "prolongedSilence",
    "bursts",
    "rapidTransition",
)

# Observed maximum of each bounded scale
SCALE_DIVISORS: dict[str, float] = {
    "averageSpeed": 10,      # m/s
    "accelerations": 5,      # m/s²
    "wagFrequency": 5,       # Hz
    "amplitude": 90,         # degrees
    "averageVolume": 100,    # rms * 100
    "peaks": 120,            # max |sample| * 120
    "sessionDuration": 60,   # minutes
}

NORMALIZATION_RULES: dict[str, Rule] = {
    **{name: _clamp for name in _CLAMPED},
    **{name: _identity for name in _PASS_THROUGH},
    **{name: _scaled(divisor) for name, divisor in SCALE_DIVISORS.items()},
    "direction": lambda v: abs(v) / 90,          # -90..90 degrees
    "orientation": lambda v: v / 360,            # 0..360 degrees
    "generalOrientation": lambda v: v / 360,     # 0..360 degrees
    "accumulatedStress": lambda v: min(v, 1.0),  # EMA, capped above only
}


def normalize_value(name: str, value: float) -> float:
    """Apply the rule registered for ``name``, or the clamp default."""
    rule = NORMALIZATION_RULES.get(name, _clamp)
    return rule(value)


def is_known_metric(name: str) -> bool:
    return name in NORMALIZATION_RULES


def normalize_metrics(metrics: Iterable[Metric]) -> list[Metric]:
    """Normalize every metric, preserving input order."""
    return [m.with_value(normalize_value(m.name, m.value)) for m in metrics]
