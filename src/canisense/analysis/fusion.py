"""Fusion: normalized metrics -> latent state, confidence, dominant signals.

Metric names are partitioned into four groups, one per latent dimension.
Each dimension is the weighted mean of its group; the weights come from
the caller and only scale values (reliability never enters the latent
state, it only feeds confidence).
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from canisense.analysis.types import FusionResult, LatentState, Metric

logger = logging.getLogger(__name__)

DOMINANT_SIGNAL_COUNT = 5

ACTIVATION_METRICS = frozenset({
    "averageSpeed",
    "agitation",
    "averageVolume",
    "peaks",
    "wagFrequency",
    "amplitude",
    "barking",
    "panting",
})
TENSION_METRICS = frozenset({
    "accelerations",
    "rigidity",
    "asymmetry",
    "growling",
    "rapidVariations",
    "suddenMovements",
    "accumulatedStress",
})
VIGILANCE_METRICS = frozenset({
    "position",
    "microMovements",
    "stability",
    "orientation",
})
FATIGUE_METRICS = frozenset({
    "prolongedImmobility",
    "recoveryLevel",
    "signalVariation",
    "sessionDuration",
})

LATENT_GROUPS: dict[str, frozenset[str]] = {
    "activation": ACTIVATION_METRICS,
    "tension": TENSION_METRICS,
    "vigilance": VIGILANCE_METRICS,
    "fatigue": FATIGUE_METRICS,
}


def group_score(
    metrics: Sequence[Metric],
    members: frozenset[str],
    weights: Mapping[str, float],
) -> float:
    """Weighted mean of the metrics whose name is in ``members``; 0.0 if none."""
    group = [m for m in metrics if m.name in members]
    if not group:
        return 0.0
    return sum(m.value * weights.get(m.name, 1.0) for m in group) / len(group)


def overall_confidence(metrics: Sequence[Metric]) -> float:
    """Mean reliability of the metrics; 0.0 when there are none."""
    if not metrics:
        return 0.0
    return sum(
        m.reliability if m.reliability is not None else 1.0 for m in metrics
    ) / len(metrics)


def dominant_signals(
    metrics: Iterable[Metric], count: int = DOMINANT_SIGNAL_COUNT
) -> tuple[Metric, ...]:
    """Top metrics by value, descending; ties keep their input order."""
    return tuple(sorted(metrics, key=lambda m: m.value, reverse=True)[:count])


def fuse_metrics(
    normalized_metrics: Iterable[Metric],
    weights: Mapping[str, float] | None = None,
) -> FusionResult:
    """Aggregate normalized metrics into a ``FusionResult``.

    Args:
        normalized_metrics: Output of ``normalize_metrics``; not mutated.
        weights: Per-metric-name multipliers; absent names weigh 1.

    Returns:
        FusionResult with latent state, confidence and top-5 metrics.
    """
    metrics = list(normalized_metrics)
    weights = weights or {}

    latent = LatentState(
        **{dim: group_score(metrics, members, weights) for dim, members in LATENT_GROUPS.items()}
    )
    result = FusionResult(
        latent_state=latent,
        confidence=overall_confidence(metrics),
        dominant_signals=dominant_signals(metrics),
    )
    logger.debug(
        "Fused %d metrics: %s (confidence %.3f)",
        len(metrics),
        latent.to_dict(),
        result.confidence,
    )
    return result
