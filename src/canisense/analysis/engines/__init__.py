"""Analysis engines — independent feature extractors over incoming signals."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from canisense.analysis.types import Metric, Signal


@runtime_checkable
class Engine(Protocol):
    """Abstract interface for one feature-extraction unit.

    The pipeline calls these methods without knowing whether the metrics
    come from a perception model, a signal computation, or a simulated
    estimator.
    """

    id: str
    name: str
    description: str
    is_active: bool

    @property
    def accepts(self) -> frozenset[str]:
        """Signal types this engine handles; anything else is ignored."""
        ...

    async def process(self, signal: Signal) -> list[Metric]:
        """Metrics produced for this signal (possibly none)."""
        ...

    def get_metrics(self) -> list[Metric]:
        """Snapshot copy of every metric produced since the last reset."""
        ...

    def reset(self) -> None:
        """Clear history and engine-specific state."""
        ...
