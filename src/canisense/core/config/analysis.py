"""Analysis configuration — the full configuration contract of a pipeline.

Built once and never mutated afterwards. It can come from code, from the
environment-backed ``Settings``, or from a YAML file such as::

    enable_debug: false
    active_engines: all          # or a list of engine ids
    fusion_weights:
      growling: 1.5
      averageSpeed: 0.8
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import yaml

from canisense.analysis.engines.registry import ENGINE_IDS

if TYPE_CHECKING:
    from canisense.core.config.settings import Settings

logger = logging.getLogger(__name__)

ALL_ENGINES = "all"


def _validate_weights(weights: Mapping[str, Any]) -> dict[str, float]:
    """Coerce weights to floats, rejecting anything non-numeric."""
    validated: dict[str, float] = {}
    for name, weight in weights.items():
        if isinstance(weight, bool):
            raise ValueError(f"Fusion weight for {name!r} must be a number, got {weight!r}")
        try:
            validated[str(name)] = float(weight)
        except (TypeError, ValueError):
            raise ValueError(
                f"Fusion weight for {name!r} must be a number, got {weight!r}"
            ) from None
    return validated


@dataclass(frozen=True)
class AnalysisConfig:
    """Which engines run, how metrics are weighted, and whether to log diagnostics."""

    enable_debug: bool = False
    active_engines: frozenset[str] = frozenset()
    fusion_weights: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.active_engines, str):
            raise ValueError("active_engines must be a collection of engine ids, not a string")
        object.__setattr__(self, "active_engines", frozenset(self.active_engines))
        object.__setattr__(
            self,
            "fusion_weights",
            MappingProxyType(_validate_weights(self.fusion_weights or {})),
        )

    @classmethod
    def all_engines(
        cls,
        *,
        enable_debug: bool = False,
        fusion_weights: Mapping[str, float] | None = None,
    ) -> AnalysisConfig:
        """Configuration with every known engine active."""
        return cls(
            enable_debug=enable_debug,
            active_engines=frozenset(ENGINE_IDS),
            fusion_weights=fusion_weights or {},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> AnalysisConfig:
        """Build from environment settings, or from the YAML file they point to."""
        if settings.analysis_config_path:
            return load_analysis_config(settings.analysis_config_path)
        return cls(
            enable_debug=settings.enable_debug,
            active_engines=frozenset(settings.active_engines or ENGINE_IDS),
            fusion_weights=settings.fusion_weights,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AnalysisConfig:
        engines = data.get("active_engines", ALL_ENGINES)
        if engines is None or engines == ALL_ENGINES:
            engines = ENGINE_IDS
        elif not isinstance(engines, (list, tuple, set, frozenset)):
            raise ValueError(
                f"active_engines must be 'all' or a list of engine ids, got {engines!r}"
            )
        weights = data.get("fusion_weights") or {}
        if not isinstance(weights, Mapping):
            raise ValueError(f"fusion_weights must be a mapping, got {weights!r}")
        return cls(
            enable_debug=bool(data.get("enable_debug", False)),
            active_engines=frozenset(str(e) for e in engines),
            fusion_weights=weights,
        )

    def unknown_engines(self, known: Iterable[str] = ENGINE_IDS) -> list[str]:
        """Configured engine ids that no registered engine carries."""
        known = set(known)
        return sorted(e for e in self.active_engines if e not in known)

    def to_dict(self) -> dict[str, Any]:
        return {
            "enable_debug": self.enable_debug,
            "active_engines": sorted(self.active_engines),
            "fusion_weights": dict(self.fusion_weights),
        }


def load_analysis_config(path: str | Path) -> AnalysisConfig:
    """Parse a YAML analysis configuration file."""
    path = Path(path).expanduser()
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in analysis config {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Analysis config {path} must contain a mapping at top level")

    config = AnalysisConfig.from_dict(data)
    logger.info(
        "Loaded analysis config from %s (%d engines active)",
        path,
        len(config.active_engines),
    )
    return config
