"""Shared test fixtures for canisense tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANALYSIS_CONFIG_PATH", "")
    monkeypatch.setenv("ENABLE_DEBUG", "false")
    monkeypatch.setenv("ACTIVE_ENGINES", "[]")
    monkeypatch.setenv("FUSION_WEIGHTS", "{}")
    monkeypatch.setenv("LOCALE", "en")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from canisense.analysis.backends.pose import POSE_LANDMARK_COUNT, Landmark  # noqa: E402
from canisense.analysis.estimators import FixedClock, ScriptedSource  # noqa: E402
from canisense.analysis.types import Metric, Signal  # noqa: E402

# 2023-11-14T22:13:20Z
T0 = 1_700_000_000_000


def make_metric(
    name: str = "agitation",
    value: float = 0.5,
    reliability: float = 1.0,
    unit: str | None = None,
    timestamp: int = T0,
) -> Metric:
    """Create a test metric with sensible defaults."""
    return Metric(name=name, value=value, unit=unit, timestamp=timestamp, reliability=reliability)


def make_landmarks(
    *,
    nose_y: float = 0.2,
    ankle_y: float = 0.9,
    left_shoulder: tuple[float, float] = (0.4, 0.35),
    right_shoulder: tuple[float, float] = (0.6, 0.35),
    count: int = POSE_LANDMARK_COUNT,
) -> list[Landmark]:
    """Build a MediaPipe-shaped landmark list with controllable key points."""
    points = [Landmark(0.5, 0.5) for _ in range(count)]
    if count > 28:
        points[0] = Landmark(0.5, nose_y)
        points[11] = Landmark(*left_shoulder)
        points[12] = Landmark(*right_shoulder)
        points[27] = Landmark(0.45, ankle_y)
        points[28] = Landmark(0.55, ankle_y)
    return points


class FakePoseBackend:
    """Pose backend returning canned landmarks and recording calls."""

    def __init__(self, landmarks: Sequence[Landmark] | None = None, fail: bool = False) -> None:
        self.landmarks = landmarks if landmarks is not None else make_landmarks()
        self.fail = fail
        self.calls = 0

    async def estimate(self, frame):
        self.calls += 1
        if self.fail:
            raise RuntimeError("pose inference crashed")
        return self.landmarks


def video_signal(timestamp: int = T0) -> Signal:
    return Signal.video(bytes(4 * 2 * 2), 2, 2, timestamp)


def audio_signal(samples: Sequence[float] = (0.1, -0.2, 0.3, -0.4), timestamp: int = T0) -> Signal:
    return Signal.audio(list(samples), 16000, timestamp)


def context_signal(data: dict | None = None, timestamp: int = T0) -> Signal:
    return Signal.context(data or {}, timestamp)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def source() -> ScriptedSource:
    """Middle-of-the-range values: every threshold draw (< 0.5) is false at 0.6."""
    return ScriptedSource([0.6])
