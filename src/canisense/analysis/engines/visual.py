"""Visual engines: movement, posture, tail, ears, head and gaze."""

from __future__ import annotations

import logging
import math
from typing import Mapping, Sequence

from canisense.analysis.backends.pose import (
    LEFT_ANKLE,
    LEFT_SHOULDER,
    NOSE,
    POSE_LANDMARK_COUNT,
    RIGHT_ANKLE,
    RIGHT_SHOULDER,
    BackendHandle,
    Landmark,
    PoseBackend,
    PoseLoader,
)
from canisense.analysis.engines.base import BaseEngine, EstimatedEngine
from canisense.analysis.estimators import Clock, Estimator, ValueSource
from canisense.analysis.types import Signal

logger = logging.getLogger(__name__)

_VIDEO = frozenset({"video"})


class GlobalMovementEngine(EstimatedEngine):
    """Average speed, accelerations, agitation and prolonged immobility."""

    ACCEPTS = _VIDEO
    CHANNELS = {
        "averageSpeed": ("m/s", 0.8),
        "accelerations": ("m/s²", 0.7),
        "agitation": ("ratio", 0.9),
        "prolongedImmobility": ("boolean", 0.6),
    }

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "globalMovement",
            "Mouvement global",
            "Vitesse moyenne, accélérations, agitation, immobilité prolongée.",
            clock=clock,
            source=source,
            estimator=estimator,
        )

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        t = self._seconds()
        return {
            "averageSpeed": abs(math.sin(t)) * 10,
            "accelerations": self._source.random() * 5,
            "agitation": self._source.random(),
            "prolongedImmobility": 1.0 if self._source.random() < 0.3 else 0.0,
        }


class BodyPostureEngine(BaseEngine):
    """Body height, general orientation and rigidity from pose landmarks.

    Requires a pose backend. While the backend is loading (or if it failed
    to load) every call produces nothing.
    """

    ACCEPTS = _VIDEO

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        backend: PoseBackend | None = None,
        loader: PoseLoader | None = None,
    ) -> None:
        super().__init__(
            "bodyPosture",
            "Posture corporelle",
            "Hauteur du corps, orientation générale, rigidité vs relâchement.",
            clock=clock,
        )
        self.backend = BackendHandle(backend=backend, loader=loader, label="pose")
        # Starts immediately when constructed inside a running loop,
        # otherwise on the first processed signal.
        self.backend.start()

    async def _compute(self, signal: Signal) -> None:
        if not self.backend.ready:
            self.backend.start()
            return
        landmarks = await self.backend.backend.estimate(signal.data)
        if not landmarks or len(landmarks) < POSE_LANDMARK_COUNT:
            return
        body_height, orientation, rigidity = posture_features(landmarks)
        self._emit("bodyHeight", body_height, "ratio", 0.8)
        self._emit("generalOrientation", orientation, "degrees", 0.7)
        self._emit("rigidity", rigidity, "ratio", 0.9)


def posture_features(landmarks: Sequence[Landmark]) -> tuple[float, float, float]:
    """Compute (body height, shoulder orientation in [0, 360], rigidity).

    Body height is the vertical distance nose-to-ankles in normalized units.
    Orientation is the shoulder-line angle shifted from [-180, 180] to
    [0, 360]. Rigidity is the scaled variance of all landmark coordinates.
    """
    nose = landmarks[NOSE]
    ankle_y = (landmarks[LEFT_ANKLE].y + landmarks[RIGHT_ANKLE].y) / 2
    body_height = abs(nose.y - ankle_y)

    left, right = landmarks[LEFT_SHOULDER], landmarks[RIGHT_SHOULDER]
    angle = math.degrees(math.atan2(right.y - left.y, right.x - left.x))
    orientation = angle + 180

    coords = [c for lm in landmarks for c in (lm.x, lm.y)]
    mean = sum(coords) / len(coords)
    variance = sum((c - mean) ** 2 for c in coords) / len(coords)
    rigidity = min(variance * 1000, 1.0)

    return body_height, orientation, rigidity


class TailEngine(EstimatedEngine):
    """Wag frequency, amplitude, direction and asymmetry."""

    ACCEPTS = _VIDEO
    CHANNELS = {
        "wagFrequency": ("Hz", 0.8),
        "amplitude": ("degrees", 0.7),
        "direction": ("degrees", 0.9),
        "asymmetry": ("ratio", 0.6),
    }

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "tail",
            "Queue",
            "Fréquence de battement, amplitude, direction, asymétrie.",
            clock=clock,
            source=source,
            estimator=estimator,
        )

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        t = self._seconds()
        return {
            "wagFrequency": abs(math.sin(t)) * 5,
            "amplitude": self._source.random() * 90,
            "direction": self._source.random() * 180 - 90,
            "asymmetry": self._source.random() * 0.5,
        }


class EarsEngine(EstimatedEngine):
    """Ear position (1 = up, 0 = flat), micro-movements, rapid variations."""

    ACCEPTS = _VIDEO
    CHANNELS = {
        "position": ("up/flat", 0.8),
        "microMovements": ("intensity", 0.7),
        "rapidVariations": ("boolean", 0.9),
    }

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "ears",
            "Oreilles",
            "Position, micro-mouvements, variations rapides.",
            clock=clock,
            source=source,
            estimator=estimator,
        )

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {
            "position": 1.0 if self._source.random() < 0.5 else 0.0,
            "microMovements": self._source.random(),
            "rapidVariations": 1.0 if self._source.random() < 0.2 else 0.0,
        }


class HeadGazeEngine(EstimatedEngine):
    """Head orientation, gaze stability, sudden movements."""

    ACCEPTS = _VIDEO
    CHANNELS = {
        "orientation": ("degrees", 0.8),
        "stability": ("ratio", 0.7),
        "suddenMovements": ("boolean", 0.9),
    }

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        source: ValueSource | None = None,
        estimator: Estimator | None = None,
    ) -> None:
        super().__init__(
            "headGaze",
            "Tête et regard",
            "Orientation, stabilité, mouvements brusques.",
            clock=clock,
            source=source,
            estimator=estimator,
        )

    def _simulate(self, signal: Signal) -> Mapping[str, float]:
        return {
            "orientation": self._source.random() * 360,
            "stability": 1 - self._source.random() * 0.5,
            "suddenMovements": 1.0 if self._source.random() < 0.3 else 0.0,
        }
