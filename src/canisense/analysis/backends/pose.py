"""Pose-estimation backend contract and its loading lifecycle.

A backend is any object that turns a video frame into anatomical landmarks
(MediaPipe Pose layout: 33 points, normalized x/y). Loading is asynchronous;
until it completes the owning engine simply produces nothing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol, Sequence, runtime_checkable

from canisense.analysis.types import VideoFrame

logger = logging.getLogger(__name__)

POSE_LANDMARK_COUNT = 33

# MediaPipe Pose landmark indices used by the posture engine
NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_ANKLE = 27
RIGHT_ANKLE = 28


@dataclass(frozen=True)
class Landmark:
    """One anatomical point in normalized image coordinates."""

    x: float
    y: float
    visibility: float = 1.0


@runtime_checkable
class PoseBackend(Protocol):
    """Abstract interface for a loaded pose model."""

    async def estimate(self, frame: VideoFrame) -> Sequence[Landmark] | None:
        """Landmarks for the frame, or None/empty when nothing was detected."""
        ...


PoseLoader = Callable[[], Awaitable[PoseBackend]]


class BackendState(str, Enum):
    LOADING = "loading"
    READY = "ready"


class BackendHandle:
    """Two-state holder for an asynchronously loaded backend.

    The state is read synchronously; the load task flips it to READY from a
    done-callback. A failed load is logged and the handle stays in LOADING
    for good, with the exception kept in ``error``.

    Usage::

        handle = BackendHandle(loader=load_pose_model)
        handle.start()              # needs a running event loop
        if handle.ready:
            landmarks = await handle.backend.estimate(frame)
    """

    def __init__(
        self,
        *,
        backend: PoseBackend | None = None,
        loader: PoseLoader | None = None,
        label: str = "pose",
    ) -> None:
        self.label = label
        self._backend = backend
        self._loader = loader
        self._task: asyncio.Task | None = None
        self.error: BaseException | None = None

    @property
    def state(self) -> BackendState:
        return BackendState.READY if self._backend is not None else BackendState.LOADING

    @property
    def ready(self) -> bool:
        return self._backend is not None

    @property
    def backend(self) -> PoseBackend | None:
        return self._backend

    @property
    def failed(self) -> bool:
        return self.error is not None

    def start(self) -> bool:
        """Schedule the load on the running loop; returns False if not possible yet.

        A load left unfinished on another (closed) loop is abandoned and
        restarted here. A load that completed or failed is never retried.
        """
        if self._backend is not None or self._loader is None:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        if self._task is not None:
            if self._task.get_loop() is loop or self._task.done():
                return False
            logger.warning("Restarting %s backend load abandoned on another event loop", self.label)
            self._task = None
        self._task = loop.create_task(self._loader())
        self._task.add_done_callback(self._on_loaded)
        logger.debug("Started loading %s backend", self.label)
        return True

    async def wait_ready(self) -> bool:
        """Await an in-flight load; returns whether the backend is usable."""
        self.start()
        task = self._task
        if task is not None:
            if not task.done():
                await asyncio.wait({task})
            self._on_loaded(task)
        return self.ready

    def _on_loaded(self, task: asyncio.Task) -> None:
        if task is not self._task or self._backend is not None or self.error is not None:
            return
        if task.cancelled():
            # a later start() may try again
            self._task = None
            logger.warning("Loading of %s backend was cancelled", self.label)
            return
        exc = task.exception()
        if exc is not None:
            self.error = exc
            logger.error("Failed to load %s backend: %s", self.label, exc)
            return
        self._backend = task.result()
        logger.info("%s backend loaded", self.label.capitalize())
