"""Observation session — drives a pipeline from a stream of captured signals.

The capture layer (camera, microphone) lives outside the core; it hands
signals to the session, which feeds them to the pipeline one at a time and
produces the final interpretation when the observation stops.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from datetime import datetime
from typing import AsyncIterable, Iterable, Union

from canisense.analysis.pipeline import AnalysisPipeline
from canisense.analysis.types import HistoryEntry, Signal, UserFeedback, UserInterpretation

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.2  # 5 ticks per second

SignalStream = Union[AsyncIterable[Signal], Iterable[Signal]]


class ObservationSession:
    """Serializes all pipeline calls for one observation.

    Args:
        pipeline: Pipeline to feed.
        interval: Seconds to wait between ticks (0 disables pacing).
        tick_timeout: Optional bound, in seconds, on one ``process_signal``
            call. A tick that exceeds it is logged and skipped.
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        *,
        interval: float = DEFAULT_INTERVAL,
        tick_timeout: float | None = None,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if tick_timeout is not None and tick_timeout <= 0:
            raise ValueError("tick_timeout must be > 0")
        self.pipeline = pipeline
        self.interval = interval
        self.tick_timeout = tick_timeout
        self.ticks = 0
        self.timeouts = 0
        self.feedbacks: list[UserFeedback] = []
        self._stopped = False
        self._analysis_id: str | None = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def run(self, signals: SignalStream, *, max_ticks: int | None = None) -> int:
        """Consume signals until the stream ends, ``max_ticks`` or ``stop()``.

        Returns:
            Number of ticks processed during this call.
        """
        processed = 0
        if self._stopped or max_ticks == 0:
            return processed
        async with aclosing(_aiter(signals)) as stream:
            async for signal in stream:
                await self._tick(signal)
                processed += 1
                if max_ticks is not None and processed >= max_ticks:
                    break
                if self.interval:
                    await asyncio.sleep(self.interval)
                if self._stopped:
                    break
        return processed

    async def _tick(self, signal: Signal) -> None:
        self.ticks += 1
        if self.tick_timeout is None:
            await self.pipeline.process_signal(signal)
            return
        try:
            await asyncio.wait_for(self.pipeline.process_signal(signal), self.tick_timeout)
        except asyncio.TimeoutError:
            self.timeouts += 1
            logger.warning(
                "Tick %d (%s signal) exceeded %.3fs; skipped",
                self.ticks,
                signal.type,
                self.tick_timeout,
            )

    def stop(self, when: datetime | None = None) -> tuple[UserInterpretation, HistoryEntry]:
        """End the observation and return the final interpretation.

        The returned ``HistoryEntry`` is what the caller may persist and feed
        back into the next session's recent-history snapshot.
        """
        self._stopped = True
        self._analysis_id = str(self.pipeline.now())
        interpretation = self.pipeline.get_analysis()
        entry = HistoryEntry.from_interpretation(interpretation, when)
        logger.info(
            "Observation stopped after %d ticks (%d timed out): %s",
            self.ticks,
            self.timeouts,
            interpretation.synthetic_state.value,
        )
        return interpretation, entry

    def feedback(self, correct: bool, comment: str | None = None) -> UserFeedback:
        """Record whether the owner agrees with the interpretation from ``stop()``.

        Raises:
            RuntimeError: If the observation has not been stopped yet.
        """
        if self._analysis_id is None:
            raise RuntimeError("No finished analysis to give feedback on; call stop() first")
        feedback = UserFeedback(
            analysis_id=self._analysis_id,
            timestamp=self.pipeline.now(),
            correct=bool(correct),
            comment=comment or None,
        )
        self.feedbacks.append(feedback)
        logger.info(
            "Feedback on analysis %s: %s", feedback.analysis_id, "correct" if correct else "incorrect"
        )
        return feedback


async def _aiter(signals: SignalStream):
    if hasattr(signals, "__aiter__"):
        async for signal in signals:
            yield signal
    else:
        for signal in signals:
            yield signal
