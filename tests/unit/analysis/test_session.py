"""Tests for ObservationSession."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import pytest

from canisense.analysis.engines.base import BaseEngine
from canisense.analysis.estimators import FixedClock, ScriptedSource
from canisense.analysis.pipeline import AnalysisPipeline
from canisense.analysis.session import ObservationSession
from canisense.analysis.types import SyntheticState
from canisense.core.config.analysis import AnalysisConfig
from conftest import T0, audio_signal, video_signal


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class SlowEngine(BaseEngine):
    """Emits a metric, then stalls well past any sensible tick budget."""

    def __init__(self):
        super().__init__("slow", "Slow", "Never finishes in time.")

    async def _compute(self, signal):
        self._emit("agitation", 1.0)
        await asyncio.sleep(5)


class QuickEngine(BaseEngine):
    def __init__(self):
        super().__init__("quick", "Quick", "Always in time.")

    async def _compute(self, signal):
        self._emit("growling", 0.9, "probability", 0.9)


def _pipeline(active=("soundActivity",)):
    return AnalysisPipeline(
        AnalysisConfig(active_engines=frozenset(active)),
        clock=FixedClock(T0),
        source=ScriptedSource([0.6]),
    )


class TestArguments:
    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            ObservationSession(_pipeline(), interval=-1)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            ObservationSession(_pipeline(), tick_timeout=0)


class TestRun:
    def test_consumes_sync_iterable(self):
        session = ObservationSession(_pipeline(), interval=0)
        processed = _run(session.run([audio_signal(), audio_signal(), video_signal()]))
        assert processed == 3
        assert session.ticks == 3
        assert len(session.pipeline.get_all_metrics()) == 6

    def test_consumes_async_iterable(self):
        async def stream():
            for _ in range(4):
                yield audio_signal()

        session = ObservationSession(_pipeline(), interval=0)
        assert _run(session.run(stream())) == 4

    def test_max_ticks(self):
        session = ObservationSession(_pipeline(), interval=0)
        assert _run(session.run([audio_signal()] * 10, max_ticks=2)) == 2
        assert len(session.pipeline.get_all_metrics()) == 6

    def test_stops_reading_at_max_ticks(self):
        pulled = []

        async def stream():
            for index in range(10):
                pulled.append(index)
                yield audio_signal()

        async def _go():
            signals = stream()
            try:
                return await ObservationSession(_pipeline(), interval=0).run(signals, max_ticks=2)
            finally:
                await signals.aclose()

        assert _run(_go()) == 2
        assert pulled == [0, 1]

    def test_stopped_session_reads_nothing(self):
        pulled = []

        def stream():
            for index in range(3):
                pulled.append(index)
                yield audio_signal()

        session = ObservationSession(_pipeline(), interval=0)
        session.stop()
        assert _run(session.run(stream())) == 0
        assert pulled == []

    def test_pacing_interval(self):
        session = ObservationSession(_pipeline(), interval=0.01)

        async def _timed():
            loop = asyncio.get_running_loop()
            started = loop.time()
            await session.run([audio_signal()] * 3)
            return loop.time() - started

        assert _run(_timed()) >= 0.025

    def test_no_ticks_after_stop(self):
        session = ObservationSession(_pipeline(), interval=0)
        _run(session.run([audio_signal()]))
        session.stop()
        assert session.stopped
        assert _run(session.run([audio_signal()])) == 0
        assert session.ticks == 1


class TestTimeout:
    def test_slow_tick_is_skipped(self, caplog):
        pipeline = AnalysisPipeline(
            AnalysisConfig(active_engines=frozenset({"quick", "slow"})),
            clock=FixedClock(T0),
            engines=[QuickEngine(), SlowEngine()],
        )
        session = ObservationSession(pipeline, interval=0, tick_timeout=0.05)
        with caplog.at_level(logging.WARNING, logger="canisense.analysis.session"):
            processed = _run(session.run([audio_signal()]))

        assert processed == 1
        assert session.timeouts == 1
        assert "exceeded" in caplog.text
        # the engine that finished keeps its metrics, the cancelled one has none
        assert [m.name for m in pipeline.get_engine("quick").get_metrics()] == ["growling"]
        assert pipeline.get_engine("slow").get_metrics() == []

    def test_fast_ticks_are_not_counted(self):
        session = ObservationSession(_pipeline(), interval=0, tick_timeout=5)
        _run(session.run([audio_signal()] * 2))
        assert session.timeouts == 0


class TestStop:
    def test_returns_interpretation_and_history_entry(self):
        pipeline = AnalysisPipeline(
            AnalysisConfig(active_engines=frozenset({"quick"})),
            clock=FixedClock(T0),
            engines=[QuickEngine()],
        )
        session = ObservationSession(pipeline, interval=0)
        _run(session.run([audio_signal()]))

        interpretation, entry = session.stop(when=datetime(2024, 3, 5, 14, 7, 9))
        assert interpretation.synthetic_state is SyntheticState.STRESSE
        assert entry.date == "05/03/2024 14:07:09"
        assert entry.state == "Stressé"
        assert entry.explanation == interpretation.explanation

    def test_entry_feeds_next_session_history(self):
        pipeline = AnalysisPipeline(
            AnalysisConfig(active_engines=frozenset({"quick"})),
            clock=FixedClock(T0),
            engines=[QuickEngine()],
        )
        session = ObservationSession(pipeline, interval=0)
        _run(session.run([audio_signal()]))
        _, entry = session.stop()

        follow_up = AnalysisPipeline(
            AnalysisConfig(active_engines=frozenset({"recentHistory"})),
            clock=FixedClock(T0),
            history=[entry],
        )
        metrics = _run(follow_up.process_signal(audio_signal()))
        assert metrics[0].value == 1.0


class TestFeedback:
    def test_requires_a_stopped_session(self):
        session = ObservationSession(_pipeline(), interval=0)
        with pytest.raises(RuntimeError, match="stop"):
            session.feedback(True)
        assert session.feedbacks == []

    def test_recorded_against_the_final_analysis(self, caplog):
        session = ObservationSession(_pipeline(), interval=0)
        _run(session.run([audio_signal()]))
        session.stop()

        with caplog.at_level(logging.INFO, logger="canisense.analysis.session"):
            feedback = session.feedback(False, "Playing, not stressed")

        assert feedback.analysis_id == str(T0)
        assert feedback.timestamp == T0
        assert feedback.correct is False
        assert session.feedbacks == [feedback]
        assert "incorrect" in caplog.text
        assert feedback.to_dict() == {
            "analysis_id": str(T0),
            "timestamp": T0,
            "correct": False,
            "comment": "Playing, not stressed",
        }

    def test_blank_comment_dropped(self):
        session = ObservationSession(_pipeline(), interval=0)
        session.stop()
        session.feedback(True, "")
        session.feedback(True)
        assert [f.comment for f in session.feedbacks] == [None, None]
        assert all(f.correct for f in session.feedbacks)
