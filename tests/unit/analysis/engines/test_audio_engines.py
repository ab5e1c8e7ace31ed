"""Tests for the audio engines."""

from __future__ import annotations

import asyncio
import math

import pytest

from canisense.analysis.engines.audio import RhythmEngine, SoundActivityEngine, VocalSignatureEngine
from canisense.analysis.estimators import ScriptedSource
from conftest import audio_signal, video_signal


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _values(metrics):
    return {m.name: m.value for m in metrics}


class TestSoundActivity:
    def test_volume_peaks_from_samples(self, clock):
        metrics = _run(SoundActivityEngine(clock=clock).process(audio_signal([0.1, -0.2, 0.3, -0.4])))
        values = _values(metrics)
        assert values["averageVolume"] == pytest.approx(math.sqrt(0.075) * 100)
        assert values["peaks"] == pytest.approx(48.0)
        assert values["prolongedSilence"] == 0.0

    def test_silence_detected(self, clock):
        values = _values(_run(SoundActivityEngine(clock=clock).process(audio_signal([0.001] * 64))))
        assert values["prolongedSilence"] == 1.0

    def test_units_and_reliability(self, clock):
        metrics = _run(SoundActivityEngine(clock=clock).process(audio_signal()))
        assert [(m.name, m.unit, m.reliability) for m in metrics] == [
            ("averageVolume", "dB", 0.8),
            ("peaks", "dB", 0.9),
            ("prolongedSilence", "boolean", 0.7),
        ]

    def test_empty_buffer_produces_nothing(self, clock):
        assert _run(SoundActivityEngine(clock=clock).process(audio_signal([]))) == []

    def test_ignores_video(self, clock):
        assert _run(SoundActivityEngine(clock=clock).process(video_signal())) == []


class TestVocalSignature:
    def test_four_probabilities(self, clock, source):
        metrics = _run(VocalSignatureEngine(clock=clock, source=source).process(audio_signal()))
        assert [m.name for m in metrics] == ["barking", "whining", "growling", "panting"]
        assert all(m.unit == "probability" for m in metrics)
        assert [m.reliability for m in metrics] == [0.8, 0.7, 0.9, 0.6]
        assert all(m.value == pytest.approx(0.6) for m in metrics)

    def test_ignores_video(self, clock, source):
        assert _run(VocalSignatureEngine(clock=clock, source=source).process(video_signal())) == []
        assert source.draws == 0


class TestRhythm:
    def test_channels(self, clock, source):
        values = _values(_run(RhythmEngine(clock=clock, source=source).process(audio_signal())))
        assert values == pytest.approx({"repetition": 0.6, "irregularity": 0.6, "bursts": 0.0})

    def test_bursts(self, clock):
        engine = RhythmEngine(clock=clock, source=ScriptedSource([0.2]))
        assert _values(_run(engine.process(audio_signal())))["bursts"] == 1.0
