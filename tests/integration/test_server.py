"""Integration tests for the canisense MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from canisense.analysis.engines.registry import ENGINE_IDS
from canisense.analysis.estimators import FixedClock, ScriptedSource, StaticEstimator
from canisense.analysis.pipeline import AnalysisPipeline
from canisense.core.config.analysis import AnalysisConfig
from canisense.core.server.app import create_app
from conftest import T0, make_landmarks


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result):
    """Decode the JSON body of a tool result."""
    content = getattr(result, "content", result)
    return json.loads(content[0].text)


ALL_EXPECTED_TOOLS = [
    "health_check",
    "list_engines",
    "process_signal",
    "get_analysis",
    "get_metrics",
    "reset_analysis",
]


@pytest.fixture
def pipeline():
    return AnalysisPipeline(
        AnalysisConfig.all_engines(),
        clock=FixedClock(T0),
        source=ScriptedSource([0.6]),
        estimators={"vocalSignature": StaticEstimator({"growling": 0.999})},
    )


@pytest.fixture
def client(pipeline):
    """MCP client connected to a server sharing the deterministic pipeline."""
    return Client(create_app(pipeline_override=pipeline))


def test_server_starts_and_lists_tools(client):
    """Server should start and expose all registered tools."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_reports_engines(client):
    async def _check():
        async with client:
            body = _payload(await client.call_tool("health_check", {}))
            assert body["status"] == "ok"
            assert body["engines_total"] == 16
            assert body["engines_active"] == 16
            assert body["locale"] == "en"
    _run(_check())


def test_list_engines_in_registration_order(client):
    async def _check():
        async with client:
            engines = _payload(await client.call_tool("list_engines", {}))
            assert [e["id"] for e in engines] == list(ENGINE_IDS)
            assert engines[0]["accepts"] == ["video"]
    _run(_check())


def test_audio_signal_then_analysis(client):
    async def _check():
        async with client:
            processed = _payload(
                await client.call_tool(
                    "process_signal",
                    {
                        "signal_type": "audio",
                        "samples": [0.1, -0.2, 0.3, -0.4],
                        "sample_rate": 16000,
                        "timestamp": T0,
                    },
                )
            )
            assert processed["signal_type"] == "audio"
            names = [m["name"] for m in processed["metrics"]]
            assert names[:4] == ["averageVolume", "peaks", "prolongedSilence", "growling"]

            analysis = _payload(await client.call_tool("get_analysis", {"include_latent_state": True}))
            assert analysis["synthetic_state"] in {"Calme", "Excité", "Stressé", "Mixte"}
            assert "Growling detected." in analysis["explanation"]
            assert set(analysis["latent_state"]) == {"activation", "tension", "vigilance", "fatigue"}
            assert len(analysis["metrics"]) == 5
    _run(_check())


def test_video_signal_accepted(client):
    async def _check():
        async with client:
            processed = _payload(
                await client.call_tool(
                    "process_signal",
                    {"signal_type": "video", "pixels": [0] * 16, "width": 2, "height": 2},
                )
            )
            assert "agitation" in [m["name"] for m in processed["metrics"]]
    _run(_check())


def test_invalid_signal_type_is_an_error(client):
    async def _check():
        async with client:
            with pytest.raises(Exception, match="signal_type"):
                await client.call_tool("process_signal", {"signal_type": "smell"})
    _run(_check())


def test_get_metrics_and_reset(client, pipeline):
    async def _check():
        async with client:
            await client.call_tool("process_signal", {"signal_type": "context", "context": {}})
            metrics = _payload(await client.call_tool("get_metrics", {"engine_id": "baseline"}))
            assert [m["name"] for m in metrics] == ["baselineActivation"]

            body = _payload(await client.call_tool("reset_analysis", {}))
            assert body["status"] == "reset"
            assert len(body["active_engines"]) == 16
    _run(_check())
    assert pipeline.get_all_metrics() == []


def test_unknown_engine_metrics_is_an_error(client):
    async def _check():
        async with client:
            with pytest.raises(Exception, match="Unknown engine"):
                await client.call_tool("get_metrics", {"engine_id": "whiskers"})
    _run(_check())


def test_app_built_from_environment(monkeypatch):
    monkeypatch.setenv("ACTIVE_ENGINES", '["tail"]')
    monkeypatch.setenv("LOCALE", "xx")

    async def _check():
        async with Client(create_app()) as client:
            body = _payload(await client.call_tool("health_check", {}))
            assert body["engines_active"] == 1
            assert body["locale"] == "en"
    _run(_check())


class _SlowPoseBackend:
    """Pose backend that yields to the loop mid-inference."""

    async def estimate(self, frame):
        await asyncio.sleep(0.05)
        return make_landmarks()


def test_overlapping_signals_are_serialized():
    pipeline = AnalysisPipeline(
        AnalysisConfig(active_engines=frozenset({"bodyPosture"})),
        clock=FixedClock(T0),
        pose_backend=_SlowPoseBackend(),
    )
    video = {"signal_type": "video", "pixels": [0] * 16, "width": 2, "height": 2}

    async def _check():
        async with Client(create_app(pipeline_override=pipeline)) as client:
            results = await asyncio.gather(
                client.call_tool("process_signal", video),
                client.call_tool("process_signal", video),
            )
            return [len(_payload(r)["metrics"]) for r in results]

    assert _run(_check()) == [3, 3]
    assert len(pipeline.get_all_metrics()) == 6
