"""MCP tools exposing the analysis pipeline."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from canisense.analysis.types import Signal, now_ms

if TYPE_CHECKING:
    from canisense.analysis.pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _build_signal(
    signal_type: str,
    *,
    samples: list[float] | None,
    sample_rate: int | None,
    pixels: list[int] | None,
    width: int | None,
    height: int | None,
    context: dict[str, Any] | None,
    timestamp: int | None,
) -> Signal:
    """Assemble a Signal from flat tool arguments, validating the payload."""
    ts = timestamp if timestamp is not None else now_ms()
    if signal_type == "audio":
        if samples is None or not sample_rate:
            raise ValueError("audio signals need 'samples' and a positive 'sample_rate'")
        return Signal.audio(samples, sample_rate, ts)
    if signal_type == "video":
        if pixels is None or not width or not height:
            raise ValueError("video signals need 'pixels', 'width' and 'height'")
        return Signal.video(bytes(pixels), width, height, ts)
    if signal_type == "context":
        return Signal.context(context or {}, ts)
    raise ValueError("signal_type must be one of: video | audio | context")


def _engine_summary(engine: Any) -> dict[str, Any]:
    return {
        "id": engine.id,
        "name": engine.name,
        "description": engine.description,
        "is_active": engine.is_active,
        "accepts": sorted(engine.accepts),
        "metrics_accumulated": len(engine.get_metrics()),
    }


def register_analysis_tools(mcp: FastMCP, pipeline: AnalysisPipeline) -> None:
    """Register pipeline tools on the MCP server. All tools share one pipeline.

    FastMCP may serve requests concurrently; a pipeline must not see
    overlapping calls, so every tool that runs or reads a full pass holds
    ``lock``.
    """
    lock = asyncio.Lock()

    @mcp.tool
    def list_engines() -> list[dict[str, Any]]:
        """List every engine in registration order with its activation flag."""
        return [_engine_summary(e) for e in pipeline.get_engines()]

    @mcp.tool
    async def process_signal(
        signal_type: str,
        samples: list[float] | None = None,
        sample_rate: int | None = None,
        pixels: list[int] | None = None,
        width: int | None = None,
        height: int | None = None,
        context: dict[str, Any] | None = None,
        timestamp: int | None = None,
    ) -> dict[str, Any]:
        """Feed one captured signal to the active engines.

        Args:
            signal_type: 'video', 'audio' or 'context'.
            samples: Audio samples in [-1, 1] (audio only).
            sample_rate: Audio sample rate in Hz (audio only).
            pixels: RGBA bytes as integers 0-255 (video only).
            width: Frame width in pixels (video only).
            height: Frame height in pixels (video only).
            context: Free-form context payload, e.g. {"history": [...], "profile": {...}}.
            timestamp: Capture time in ms since epoch; defaults to now.
        """
        signal = _build_signal(
            signal_type,
            samples=samples,
            sample_rate=sample_rate,
            pixels=pixels,
            width=width,
            height=height,
            context=context,
            timestamp=timestamp,
        )
        async with lock:
            metrics = await pipeline.process_signal(signal)
        return {
            "signal_type": signal.type,
            "timestamp": signal.timestamp,
            "metrics": [m.to_dict() for m in metrics],
        }

    @mcp.tool
    async def get_analysis(include_latent_state: bool = False) -> dict[str, Any]:
        """Interpret everything observed since the last reset.

        Args:
            include_latent_state: Also return the fused latent dimensions.
        """
        async with lock:
            result = pipeline.get_analysis().to_dict()
            if include_latent_state:
                result["latent_state"] = pipeline.get_fusion().latent_state.to_dict()
        return result

    @mcp.tool
    def get_metrics(engine_id: str | None = None, limit: int = 100) -> list[dict[str, Any]]:
        """Return accumulated raw metrics (newest last), optionally for one engine.

        Args:
            engine_id: Restrict to this engine's history.
            limit: Maximum number of metrics to return.
        """
        if engine_id is not None:
            engine = pipeline.get_engine(engine_id)
            if engine is None:
                raise ValueError(f"Unknown engine id: {engine_id!r}")
            metrics = engine.get_metrics()
        else:
            metrics = pipeline.get_all_metrics()
        return [m.to_dict() for m in metrics[-limit:]] if limit > 0 else []

    @mcp.tool
    async def reset_analysis() -> dict[str, Any]:
        """Clear accumulated metrics; configuration and active engines are kept."""
        async with lock:
            pipeline.reset()
        logger.info("Pipeline reset via MCP tool")
        return {"status": "reset", "active_engines": [e.id for e in pipeline.get_active_engines()]}
