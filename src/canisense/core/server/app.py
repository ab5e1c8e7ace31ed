"""canisense MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from canisense.analysis.interpretation import supported_locales
from canisense.analysis.pipeline import AnalysisPipeline
from canisense.core.config.analysis import AnalysisConfig
from canisense.core.config.settings import get_settings
from canisense.tools.analysis_tools import register_analysis_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    pipeline_override: AnalysisPipeline | None = None,
    config_override: AnalysisConfig | None = None,
) -> FastMCP:
    """Create and configure the canisense MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Resolves the analysis configuration (override > YAML file > environment)
    3. Builds the analysis pipeline
    4. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "canisense",
        instructions=(
            "Behavioral-state inference for dog observation sessions. "
            "Feed captured video, audio and context signals, then ask for "
            "the interpreted state (Calme, Excité, Stressé, Mixte) with "
            "its confidence and the dominant signals behind it."
        ),
    )

    # --- Analysis pipeline ---
    if pipeline_override is not None:
        pipeline = pipeline_override
    else:
        config = config_override or AnalysisConfig.from_settings(settings)
        if settings.locale not in supported_locales():
            logger.warning("Unsupported locale %r; falling back to 'en'", settings.locale)
            locale = "en"
        else:
            locale = settings.locale
        pipeline = AnalysisPipeline(config, locale=locale)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "canisense",
            "version": VERSION,
            "engines_total": len(pipeline.get_engines()),
            "engines_active": len(pipeline.get_active_engines()),
            "debug": pipeline.config.enable_debug,
            "locale": pipeline.locale,
        }

    register_analysis_tools(server, pipeline)
    logger.info("Analysis tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
