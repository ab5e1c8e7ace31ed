"""canisense server entry point — ``python -m canisense.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from canisense.core.config.settings import Settings, get_settings
from canisense.core.server.app import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOOPBACK_NAMES = frozenset({"localhost", "localhost.localdomain"})


def is_loopback(host: str) -> bool:
    """True for loopback names and addresses (IPv4 or IPv6)."""
    if host.lower() in LOOPBACK_NAMES:
        return True
    try:
        return ip_address(host.strip("[]")).is_loopback
    except ValueError:
        return False


def check_bind(settings: Settings) -> None:
    """Refuse a public bind unless it was opted into.

    The analysis tools carry no authentication, so anything beyond loopback
    needs ``CANISENSE_ALLOW_INSECURE_BIND=true``.
    """
    if is_loopback(settings.canisense_host):
        return
    if not settings.canisense_allow_insecure_bind:
        raise RuntimeError(
            f"Refusing to expose canisense on non-loopback host {settings.canisense_host!r}; "
            "set CANISENSE_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.warning("Binding to %s without authentication", settings.canisense_host)


def run() -> None:
    """Start the canisense MCP server over Streamable HTTP."""
    settings = get_settings()
    level = logging.getLevelName(settings.canisense_log_level.upper())
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format=LOG_FORMAT,
    )
    check_bind(settings)

    server = create_app()
    logger.info(
        "canisense listening on http://%s:%d (locale %s)",
        settings.canisense_host,
        settings.canisense_port,
        settings.locale,
    )
    server.run(
        transport="streamable-http",
        host=settings.canisense_host,
        port=settings.canisense_port,
    )


if __name__ == "__main__":
    run()
