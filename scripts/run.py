#!/usr/bin/env python3
"""Relay entrypoint — loads settings and serves the webhook until stopped.

Usage::

    # Config from /app/config/config.yaml
    python scripts/run.py

    # Config from elsewhere
    ALERT_RELAY_CONFIG=config/config.yaml python scripts/run.py
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys

import structlog

from alertrelay.core.config import DEFAULT_CONFIG_PATH, load_settings
from alertrelay.core.logging import setup_logging
from alertrelay.exceptions import ConfigError
from alertrelay.relay.server import start_server

logger = structlog.get_logger(__name__)

CONFIG_ENV_VAR = "ALERT_RELAY_CONFIG"


async def run(config_path: str | None = None) -> int:
    """Start the webhook server and run until interrupted."""
    path = config_path or os.environ.get(CONFIG_ENV_VAR) or str(DEFAULT_CONFIG_PATH)

    try:
        settings = load_settings(path)
    except ConfigError as exc:
        setup_logging()
        logger.error("config_load_failed", path=path, error=str(exc))
        return 1

    setup_logging(settings.logging)
    logger.info(
        "relay_starting",
        config=path,
        listen=settings.port,
        tls=settings.ssl_enabled,
        gitlab_url=settings.gitlab_url,
        project_id=settings.gitlab_project_id,
        verify_gitlab_tls=settings.gitlab_verify_ssl,
    )

    try:
        runner = await start_server(settings)
    except ConfigError as exc:
        logger.error("tls_setup_failed", error=str(exc))
        return 1
    except OSError as exc:
        logger.error("listen_failed", listen=settings.port, error=str(exc))
        return 1

    logger.info("relay_running", host=settings.listen_host or "*", port=settings.listen_port)

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("relay_shutting_down")
    await runner.cleanup()
    logger.info("relay_stopped")
    return 0


def main() -> None:
    code = asyncio.run(run())
    sys.exit(code)


if __name__ == "__main__":
    main()
