"""Webhook receiver — aiohttp server that relays Alertmanager posts to GitLab.

Exposes a single route:
- ``* /`` → decode the alert, file it as a GitLab issue, reply 200 (empty)
  or 500 with ``Error: <message>``.
"""

from __future__ import annotations

import ssl

import structlog
from aiohttp import ClientPayloadError, web
from aiohttp.http_exceptions import HttpProcessingError

from alertrelay.core.config import Settings
from alertrelay.exceptions import ConfigError, DecodeError, RelayError
from alertrelay.relay.dispatcher import IssueDispatcher
from alertrelay.relay.transformer import transform

logger = structlog.get_logger(__name__)


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _error_response(exc: RelayError) -> web.Response:
    logger.error(
        "relay_request_failed",
        error_type=type(exc).__name__,
        error=str(exc),
        cause=repr(exc.__cause__) if exc.__cause__ else None,
    )
    return web.Response(status=500, text=f"Error: {exc}\n")


async def _read_body(request: web.Request) -> bytes:
    try:
        return await request.read()
    except web.HTTPRequestEntityTooLarge as exc:
        raise DecodeError(
            f"request body exceeds {request.app['settings'].max_body_bytes} bytes"
        ) from exc
    except (OSError, ClientPayloadError, HttpProcessingError) as exc:
        raise DecodeError(f"failed to read request body: {exc}") from exc


async def _handle_alert(request: web.Request) -> web.Response:
    dispatcher: IssueDispatcher = request.app["dispatcher"]
    try:
        raw = await _read_body(request)
        logger.info(
            "alert_received",
            method=request.method,
            remote=request.remote,
            body=_text(raw),
        )
        issue = transform(raw)
        reply = await dispatcher.dispatch(issue)
    except RelayError as exc:
        return _error_response(exc)

    logger.info("gitlab_response", title=issue.title, body=_text(reply))
    return web.Response()


async def _close_dispatcher(app: web.Application) -> None:
    dispatcher: IssueDispatcher = app["dispatcher"]
    await dispatcher.close()


def create_web_app(
    settings: Settings,
    dispatcher: IssueDispatcher | None = None,
) -> web.Application:
    """Create the aiohttp web application.

    Settings are read once here and travel with the app; edits to the
    config file take effect on restart.
    """
    app = web.Application(client_max_size=settings.max_body_bytes)
    app["settings"] = settings
    app["dispatcher"] = dispatcher or IssueDispatcher(settings)
    app.router.add_route("*", "/", _handle_alert)
    app.on_cleanup.append(_close_dispatcher)
    return app


def build_ssl_context(settings: Settings) -> ssl.SSLContext | None:
    """Server-side TLS context for the listener, or None when TLS is off.

    Independent of ``gitlabVerifySSL``, which only affects the outbound
    client.

    Raises:
        ConfigError: The certificate or key cannot be loaded.
    """
    if not settings.ssl_enabled:
        return None
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    try:
        context.load_cert_chain(settings.ssl_cert_file_name, settings.ssl_key_file_name)
    except OSError as exc:
        raise ConfigError(
            f"cannot load TLS material {settings.ssl_cert_file_name}, "
            f"{settings.ssl_key_file_name}: {exc}"
        ) from exc
    return context


async def start_server(
    settings: Settings,
    dispatcher: IssueDispatcher | None = None,
) -> web.AppRunner:
    """Start the webhook server. Returns the runner for cleanup.

    Raises:
        ConfigError: TLS is enabled but its material cannot be loaded.
        OSError: The listen address cannot be bound.
    """
    ssl_context = build_ssl_context(settings)
    app = create_web_app(settings, dispatcher)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(
        runner,
        settings.listen_host or None,
        settings.listen_port,
        ssl_context=ssl_context,
    )
    try:
        await site.start()
    except OSError:
        await runner.cleanup()
        raise
    return runner
