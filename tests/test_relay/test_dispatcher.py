"""Tests for IssueDispatcher — URL building, headers, status handling, transport errors."""

from __future__ import annotations

import json
import socket
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from alertrelay.core.config import Settings
from alertrelay.exceptions import DispatchError
from alertrelay.relay.dispatcher import IssueDispatcher, issues_url
from alertrelay.relay.types import IssueRequest

# ── Helpers ─────────────────────────────────────────────────────


def _settings(**kw: object) -> Settings:
    defaults: dict[str, object] = {
        "port": ":8080",
        "gitlabURL": "https://gitlab.test",
        "gitlabAPIPrefix": "/api/v4/projects/",
        "gitlabAccessToken": "glpat-secret",
        "gitlabProjectID": "42",
    }
    defaults.update(kw)
    return Settings.model_validate(defaults)


def _issue() -> IssueRequest:
    return IssueRequest(title="ALERTMANAGER -> Namespace:ns Node:n", description="body")


def _mock_response(status_code: int = 201, content: bytes = b'{"iid": 1}') -> httpx.Response:
    """Build a mock httpx.Response."""
    return httpx.Response(
        status_code=status_code,
        content=content,
        request=httpx.Request("POST", "https://gitlab.test/api/v4/projects/42/issues"),
    )


def _closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestIssuesUrl:
    def test_concatenation(self) -> None:
        assert issues_url(_settings()) == "https://gitlab.test/api/v4/projects/42/issues"

    def test_no_encoding(self) -> None:
        url = issues_url(_settings(gitlabProjectID="group%2Fproject", gitlabAPIPrefix="/p/"))
        assert url == "https://gitlab.test/p/group%2Fproject/issues"

    def test_no_separator_added(self) -> None:
        url = issues_url(_settings(gitlabAPIPrefix="/api/v4/projects"))
        assert url == "https://gitlab.test/api/v4/projects42/issues"


class TestIssueDispatcherConnect:
    async def test_connect_creates_client(self) -> None:
        dispatcher = IssueDispatcher(_settings())
        assert not dispatcher.connected
        await dispatcher.connect()
        assert dispatcher.connected
        await dispatcher.close()

    async def test_close_clears_client(self) -> None:
        dispatcher = IssueDispatcher(_settings())
        await dispatcher.connect()
        await dispatcher.close()
        assert not dispatcher.connected

    async def test_close_is_safe_when_not_connected(self) -> None:
        dispatcher = IssueDispatcher(_settings())
        await dispatcher.close()  # should not raise

    async def test_context_manager(self) -> None:
        async with IssueDispatcher(_settings()) as dispatcher:
            assert dispatcher.connected
        assert not dispatcher.connected

    async def test_verification_disabled_by_default(self) -> None:
        with patch("alertrelay.relay.dispatcher.httpx.AsyncClient") as mock_client:
            await IssueDispatcher(_settings()).connect()
        assert mock_client.call_args.kwargs["verify"] is False

    async def test_verification_enabled_by_flag(self) -> None:
        with patch("alertrelay.relay.dispatcher.httpx.AsyncClient") as mock_client:
            await IssueDispatcher(_settings(gitlabVerifySSL=True)).connect()
        assert mock_client.call_args.kwargs["verify"] is True

    async def test_timeout_applied(self) -> None:
        with patch("alertrelay.relay.dispatcher.httpx.AsyncClient") as mock_client:
            await IssueDispatcher(_settings(gitlabTimeoutSecs=2.5)).connect()
        assert mock_client.call_args.kwargs["timeout"] == httpx.Timeout(2.5)


class TestIssueDispatcherDispatch:
    async def test_posts_issue(self) -> None:
        dispatcher = IssueDispatcher(_settings())
        await dispatcher.connect()
        try:
            with patch.object(dispatcher._http, "post", new_callable=AsyncMock) as mock_post:  # type: ignore[union-attr]
                mock_post.return_value = _mock_response()
                body = await dispatcher.dispatch(_issue())
            assert body == b'{"iid": 1}'
            mock_post.assert_awaited_once()
            url = mock_post.call_args[0][0]
            assert url == "https://gitlab.test/api/v4/projects/42/issues"
            headers = mock_post.call_args[1]["headers"]
            assert headers["Content-Type"] == "application/json"
            assert headers["PRIVATE-TOKEN"] == "glpat-secret"
            sent = json.loads(mock_post.call_args[1]["content"])
            assert sent == {"title": "ALERTMANAGER -> Namespace:ns Node:n", "description": "body"}
        finally:
            await dispatcher.close()

    async def test_lazy_connect(self) -> None:
        dispatcher = IssueDispatcher(_settings())
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _mock_response()
            await dispatcher.dispatch(_issue())
        assert dispatcher.connected
        await dispatcher.close()

    @pytest.mark.parametrize("status", [400, 401, 404, 500])
    async def test_non_success_status_returns_body(self, status: int) -> None:
        dispatcher = IssueDispatcher(_settings())
        await dispatcher.connect()
        try:
            with patch.object(dispatcher._http, "post", new_callable=AsyncMock) as mock_post:  # type: ignore[union-attr]
                mock_post.return_value = _mock_response(status, b'{"message": "nope"}')
                body = await dispatcher.dispatch(_issue())
            assert body == b'{"message": "nope"}'
        finally:
            await dispatcher.close()

    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("connection refused"),
            httpx.ConnectTimeout("timed out"),
            httpx.ReadError("reset by peer"),
            httpx.UnsupportedProtocol("no scheme"),
        ],
    )
    async def test_transport_errors_raise(self, error: Exception) -> None:
        dispatcher = IssueDispatcher(_settings())
        await dispatcher.connect()
        try:
            with patch.object(dispatcher._http, "post", new_callable=AsyncMock) as mock_post:  # type: ignore[union-attr]
                mock_post.side_effect = error
                with pytest.raises(DispatchError, match="gitlab.test") as excinfo:
                    await dispatcher.dispatch(_issue())
            assert excinfo.value.__cause__ is error
            mock_post.assert_awaited_once()
        finally:
            await dispatcher.close()

    async def test_raises_when_client_missing(self) -> None:
        dispatcher = IssueDispatcher(_settings())
        with patch.object(dispatcher, "connect", new_callable=AsyncMock):
            with pytest.raises(DispatchError, match="not connected"):
                await dispatcher.dispatch(_issue())

    async def test_token_not_in_error(self) -> None:
        dispatcher = IssueDispatcher(_settings())
        await dispatcher.connect()
        try:
            with patch.object(dispatcher._http, "post", new_callable=AsyncMock) as mock_post:  # type: ignore[union-attr]
                mock_post.side_effect = httpx.ConnectError("connection refused")
                with pytest.raises(DispatchError) as excinfo:
                    await dispatcher.dispatch(_issue())
            assert "glpat-secret" not in str(excinfo.value)
        finally:
            await dispatcher.close()

    async def test_connection_refused(self) -> None:
        port = _closed_port()
        settings = _settings(gitlabURL=f"http://127.0.0.1:{port}", gitlabTimeoutSecs=2)
        async with IssueDispatcher(settings) as dispatcher:
            with pytest.raises(DispatchError, match="ConnectError"):
                await dispatcher.dispatch(_issue())
