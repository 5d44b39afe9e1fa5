"""Issue dispatcher — posts formatted alerts to the GitLab issues API."""

from __future__ import annotations

from types import TracebackType

import httpx
import structlog

from alertrelay.core.config import Settings
from alertrelay.exceptions import DispatchError
from alertrelay.relay.types import IssueRequest

logger = structlog.get_logger(__name__)


def issues_url(settings: Settings) -> str:
    """Destination URL for new issues.

    Plain concatenation of the configured parts; nothing is URL-encoded,
    so each part must already be a valid URL segment.
    """
    return settings.gitlab_url + settings.gitlab_api_prefix + settings.gitlab_project_id + "/issues"


class IssueDispatcher:
    """Sends IssueRequests to GitLab, one attempt per request.

    The destination's status code is not interpreted: a non-2xx reply is
    logged and its body returned like any other. Only transport failures
    raise ``DispatchError``.

    Usage::

        async with IssueDispatcher(settings) as dispatcher:
            body = await dispatcher.dispatch(issue)
    """

    def __init__(self, settings: Settings) -> None:
        self._url = issues_url(settings)
        self._token = settings.gitlab_access_token
        self._verify = settings.gitlab_verify_ssl
        self._timeout = settings.gitlab_timeout_secs
        self._http: httpx.AsyncClient | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def connected(self) -> bool:
        """Whether the HTTP client is active."""
        return self._http is not None and not self._http.is_closed

    async def connect(self) -> None:
        """Create the httpx async client."""
        if self.connected:
            return
        self._http = httpx.AsyncClient(
            verify=self._verify,
            timeout=httpx.Timeout(self._timeout),
        )

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> IssueDispatcher:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def dispatch(self, issue: IssueRequest) -> bytes:
        """POST the issue and return the raw response body.

        Raises:
            DispatchError: Connection, TLS, timeout, or read failure.
        """
        if not self.connected:
            await self.connect()
        if self._http is None:
            raise DispatchError("HTTP client not connected")

        headers = {
            "Content-Type": "application/json",
            "PRIVATE-TOKEN": self._token.get_secret_value(),
        }
        try:
            response = await self._http.post(
                self._url,
                content=issue.model_dump_json(),
                headers=headers,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DispatchError(
                f"GitLab request to {self._url} failed: {type(exc).__name__}: {exc}"
            ) from exc

        if not response.is_success:
            logger.warning(
                "gitlab_non_success_status",
                url=self._url,
                status=response.status_code,
                body=response.text[:200],
            )
        return response.content
