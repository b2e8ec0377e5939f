"""GitHub Gist API connector used as the remote document store.

This module wraps ``httpx.AsyncClient`` with:
- Async support for reading, patching and creating gists
- Bounded request timeouts
- OpenTelemetry spans and request-duration metrics
- Typed errors for failed calls and for unreadable success responses

Transport failures and timeouts are not translated here; they surface as
``httpx.HTTPError`` for the caller to classify.
"""

from time import perf_counter
from typing import Any

import httpx
import structlog
from opentelemetry import metrics, trace

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter(__name__)

request_duration = meter.create_histogram(
    name="remote.request.duration",
    description="Remote document store request duration in milliseconds",
    unit="ms",
)

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_DESCRIPTION = "My Notes - synced from gistnotes"


class GistAPIError(Exception):
    """Raised when the Gist API answers with a non-success status."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Gist API error {status_code}: {message}")


class GistResponseError(Exception):
    """Raised when a successful Gist API response is not a JSON object."""


class GistConnector:
    """Async client for the subset of the Gist API the sync layer needs.

    Example:
        >>> async with GistConnector(timeout=5.0) as gists:
        ...     gist = await gists.get_gist("aabff1940df8f866")
        ...     print(list(gist["files"]))
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Gist connector.

        Args:
            base_url: API root (override for GitHub Enterprise or tests)
            timeout: Per-request timeout in seconds
            transport: Optional custom transport, e.g. ``httpx.MockTransport``
        """
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/vnd.github.v3+json"},
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    @staticmethod
    def _auth_headers(token: str | None) -> dict[str, str]:
        return {"Authorization": f"token {token}"} if token else {}

    async def _request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        span = trace.get_current_span()
        span.set_attribute("http.method", method)
        span.set_attribute("gist.authenticated", bool(token))

        start_time = perf_counter()
        try:
            response = await self.client.request(
                method, path, headers=self._auth_headers(token), json=json
            )
        finally:
            duration = (perf_counter() - start_time) * 1000
            request_duration.record(duration, {"method": method})

        span.set_attribute("http.status_code", response.status_code)

        if response.is_error:
            try:
                message = response.json().get("message", "")
            except ValueError:
                message = response.text[:200]
            logger.warning(
                "gist_request_failed",
                method=method,
                path=path,
                status=response.status_code,
                message=message,
            )
            raise GistAPIError(response.status_code, message)

        logger.debug(
            "gist_request_completed",
            method=method,
            path=path,
            status=response.status_code,
            duration_ms=round(duration, 2),
        )
        try:
            data = response.json()
        except ValueError as e:
            logger.warning("gist_response_unreadable", method=method, path=path, error=str(e))
            raise GistResponseError(f"Response body is not JSON: {e}") from e
        if not isinstance(data, dict):
            logger.warning("gist_response_unreadable", method=method, path=path)
            raise GistResponseError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    @tracer.start_as_current_span("gist.get")
    async def get_gist(self, gist_id: str, token: str | None = None) -> dict[str, Any]:
        """Fetch a gist with its files. Public and secret gists are readable without a token."""
        return await self._request("GET", f"/gists/{gist_id}", token=token)

    @tracer.start_as_current_span("gist.update_file")
    async def update_gist_file(
        self,
        gist_id: str,
        filename: str,
        content: str,
        token: str,
        description: str = DEFAULT_DESCRIPTION,
    ) -> dict[str, Any]:
        """Overwrite one file of a gist. Other files in the gist are left as they are."""
        body = {"description": description, "files": {filename: {"content": content}}}
        return await self._request("PATCH", f"/gists/{gist_id}", token=token, json=body)

    @tracer.start_as_current_span("gist.create")
    async def create_gist(
        self,
        token: str,
        filename: str,
        content: str,
        description: str = DEFAULT_DESCRIPTION,
        public: bool = False,
    ) -> dict[str, Any]:
        """Create a new gist holding a single file."""
        body = {
            "description": description,
            "public": public,
            "files": {filename: {"content": content}},
        }
        return await self._request("POST", "/gists", token=token, json=body)

    @tracer.start_as_current_span("gist.user")
    async def get_authenticated_user(self, token: str) -> dict[str, Any]:
        """Return the account a credential belongs to."""
        return await self._request("GET", "/user", token=token)
