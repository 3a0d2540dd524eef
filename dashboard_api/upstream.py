"""HTTP client shared by the proxy handlers."""

import time
from typing import Any

import requests

from .logging_config import create_request_logger
from .responses import UpstreamError

USER_AGENT = "DashboardApp/1.0 (new tab dashboard proxy)"


class UpstreamClient:
    """Single-attempt JSON/text client for third-party APIs.

    There are no retries: every call is a user-triggered idempotent read and
    the widgets poll again on their own schedule.
    """

    def __init__(self, timeout: int = 30, request_id: str | None = None):
        """Initialize the client.

        Args:
            timeout: Default HTTP request timeout in seconds
            request_id: Request ID for logging context
        """
        self.timeout = timeout
        self.logger = create_request_logger("upstream", request_id)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def get(
        self,
        upstream: str,
        url: str,
        params: Any = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> requests.Response:
        """Send one GET request and return the successful response.

        Raises:
            UpstreamError: On network failure or a non-2xx status
        """
        start = time.monotonic()
        try:
            response = self.session.get(
                url, params=params, headers=headers, timeout=timeout or self.timeout
            )
        except requests.RequestException as e:
            self.logger.error(
                f"{upstream} request failed: {e}", upstream=upstream, error=str(e)
            )
            raise UpstreamError(upstream, f"{upstream} request failed: {e}") from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        self.logger.log_upstream_call(upstream, response.status_code, elapsed_ms)

        if not response.ok:
            raise UpstreamError(
                upstream,
                f"{upstream} API responded with status: {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def get_json(self, upstream: str, url: str, **kwargs) -> Any:
        response = self.get(upstream, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(upstream, f"{upstream} returned invalid JSON") from e

    def get_text(self, upstream: str, url: str, **kwargs) -> str:
        return self.get(upstream, url, **kwargs).text

    def get_bytes(self, upstream: str, url: str, **kwargs) -> bytes:
        return self.get(upstream, url, **kwargs).content
