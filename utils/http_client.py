"""
Shared httpx plumbing for the geocoding, routing and invoicing adapters.

Adapters accept an optional httpx.Client so tests can pass one built on
httpx.MockTransport; without it a short-lived client is opened per call.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from models.errors import create_upstream_error, sanitize_secret

logger = logging.getLogger(__name__)

ERROR_BODY_PREVIEW_CHARS = 200


class HttpAdapter:
    """Base class holding connection settings for one upstream provider."""

    provider = "http"

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout_seconds: float,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _secrets(self) -> tuple:
        """Values that must never appear in error messages."""
        return ()

    def _scrub(self, message: str) -> str:
        for secret in self._secrets():
            message = sanitize_secret(message, secret)
        return message

    def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Issue one HTTP request.

        Raises:
            httpx.TransportError: On network failures (callers decide on retries)
        """
        merged_headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        if headers:
            merged_headers.update(headers)

        if self._client is not None:
            return self._client.request(
                method, url, headers=merged_headers, timeout=self.timeout_seconds, **kwargs
            )

        with httpx.Client(timeout=self.timeout_seconds) as client:
            return client.request(method, url, headers=merged_headers, **kwargs)

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Issue one HTTP request and map network failures to UPSTREAM_ERROR.

        Raises:
            ToolError: UPSTREAM_ERROR on transport failures
        """
        try:
            return self._send(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{self.provider} request failed: {self._scrub(str(e))}")
            raise create_upstream_error(
                self.provider, self._scrub(str(e)) or type(e).__name__, retryable=True, original_error=e
            ) from e

    def _status_error(self, response: httpx.Response, action: str):
        """Build an UPSTREAM_ERROR for a non-success response."""
        body = self._scrub(response.text[:ERROR_BODY_PREVIEW_CHARS])
        logger.warning(f"{self.provider} {action} failed with HTTP {response.status_code}: {body}")
        retryable = response.status_code >= 500 or response.status_code == 429
        message = f"{action} failed (HTTP {response.status_code})"
        if body:
            message = f"{message}: {body}"
        return create_upstream_error(self.provider, message, retryable=retryable)

    def _json(self, response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise create_upstream_error(
                self.provider, f"{action} returned invalid JSON", retryable=True, original_error=e
            ) from e
