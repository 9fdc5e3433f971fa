"""JSON-over-HTTPS transport to an AMP instance.

Wraps an httpx.Client with the fixed timeout, optional upstream proxy
(httpx tunnels HTTPS through it with CONNECT) and API-token handling.
Transport failures are translated to HttpError.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from a11y_harness.config import AmpSettings

from .errors import HttpError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json;charset=UTF-8"


class AmpClient:
    """Thin synchronous client for the /api/cont endpoints."""

    def __init__(
        self,
        settings: AmpSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings or AmpSettings()
        client_kwargs: dict[str, Any] = {
            "base_url": self.settings.base_url,
            "timeout": self.settings.timeout_seconds,
            "headers": {"Content-Type": JSON_CONTENT_TYPE},
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        elif self.settings.proxy_url:
            client_kwargs["proxy"] = self.settings.proxy_url
        self._client = httpx.Client(**client_kwargs)

    @property
    def host(self) -> str:
        return self.settings.host

    def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        include_token: bool = True,
    ) -> Any:
        return self._request("GET", path, params=params, include_token=include_token)

    def post(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        include_token: bool = True,
    ) -> Any:
        return self._request("POST", path, body=body, include_token=include_token)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> AmpClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        include_token: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body, or None for an empty body."""
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        if include_token and self.settings.api_token:
            query["apiToken"] = self.settings.api_token
        url = f"{self.settings.base_url}{path}"
        content = json.dumps(body) if body else None

        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, path, params=query, content=content)
        except httpx.TimeoutException as e:
            raise HttpError(
                f"Timed out after {self.settings.timeout_seconds}s while attempting to "
                f"{method} data from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise HttpError(f"Request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise HttpError(
                f"Unexpectedly encountered a non-200 status code "
                f"({response.status_code} {response.reason_phrase}) while attempting to "
                f"{method} data from {url}",
                status_code=response.status_code,
            )

        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise HttpError(f"Invalid JSON in response from {url}: {e}") from e
