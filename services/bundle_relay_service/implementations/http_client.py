"""HTTP client implementation for Bundle Relay Service.

This module provides an HTTP client implementation that conforms to the
relay's HttpClientProtocol while using httpx for the actual HTTP operations.
"""

from __future__ import annotations

from typing import Any

import httpx

from services.bundle_relay_service.protocols import HttpClientProtocol


class RelayHttpClient(HttpClientProtocol):
    """HTTP client used to deliver bundles to backend endpoints.

    Returns raw httpx.Response objects; status handling is left to the caller.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Initialize the HTTP client.

        Args:
            client: The underlying httpx AsyncClient to use
        """
        self._client = client

    async def post(
        self,
        url: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | httpx.Timeout | None = None,
    ) -> httpx.Response:
        """Send POST request with a JSON body.

        Args:
            url: Target URL for the POST request
            json: JSON-serializable request body
            headers: Additional HTTP headers (optional)
            timeout: Request timeout (optional)

        Returns:
            Raw httpx Response object
        """
        return await self._client.post(
            url=url,
            json=json,
            headers=headers,
            timeout=timeout,
        )
