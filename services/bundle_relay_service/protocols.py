"""
Protocols for Bundle Relay Service.

Defines the interfaces used for dependency injection. The admission pipeline
and broadcast coordinator depend on these protocols, not on concrete
implementations.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx


class HttpClientProtocol(Protocol):
    """Protocol for the backend HTTP client."""

    async def post(
        self,
        url: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | httpx.Timeout | None = None,
    ) -> httpx.Response:
        """Send a POST request with a JSON body."""
        ...


class CredentialStoreProtocol(Protocol):
    """Protocol for the external API key store."""

    async def find_owners(self, api_key: str) -> list[str]:
        """Return every owner whose API key equals ``api_key`` exactly."""
        ...


class ErrorReporterProtocol(Protocol):
    """Protocol for the error-tracking collaborator."""

    def capture_exception(self, exc: BaseException, **context: Any) -> None:
        """Report an exception with optional context attributes."""
        ...
