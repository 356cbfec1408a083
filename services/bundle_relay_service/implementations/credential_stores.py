"""Credential store adapters for API key lookup."""

from __future__ import annotations

import hmac
from collections.abc import Mapping

import redis.asyncio as aioredis

from services.bundle_relay_service.logging_utils import create_service_logger
from services.bundle_relay_service.protocols import CredentialStoreProtocol

logger = create_service_logger("bundle_relay.credential_store")


class RedisCredentialStore(CredentialStoreProtocol):
    """API keys stored in Redis as one set of owners per key.

    ``<prefix><api_key>`` holds the ids of every account the key was issued
    to, so a duplicated key shows up as more than one member.
    """

    def __init__(self, client: aioredis.Redis, key_prefix: str = "relay:apikey:") -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, key_prefix: str = "relay:apikey:") -> RedisCredentialStore:
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client, key_prefix)

    async def find_owners(self, api_key: str) -> list[str]:
        members = await self._client.smembers(f"{self._key_prefix}{api_key}")
        return sorted(members)

    async def aclose(self) -> None:
        try:
            await self._client.aclose()
        except Exception as e:
            logger.error(f"Error closing credential store Redis client: {e}", exc_info=True)


class StaticCredentialStore(CredentialStoreProtocol):
    """In-process owner to API key mapping, for development and tests."""

    def __init__(self, api_keys: Mapping[str, str]) -> None:
        self._api_keys = dict(api_keys)

    async def find_owners(self, api_key: str) -> list[str]:
        return [
            owner
            for owner, key in self._api_keys.items()
            if hmac.compare_digest(key.encode(), api_key.encode())
        ]
