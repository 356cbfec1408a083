"""Rolling-window rate limits for the relay admission pipeline."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass

from limits import RateLimitItem, parse
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string

from services.bundle_relay_service.config import Settings

GLOBAL_KEY = ""


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int = 0


class RelayRateLimiter:
    """Owns both relay limits and their shared counter storage.

    Each check is a single atomic hit-and-compare against a moving window, so
    concurrent requests sharing a key cannot both consume the last slot.
    """

    def __init__(
        self,
        pre_auth_limit: RateLimitItem,
        global_limit: RateLimitItem,
        storage_uri: str = "async+memory://",
    ) -> None:
        self.pre_auth_limit = pre_auth_limit
        self.global_limit = global_limit
        self._storage = storage_from_string(storage_uri)
        self._strategy = MovingWindowRateLimiter(self._storage)

    @classmethod
    def from_settings(cls, config: Settings) -> RelayRateLimiter:
        return cls(
            pre_auth_limit=parse(config.PRE_AUTH_RATE_LIMIT),
            global_limit=parse(config.GLOBAL_RATE_LIMIT),
            storage_uri=config.RATE_LIMIT_STORAGE_URI,
        )

    async def hit_pre_auth(self, authorization: str | None) -> RateLimitDecision:
        """Count a request against the bucket of its raw Authorization header."""
        return await self._hit(self.pre_auth_limit, "pre_auth", authorization or "")

    async def hit_global(self) -> RateLimitDecision:
        """Count an authenticated request against the process-wide bucket."""
        return await self._hit(self.global_limit, "global", GLOBAL_KEY)

    async def reset(self) -> None:
        await self._storage.reset()

    async def _hit(self, item: RateLimitItem, scope: str, key: str) -> RateLimitDecision:
        if await self._strategy.hit(item, scope, key):
            return RateLimitDecision(allowed=True)
        stats = await self._strategy.get_window_stats(item, scope, key)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        return RateLimitDecision(allowed=False, retry_after_seconds=retry_after)
