"""
Outbound request gate: one request in flight, N request starts per window.

The window accounting is aiolimiter's ``AsyncLimiter`` (a leaky bucket that
holds ``max_rate`` permits and drains them over ``time_period`` seconds).
The ``asyncio.Lock`` in front of it keeps concurrency at 1 and, because
asyncio locks wake waiters in FIFO order, runs callers in submission order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from aiolimiter import AsyncLimiter

from knowledge_providers.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

WINDOW_SECONDS = 60.0


class RequestRateLimiter:
    """
    Usage::

        limiter = RequestRateLimiter.for_deployment("hosted")
        result  = await limiter.schedule(client.post, url, data=form)

    Owned by the client that creates it; there is no process-wide instance.
    """

    def __init__(self, max_rate: int, time_period: float = WINDOW_SECONDS) -> None:
        if max_rate < 1:
            raise ValueError(f"max_rate must be >= 1, got {max_rate}")
        self.max_rate    = max_rate
        self.time_period = time_period
        self._limiter    = AsyncLimiter(max_rate, time_period)
        self._lock       = asyncio.Lock()

    @classmethod
    def for_deployment(
        cls,
        deployment_type: str,
        settings: Settings | None = None,
    ) -> RequestRateLimiter:
        """Hosted endpoints get the tighter quota; self-hosted the looser one."""
        cfg = settings or default_settings
        if deployment_type == "hosted":
            rate = cfg.unstructured_hosted_rate_per_minute
        else:
            rate = cfg.unstructured_self_hosted_rate_per_minute
        return cls(max_rate=rate, time_period=WINDOW_SECONDS)

    async def schedule(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Wait for a turn and a permit, then run ``operation(*args, **kwargs)``."""
        async with self._lock:
            if not self._limiter.has_capacity():
                logger.info(
                    "Rate limit reached | max_rate=%d per %.0fs, waiting for a permit",
                    self.max_rate, self.time_period,
                )
            async with self._limiter:
                return await operation(*args, **kwargs)
