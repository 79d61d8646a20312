"""Shared Redis client for post-commit event publishing.

Redis only carries PUBLISH traffic on the market:{id} and user:{id}
channels. Balances, positions and prices live in PostgreSQL.

Publishing runs after the transaction has committed, inside the request,
so the socket timeouts are short: a dead Redis costs the caller at most
about a second and RedisEventPublisher logs the failure.
"""

import redis.asyncio as aioredis

from config.settings import settings

_CONNECT_TIMEOUT_S = 0.5
_SOCKET_TIMEOUT_S = 1.0

_publisher_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Return the process-wide client, creating it on first use."""
    global _publisher_client  # noqa: PLW0603
    if _publisher_client is None:
        _publisher_client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=_CONNECT_TIMEOUT_S,
            socket_timeout=_SOCKET_TIMEOUT_S,
            client_name="party-market-events",
        )
    return _publisher_client


async def close_redis() -> None:
    global _publisher_client  # noqa: PLW0603
    if _publisher_client is not None:
        await _publisher_client.aclose()
        _publisher_client = None
