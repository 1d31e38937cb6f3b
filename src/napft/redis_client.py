"""Redis connection pool used by rate limiting and readiness checks."""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> None:
    """Create the Redis client. No connection is opened until first use."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client.

    Raises:
        RuntimeError: If init_redis() has not been called (tests, CLI tools).
    """
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def redis_status() -> str:
    """Return "ok" or a short error string for the readiness probe."""
    try:
        await get_redis().ping()
    except Exception as exc:  # noqa: BLE001
        return f"error: {exc}"
    return "ok"
