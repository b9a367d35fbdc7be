"""
Redis connection pool for circuit breaker state.

Every gateway process reads and writes the same STATUS_API_* keys through
this pool, which is what makes the breaker distributed. The pool is created
on first use and shared for the life of the process.
"""

from __future__ import annotations

import asyncio
import threading

import redis.asyncio as redis

from shared.config.logging import SERVICE_NAME, get_logger
from shared.config.settings import REDIS_URL, settings

logger = get_logger(__name__)


_redis_pool: redis.Redis | None = None
_redis_pool_lock: asyncio.Lock | None = None
_pool_lock_init = threading.Lock()


def _get_pool_lock() -> asyncio.Lock:
    """
    Lazily create the asyncio lock guarding pool creation.

    The threading lock makes sure only one asyncio.Lock is ever created.
    """
    global _redis_pool_lock
    if _redis_pool_lock is None:
        with _pool_lock_init:
            if _redis_pool_lock is None:
                _redis_pool_lock = asyncio.Lock()
    return _redis_pool_lock


def _create_pool(url: str) -> redis.Redis:
    return redis.from_url(
        url,
        max_connections=settings.redis_pool_max_connections,
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout,
        socket_timeout=settings.redis_socket_timeout,
        health_check_interval=30,
        client_name=SERVICE_NAME,
    )


async def get_redis_pool() -> redis.Redis:
    """Shared async Redis client; the circuit breaker's default provider."""
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    async with _get_pool_lock():
        if _redis_pool is None:
            _redis_pool = _create_pool(REDIS_URL)
            logger.info(
                "Redis pool initialized",
                max_connections=settings.redis_pool_max_connections,
                socket_timeout=settings.redis_socket_timeout,
            )
    return _redis_pool


async def close_redis_pool() -> None:
    """Close the shared pool. Call on process shutdown."""
    global _redis_pool, _redis_pool_lock

    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis pool closed")
    _redis_pool_lock = None
