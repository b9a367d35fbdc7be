"""
Distributed circuit breaker for external payment APIs.

Breaker state lives in Redis so every process instance sees the same
failures:

    STATUS_API_<api_name> = {"status": "SUCCESS" | "FAILED",
                             "count": 2,
                             "last_failed_at": "2024-01-01T10:00:00+00:00"}

1. CLOSED: no record, or a record with status SUCCESS
2. OPEN: status FAILED once count reaches the threshold; calls fail fast
3. The record expires time_to_expire_seconds after the first failure, which
   closes the circuit again. A successful call deletes it immediately.

Redis problems never block payments: reads fail open and writes are dropped
with a warning.

Usage:
    store = RedisCircuitBreakerStore()

    if await store.is_open("razorpay_upi"):
        raise CircuitOpenError("razorpay_upi")
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.config.constants import (
    CIRCUIT_KEY_PREFIX,
    ApiStatus,
    CircuitThresholds,
    registered_api_names,
    thresholds_for,
)
from shared.config.logging import get_logger
from shared.infrastructure.redis_pool import get_redis_pool

logger = get_logger(__name__)


RedisProvider = Callable[[], Awaitable[redis.Redis]]


class CorruptCircuitRecord(ValueError):
    """Stored breaker payload is not a valid record."""


@dataclass
class CircuitRecord:
    """Failure tracking record for one external API."""

    status: str
    count: int
    last_failed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == ApiStatus.FAILED

    def to_json(self) -> str:
        return json.dumps({
            "status": self.status,
            "count": self.count,
            "last_failed_at": self.last_failed_at.isoformat() if self.last_failed_at else None,
        })

    @classmethod
    def from_json(cls, raw: str) -> "CircuitRecord":
        try:
            payload = json.loads(raw)
            status = payload["status"]
            count = int(payload["count"])
            last_failed_at = payload.get("last_failed_at")
            return cls(
                status=status,
                count=count,
                last_failed_at=datetime.fromisoformat(last_failed_at) if last_failed_at else None,
            )
        except (TypeError, KeyError, ValueError, AttributeError) as e:
            raise CorruptCircuitRecord(f"Invalid circuit record: {raw!r}") from e


class RedisCircuitBreakerStore:
    """
    Redis-backed breaker state shared by all gateway processes.

    Updates are read-modify-write without a lock; a lost increment under
    concurrent failures only delays the trip by one failure.
    """

    def __init__(
        self,
        redis_provider: RedisProvider = get_redis_pool,
        thresholds: Callable[[str], CircuitThresholds] = thresholds_for,
    ):
        self._redis_provider = redis_provider
        self._thresholds = thresholds

    @staticmethod
    def key(api_name: str) -> str:
        return f"{CIRCUIT_KEY_PREFIX}{api_name}"

    async def get_record(self, api_name: str) -> CircuitRecord | None:
        """Current record, or None when the circuit has no recent failures."""
        redis_client = await self._redis_provider()
        raw = await redis_client.get(self.key(api_name))
        if raw is None:
            return None
        return CircuitRecord.from_json(raw)

    async def is_open(self, api_name: str) -> bool:
        try:
            record = await self.get_record(api_name)
        except (RedisError, OSError, CorruptCircuitRecord) as e:
            logger.warning(
                "Circuit breaker check failed, allowing call",
                api_name=api_name,
                error=str(e),
            )
            return False

        return record is not None and record.is_open

    async def record_success(self, api_name: str) -> None:
        try:
            redis_client = await self._redis_provider()
            await redis_client.delete(self.key(api_name))
        except (RedisError, OSError) as e:
            logger.warning(
                "Failed to reset circuit breaker after success",
                api_name=api_name,
                error=str(e),
            )

    async def record_failure(
        self,
        api_name: str,
        thresholds: CircuitThresholds | None = None,
    ) -> CircuitRecord | None:
        """
        Count one failure and return the updated record.

        The TTL is set by the first failure and kept by later ones, so the
        circuit closes a fixed time after the failure streak started.
        """
        thresholds = thresholds or self._thresholds(api_name)
        key = self.key(api_name)
        now = datetime.now(timezone.utc)

        try:
            redis_client = await self._redis_provider()
            raw = await redis_client.get(key)

            existing = None
            if raw is not None:
                try:
                    existing = CircuitRecord.from_json(raw)
                except CorruptCircuitRecord:
                    logger.warning("Overwriting corrupt circuit record", api_name=api_name)

            if existing is None:
                record = CircuitRecord(status=ApiStatus.SUCCESS, count=1, last_failed_at=now)
                # A threshold of 1 trips on the very first failure
                if record.count >= thresholds.failure_count_threshold:
                    record.status = ApiStatus.FAILED
                await redis_client.set(key, record.to_json(), ex=thresholds.time_to_expire_seconds)
            else:
                record = CircuitRecord(
                    status=existing.status,
                    count=existing.count + 1,
                    last_failed_at=now,
                )
                if record.count >= thresholds.failure_count_threshold:
                    record.status = ApiStatus.FAILED
                await redis_client.set(key, record.to_json(), keepttl=True)

        except (RedisError, OSError) as e:
            logger.warning(
                "Failed to record circuit breaker failure",
                api_name=api_name,
                error=str(e),
            )
            return None

        if record.is_open and (existing is None or not existing.is_open):
            logger.warning(
                "Circuit breaker OPEN",
                api_name=api_name,
                failure_count=record.count,
                threshold=thresholds.failure_count_threshold,
            )
        else:
            logger.debug("Circuit breaker failure recorded", api_name=api_name, failure_count=record.count)

        return record

    async def reset(self, api_name: str) -> None:
        """Manually close a circuit."""
        redis_client = await self._redis_provider()
        await redis_client.delete(self.key(api_name))
        logger.info("Circuit breaker manually reset", api_name=api_name)

    async def get_all_statuses(self) -> dict[str, str]:
        """
        Status of every known breaker for monitoring.

        Registered APIs default to SUCCESS; any stored record found in Redis
        overrides its entry.
        """
        statuses = {name: ApiStatus.SUCCESS for name in registered_api_names()}

        redis_client = await self._redis_provider()
        keys = await redis_client.keys(f"{CIRCUIT_KEY_PREFIX}*")
        for key in sorted(keys):
            api_name = key[len(CIRCUIT_KEY_PREFIX):]
            raw = await redis_client.get(key)
            if raw is None:
                continue
            try:
                statuses[api_name] = CircuitRecord.from_json(raw).status
            except CorruptCircuitRecord:
                logger.warning("Skipping corrupt circuit record", api_name=api_name)

        return statuses
