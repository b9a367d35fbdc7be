"""
Retry with exponential backoff, guarded by the distributed circuit breaker.

Every attempt first checks the breaker, so a circuit opened by another
process stops this call's retries too.

Usage:
    engine = RetryEngine(RedisCircuitBreakerStore())
    customer = await engine.execute(
        lambda: client.fetch_customer("cust_123"),
        api_name="razorpay_upi",
        operation_name="fetch customer",
    )
"""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.exceptions import CircuitOpenError

from payment_gateway.razorpay.circuit_breaker import RedisCircuitBreakerStore
from payment_gateway.razorpay.classifier import (
    classify,
    extract_error_message,
    is_retryable,
    should_count_as_failure,
)

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Retry behaviour for one gateway call.

    Attributes:
        max_retries: Retries after the first attempt (0 = single shot).
        retry_delay_ms: Delay before the first retry, in milliseconds.
        backoff_multiplier: Growth factor applied per retry.
    """

    max_retries: int = 3
    retry_delay_ms: int = 1000
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_ms <= 0:
            raise ValueError("retry_delay_ms must be positive")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=settings.razorpay_max_retries,
            retry_delay_ms=settings.razorpay_retry_delay_ms,
            backoff_multiplier=settings.razorpay_backoff_multiplier,
        )

    def merged(self, **overrides: Any) -> "RetryPolicy":
        """Copy with the given fields replaced; None values are ignored."""
        return dataclasses.replace(
            self,
            **{name: value for name, value in overrides.items() if value is not None},
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (0-based)."""
        return self.retry_delay_ms * (self.backoff_multiplier ** attempt) / 1000


# =============================================================================
# Engine
# =============================================================================


class RetryEngine:
    """Runs an async operation with retries and circuit breaker bookkeeping."""

    def __init__(self, store: RedisCircuitBreakerStore, sleep: Sleep = asyncio.sleep):
        self._store = store
        self._sleep = sleep

    @property
    def store(self) -> RedisCircuitBreakerStore:
        return self._store

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        api_name: str,
        policy: RetryPolicy | None = None,
        operation_name: str = "Razorpay operation",
    ) -> T:
        """
        Run `operation` until it succeeds or the policy gives up.

        Raises:
            CircuitOpenError: The breaker was open before an attempt.
            TransientProviderError: Provider unavailable after all attempts.
            PermanentProviderError: Provider rejected the request.
        """
        policy = policy or RetryPolicy.from_settings()
        last_error: Exception | None = None

        for attempt in range(policy.max_retries + 1):
            if await self._store.is_open(api_name):
                raise CircuitOpenError(api_name, operation=operation_name) from last_error

            try:
                result = await operation()
            except Exception as e:
                last_error = e
            else:
                await self._store.record_success(api_name)
                return result

            record = None
            if should_count_as_failure(last_error):
                record = await self._store.record_failure(api_name)

            circuit_open = record.is_open if record is not None else False
            final_attempt = attempt >= policy.max_retries

            if final_attempt or circuit_open or not is_retryable(last_error):
                logger.error(
                    f"Failed to {operation_name}",
                    api_name=api_name,
                    attempts=attempt + 1,
                    circuit_open=circuit_open,
                    error=extract_error_message(last_error),
                )
                raise classify(
                    last_error,
                    attempts=attempt + 1,
                    operation=operation_name,
                    api_name=api_name,
                ) from last_error

            delay = policy.delay_for(attempt)
            logger.info(
                f"Retrying {operation_name}",
                api_name=api_name,
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                delay_seconds=delay,
            )
            await self._sleep(delay)

        # Unreachable: the final attempt always returns or raises
        raise RuntimeError(f"Retry loop for {operation_name} exited without a result")
