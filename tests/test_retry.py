"""
Tests for the retry engine and retry policy.

Tests verify:
- Attempt bound and exponential delay sequence
- Permanent errors surface immediately without counting
- Circuit trips mid-call and short-circuits later calls
- Success closes the circuit
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from shared.config.constants import CircuitThresholds
from shared.utils.exceptions import (
    CircuitOpenError,
    PermanentProviderError,
    TransientProviderError,
)
from payment_gateway.razorpay.circuit_breaker import RedisCircuitBreakerStore
from payment_gateway.razorpay.retry import RetryEngine, RetryPolicy

from tests.conftest import api_error


API = "razorpay_upi"


class TestRetryPolicy:
    """Tests for RetryPolicy validation and overrides."""

    def test_delay_sequence(self):
        policy = RetryPolicy(max_retries=3, retry_delay_ms=1000, backoff_multiplier=2.0)

        assert [policy.delay_for(attempt) for attempt in range(3)] == [1.0, 2.0, 4.0]

    def test_merged_keeps_unspecified_fields(self):
        policy = RetryPolicy(max_retries=3, retry_delay_ms=1000, backoff_multiplier=2.0)

        merged = policy.merged(max_retries=1, retry_delay_ms=None)

        assert merged == RetryPolicy(max_retries=1, retry_delay_ms=1000, backoff_multiplier=2.0)
        assert policy.max_retries == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retries": -1},
            {"retry_delay_ms": 0},
            {"backoff_multiplier": 0.5},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)

    def test_from_settings_uses_configured_defaults(self):
        policy = RetryPolicy.from_settings()

        assert policy == RetryPolicy(max_retries=3, retry_delay_ms=1000, backoff_multiplier=2.0)


class TestRetryEngine:
    """Tests for RetryEngine.execute."""

    @pytest.mark.asyncio
    async def test_success_returns_result_and_closes_circuit(self, retry_engine, breaker_store):
        await breaker_store.record_failure(API)
        operation = AsyncMock(return_value={"id": "cust_1"})

        result = await retry_engine.execute(operation, api_name=API)

        assert result == {"id": "cust_1"}
        assert await breaker_store.get_record(API) is None

    @pytest.mark.asyncio
    async def test_transient_errors_retried_with_backoff(self, fake_redis, recording_sleep):
        """k retries mean k+1 attempts and delays d, d*m, ..., d*m^(k-1)."""

        async def provider():
            return fake_redis

        store = RedisCircuitBreakerStore(
            redis_provider=provider,
            thresholds=lambda _name: CircuitThresholds(failure_count_threshold=100, time_to_expire_seconds=900),
        )
        engine = RetryEngine(store, sleep=recording_sleep)
        operation = AsyncMock(side_effect=api_error(500))

        with pytest.raises(TransientProviderError) as exc_info:
            await engine.execute(
                operation,
                api_name=API,
                policy=RetryPolicy(max_retries=3, retry_delay_ms=100, backoff_multiplier=3.0),
            )

        assert operation.await_count == 4
        assert recording_sleep.delays == pytest.approx([0.1, 0.3, 0.9])
        assert exc_info.value.attempts == 4
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, retry_engine, breaker_store, recording_sleep):
        operation = AsyncMock(side_effect=[httpx.ConnectError("connection refused"), {"id": "order_1"}])

        result = await retry_engine.execute(operation, api_name=API)

        assert result == {"id": "order_1"}
        assert operation.await_count == 2
        assert recording_sleep.delays == [1.0]
        assert await breaker_store.get_record(API) is None

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried_or_counted(self, retry_engine, breaker_store, recording_sleep):
        operation = AsyncMock(
            side_effect=api_error(400, code="BAD_REQUEST_ERROR", description="The id provided does not exist")
        )

        with pytest.raises(PermanentProviderError) as exc_info:
            await retry_engine.execute(operation, api_name=API)

        assert operation.await_count == 1
        assert recording_sleep.delays == []
        assert exc_info.value.message == "The id provided does not exist"
        assert exc_info.value.code == "BAD_REQUEST_ERROR"
        assert await breaker_store.get_record(API) is None

    @pytest.mark.asyncio
    async def test_underlying_error_is_chained(self, retry_engine):
        underlying = api_error(404, code="NOT_FOUND_ERROR", description="Not found")
        operation = AsyncMock(side_effect=underlying)

        with pytest.raises(PermanentProviderError) as exc_info:
            await retry_engine.execute(operation, api_name=API)

        assert exc_info.value.__cause__ is underlying

    @pytest.mark.asyncio
    async def test_circuit_trips_mid_call(self, retry_engine, breaker_store):
        """Threshold 3 stops the retry loop after the third counted failure."""
        operation = AsyncMock(side_effect=api_error(503))

        with pytest.raises(TransientProviderError) as exc_info:
            await retry_engine.execute(
                operation,
                api_name=API,
                policy=RetryPolicy(max_retries=5, retry_delay_ms=10, backoff_multiplier=1.0),
            )

        assert operation.await_count == 3
        assert exc_info.value.attempts == 3
        assert await breaker_store.is_open(API)

    @pytest.mark.asyncio
    async def test_open_circuit_short_circuits(self, retry_engine, breaker_store):
        for _ in range(3):
            await breaker_store.record_failure(API)
        operation = AsyncMock()

        with pytest.raises(CircuitOpenError) as exc_info:
            await retry_engine.execute(operation, api_name=API)

        operation.assert_not_awaited()
        assert exc_info.value.user_message == (
            "Razorpay temporarily disabled due to repeated failures. Please try again later."
        )

    @pytest.mark.asyncio
    async def test_circuit_opened_elsewhere_stops_retries(self, breaker_store):
        """Another process tripping the circuit during backoff rejects the next attempt."""

        async def sleep_while_other_process_fails(_delay):
            await breaker_store.record_failure(API)
            await breaker_store.record_failure(API)

        engine = RetryEngine(breaker_store, sleep=sleep_while_other_process_fails)
        operation = AsyncMock(side_effect=httpx.ConnectError("connection reset"))

        with pytest.raises(CircuitOpenError) as exc_info:
            await engine.execute(operation, api_name=API)

        assert operation.await_count == 1
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_zero_retries_is_single_shot(self, retry_engine, recording_sleep):
        operation = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(TransientProviderError):
            await retry_engine.execute(
                operation,
                api_name=API,
                policy=RetryPolicy(max_retries=0),
            )

        assert operation.await_count == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_redis_outage_does_not_block_calls(self, retry_engine, fake_redis):
        fake_redis.fail = True
        operation = AsyncMock(return_value={"ok": True})

        assert await retry_engine.execute(operation, api_name=API) == {"ok": True}

    @pytest.mark.asyncio
    async def test_default_sleep_is_asyncio_sleep(self, breaker_store):
        import asyncio

        engine = RetryEngine(breaker_store)

        assert engine._sleep is asyncio.sleep
