"""
Property-based tests with Hypothesis.

Covers the invariants that must hold for any input: the retry bound and
delay sequence, circuit counting, and signature verification.
"""

import asyncio
import hashlib
import hmac

import pytest
from hypothesis import given, settings, strategies as st

from shared.config.constants import CircuitThresholds
from payment_gateway.razorpay.circuit_breaker import RedisCircuitBreakerStore
from payment_gateway.razorpay.classifier import NON_COUNTED_ERROR_CODES, should_count_as_failure
from payment_gateway.razorpay.client import RazorpayClient
from payment_gateway.razorpay.retry import RetryEngine, RetryPolicy
from shared.utils.exceptions import GatewayError

from tests.conftest import FakeRedis, RecordingSleep, api_error


def make_engine(threshold):
    redis_client = FakeRedis()

    async def provider():
        return redis_client

    store = RedisCircuitBreakerStore(
        redis_provider=provider,
        thresholds=lambda _name: CircuitThresholds(failure_count_threshold=threshold, time_to_expire_seconds=900),
    )
    sleep = RecordingSleep()
    return RetryEngine(store, sleep=sleep), store, sleep


class TestRetryProperties:
    """Property: k retries give k+1 attempts with geometric delays."""

    @given(
        max_retries=st.integers(min_value=0, max_value=6),
        delay_ms=st.integers(min_value=1, max_value=5000),
        multiplier=st.floats(min_value=1.0, max_value=4.0, allow_nan=False),
    )
    @settings(max_examples=50)
    def test_attempts_and_delays(self, max_retries, delay_ms, multiplier):
        engine, _store, sleep = make_engine(threshold=1000)
        calls = []

        async def operation():
            calls.append(1)
            raise api_error(500)

        policy = RetryPolicy(max_retries=max_retries, retry_delay_ms=delay_ms, backoff_multiplier=multiplier)

        with pytest.raises(GatewayError):
            asyncio.run(engine.execute(operation, api_name="razorpay_upi", policy=policy))

        assert len(calls) == max_retries + 1
        assert sleep.delays == pytest.approx(
            [delay_ms * multiplier ** attempt / 1000 for attempt in range(max_retries)]
        )


class TestCircuitProperties:
    """Property: the circuit opens exactly at the threshold."""

    @given(threshold=st.integers(min_value=1, max_value=10), failures=st.integers(min_value=1, max_value=15))
    @settings(max_examples=50)
    def test_open_iff_threshold_reached(self, threshold, failures):
        _engine, store, _sleep = make_engine(threshold=threshold)

        async def run():
            for _ in range(failures):
                await store.record_failure("razorpay_upi")
            return await store.is_open("razorpay_upi"), await store.get_record("razorpay_upi")

        is_open, record = asyncio.run(run())

        assert is_open == (failures >= threshold)
        assert record.count == failures

    @given(code=st.sampled_from(sorted(NON_COUNTED_ERROR_CODES)), calls=st.integers(min_value=1, max_value=8))
    @settings(max_examples=30)
    def test_caller_errors_never_trip(self, code, calls):
        engine, store, _sleep = make_engine(threshold=1)

        async def operation():
            raise api_error(None, code=code)

        async def run():
            for _ in range(calls):
                with pytest.raises(GatewayError):
                    await engine.execute(operation, api_name="razorpay_upi")
            return await store.is_open("razorpay_upi")

        assert asyncio.run(run()) is False

    @given(status=st.integers(min_value=100, max_value=599))
    def test_status_counting_rule(self, status):
        assert should_count_as_failure(api_error(status)) == (status == 403 or status >= 500)


class TestSignatureProperties:
    """Property: only the exact body and secret verify."""

    @given(body=st.binary(max_size=512), secret=st.text(st.characters(blacklist_categories=("Cs",)), min_size=1, max_size=32))
    def test_valid_signature_verifies(self, body, secret):
        signature = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()

        assert RazorpayClient.verify_webhook_signature(body, signature, secret)

    @given(body=st.binary(min_size=1, max_size=512), flip=st.integers(min_value=0, max_value=511))
    def test_tampered_body_fails(self, body, flip):
        secret = "whsec_property"
        signature = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
        index = flip % len(body)
        tampered = body[:index] + bytes([body[index] ^ 0x01]) + body[index + 1:]

        assert not RazorpayClient.verify_webhook_signature(tampered, signature, secret)
