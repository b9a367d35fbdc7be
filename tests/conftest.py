"""
Pytest configuration and fixtures for gateway tests.

Redis, the secret store and the Razorpay HTTP client are replaced by
in-memory doubles so tests never touch the network.
"""

import fnmatch
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shared.config.constants import CircuitThresholds, MandateType
from payment_gateway.razorpay.accounts import AccountManager
from payment_gateway.razorpay.circuit_breaker import RedisCircuitBreakerStore
from payment_gateway.razorpay.client import RazorpayAPIError, RazorpayClient
from payment_gateway.razorpay.credentials import CredentialResolver
from payment_gateway.razorpay.retry import RetryEngine, RetryPolicy
from payment_gateway.razorpay.service import RazorpayService
from payment_gateway.razorpay.webhook import WebhookVerifier


WEBHOOK_SECRET = "whsec_test_secret"

DEFAULT_SECRETS = {
    ("razorpay", "upi_key_id"): "rzp_test_upi123",
    ("razorpay", "upi_key_secret"): "upi_secret",
    ("razorpay", "emandate_key_id"): "rzp_test_emandate456",
    ("razorpay", "emandate_key_secret"): "emandate_secret",
    ("razorpay", "webhook_secret"): WEBHOOK_SECRET,
}


class FakeRedis:
    """
    In-memory stand-in for redis.asyncio.Redis (decode_responses=True).

    Supports the commands the circuit breaker uses. TTLs are recorded,
    not enforced.
    """

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False
        self.commands: list[str] = []

    def _check(self, command: str) -> None:
        self.commands.append(command)
        if self.fail:
            raise RedisConnectionError("Redis unavailable")

    async def get(self, key):
        self._check("GET")
        return self.data.get(key)

    async def set(self, key, value, ex=None, keepttl=False):
        self._check("SET")
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex
        elif not keepttl:
            self.ttls.pop(key, None)
        return True

    async def delete(self, *keys):
        self._check("DEL")
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def keys(self, pattern="*"):
        self._check("KEYS")
        return [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]


class FakeSecretStore:
    """Dict-backed SecretStore that counts lookups."""

    def __init__(self, secrets=None):
        self.secrets = dict(DEFAULT_SECRETS if secrets is None else secrets)
        self.calls: list[tuple[str, str]] = []
        self.error: Exception | None = None

    async def get_secret(self, namespace, key):
        self.calls.append((namespace, key))
        if self.error is not None:
            raise self.error
        return self.secrets.get((namespace, key))


class RecordingSleep:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay):
        self.delays.append(delay)


def api_error(status_code, code="SERVER_ERROR", description="Razorpay error"):
    """Build a RazorpayAPIError as the client raises it."""
    return RazorpayAPIError(status_code=status_code, code=code, description=description)


def customer_payload(customer_id="cust_123", name="Asha Rao", email="asha@example.com", contact="9876543210"):
    return {
        "id": customer_id,
        "entity": "customer",
        "name": name,
        "email": email,
        "contact": contact,
        "gstin": None,
        "notes": [],
        "created_at": 1700000000,
    }


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def thresholds():
    return CircuitThresholds(failure_count_threshold=3, time_to_expire_seconds=900)


@pytest.fixture
def breaker_store(fake_redis, thresholds):
    async def provider():
        return fake_redis

    return RedisCircuitBreakerStore(redis_provider=provider, thresholds=lambda _name: thresholds)


@pytest.fixture
def secret_store():
    return FakeSecretStore()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_engine(breaker_store, recording_sleep):
    return RetryEngine(breaker_store, sleep=recording_sleep)


@pytest.fixture
def razorpay_client():
    """RazorpayClient double; async methods are AsyncMocks via the spec."""
    client = MagicMock(spec=RazorpayClient)
    client.mandate_type = MandateType.UPI
    return client


@pytest.fixture
def account_manager(secret_store, razorpay_client):
    return AccountManager(
        CredentialResolver(secret_store),
        client_factory=lambda _credentials, _mandate_type: razorpay_client,
    )


@pytest.fixture
def service(account_manager, retry_engine, secret_store):
    return RazorpayService(
        accounts=account_manager,
        engine=retry_engine,
        webhook_verifier=WebhookVerifier(secret_store),
        default_policy=RetryPolicy(max_retries=3, retry_delay_ms=1000, backoff_multiplier=2.0),
    )
