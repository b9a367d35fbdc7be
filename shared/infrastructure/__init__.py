"""
Infrastructure module: Redis, secrets and correlation IDs.

Provides:
- Async Redis pool shared by circuit breaker state (redis_pool.py)
- Secret store used for Razorpay credentials (secrets.py)
- Correlation IDs for log records (correlation.py)
"""

from shared.infrastructure.redis_pool import get_redis_pool, close_redis_pool
from shared.infrastructure.secrets import SecretStore, SettingsSecretStore
from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    correlation_scope,
    get_request_id,
)

__all__ = [
    "get_redis_pool",
    "close_redis_pool",
    "SecretStore",
    "SettingsSecretStore",
    "CorrelationIdFilter",
    "correlation_scope",
    "get_request_id",
]
