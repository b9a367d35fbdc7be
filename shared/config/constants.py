"""
Centralized constants for the payment gateway.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import MandateType, ExternalApi, ApiStatus

    if status == ApiStatus.FAILED:
        ...
"""

from dataclasses import dataclass
from enum import Enum
from typing import Final

from shared.config.settings import settings


# =============================================================================
# Mandate Types
# =============================================================================


class MandateType(str, Enum):
    """
    Isolated Razorpay merchant account contexts.

    Each member owns its own credentials and client handle.
    """

    UPI = "UPI"
    E_MANDATE = "E_MANDATE"

    @property
    def secret_prefix(self) -> str:
        """Prefix used for this account's keys in the secret store."""
        return _SECRET_PREFIXES[self]


_SECRET_PREFIXES: Final[dict[MandateType, str]] = {
    MandateType.UPI: "upi",
    MandateType.E_MANDATE: "emandate",
}


# =============================================================================
# Secret Store Keys
# =============================================================================


class SecretKeys:
    """Secret store namespace and key names for Razorpay."""

    NAMESPACE: Final[str] = "razorpay"
    KEY_ID_SUFFIX: Final[str] = "key_id"
    KEY_SECRET_SUFFIX: Final[str] = "key_secret"
    WEBHOOK_SECRET: Final[str] = "webhook_secret"


# =============================================================================
# External API Circuit Breaker Registry
# =============================================================================


class ApiStatus:
    """Circuit breaker status values stored in Redis."""

    SUCCESS: Final[str] = "SUCCESS"
    FAILED: Final[str] = "FAILED"


class ExternalApi:
    """Logical external API names used as circuit breaker keys."""

    RAZORPAY: Final[str] = "razorpay"

    @staticmethod
    def for_mandate(mandate_type: MandateType) -> str:
        """
        Circuit breaker name for a mandate type.

        With per-mandate breakers a UPI outage does not disable E_MANDATE
        calls; otherwise every mandate type shares the "razorpay" key.
        """
        if settings.razorpay_breaker_per_mandate:
            return f"{ExternalApi.RAZORPAY}_{mandate_type.value.lower()}"
        return ExternalApi.RAZORPAY


CIRCUIT_KEY_PREFIX: Final[str] = "STATUS_API_"


@dataclass(frozen=True, slots=True)
class CircuitThresholds:
    """Failure thresholds for one external API."""

    failure_count_threshold: int
    time_to_expire_seconds: int

    def __post_init__(self) -> None:
        if self.failure_count_threshold < 1:
            raise ValueError("failure_count_threshold must be >= 1")
        if self.time_to_expire_seconds < 1:
            raise ValueError("time_to_expire_seconds must be >= 1")


EXTERNAL_API_VALUES: Final[dict[str, CircuitThresholds]] = {
    ExternalApi.RAZORPAY: CircuitThresholds(
        failure_count_threshold=settings.razorpay_failure_threshold,
        time_to_expire_seconds=settings.razorpay_failure_ttl_seconds,
    ),
}


def registered_api_names() -> list[str]:
    """All breaker names known to this process, in a stable order."""
    if settings.razorpay_breaker_per_mandate:
        return [ExternalApi.for_mandate(mt) for mt in MandateType]
    return [ExternalApi.RAZORPAY]


def thresholds_for(api_name: str) -> CircuitThresholds:
    """
    Thresholds for a breaker name.

    Per-mandate names ("razorpay_upi") inherit from their provider entry.
    """
    if api_name in EXTERNAL_API_VALUES:
        return EXTERNAL_API_VALUES[api_name]
    provider = api_name.split("_", 1)[0]
    return EXTERNAL_API_VALUES.get(provider, EXTERNAL_API_VALUES[ExternalApi.RAZORPAY])


# =============================================================================
# Razorpay Payment Methods
# =============================================================================


class PaymentMethods:
    """Order payment methods that need special validation."""

    # Bank-transfer methods debit a bank account and must carry bank_account
    BANK_TRANSFER: Final[frozenset[str]] = frozenset({"emandate", "nach"})
