"""
Centralized gateway exceptions for consistent error handling.

Every failure a caller can observe from the payment gateway is one of these
classes. Each carries a message that is safe to show to end users and an
HTTP status that an outer web layer can map it to.

Usage:
    from shared.utils.exceptions import ValidationError, CircuitOpenError

    raise ValidationError("Amount is mandatory.", field="amount")
    raise CircuitOpenError("razorpay_upi")
"""

from typing import Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class GatewayError(Exception):
    """
    Base exception with automatic logging.

    All gateway exceptions inherit from this class to ensure consistent
    logging and a user-safe message.
    """

    http_status: int = 500
    retryable: bool = False
    counts_as_failure: bool = False

    def __init__(
        self,
        message: str,
        log_level: str = "warning",
        code: str | None = None,
        **log_context: Any,
    ):
        self.message = message
        self.code = code
        self.context = log_context

        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(
            message,
            error_type=type(self).__name__,
            code=code,
            **log_context,
        )

        super().__init__(message)

    @property
    def user_message(self) -> str:
        """Message safe to show to end users."""
        return self.message


# =============================================================================
# Caller Errors (never reach the network, never counted)
# =============================================================================


class ValidationError(GatewayError):
    """
    Input validation error (400).

    Raised before any network call for malformed request payloads.

    Usage:
        raise ValidationError("Amount is mandatory.", field="amount")
    """

    http_status = 400

    def __init__(self, message: str, **log_context: Any):
        super().__init__(message, log_level="warning", **log_context)


class ConfigurationError(GatewayError):
    """
    Missing or invalid gateway configuration (500).

    Fatal for the current call and never retried.

    Usage:
        raise ConfigurationError("Razorpay credentials not configured for UPI")
    """

    http_status = 500

    def __init__(self, message: str, **log_context: Any):
        super().__init__(message, log_level="error", **log_context)

    @property
    def user_message(self) -> str:
        # Configuration detail may name secret keys; keep it out of responses
        return "Payment service is not available right now. Please try again later."


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(GatewayError):
    """
    Error returned by (or on the way to) the payment provider.

    Attributes:
        status_code: HTTP status from the provider, if any.
        code: Provider error code, if any.
        attempts: Number of attempts made before giving up.
    """

    http_status = 502

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        attempts: int = 1,
        log_level: str = "warning",
        **log_context: Any,
    ):
        self.status_code = status_code
        self.attempts = attempts
        super().__init__(
            message,
            log_level=log_level,
            code=code,
            status_code=status_code,
            attempts=attempts,
            **log_context,
        )


class TransientProviderError(ProviderError):
    """
    Provider unavailable: network errors, timeouts, 5xx and 403.

    Retried up to the retry policy and counted against the circuit.
    """

    http_status = 503
    retryable = True
    counts_as_failure = True


class PermanentProviderError(ProviderError):
    """
    Provider rejected the request: 4xx business errors (duplicate, not found,
    bad request).

    Surfaced immediately, never retried, never counted.
    """

    http_status = 422


# =============================================================================
# Circuit Breaker Errors
# =============================================================================


class CircuitOpenError(GatewayError):
    """
    Raised when the distributed circuit is open and the call is rejected
    without touching the network.

    Usage:
        raise CircuitOpenError("razorpay_upi")
    """

    http_status = 503
    DEFAULT_MESSAGE = (
        "Razorpay temporarily disabled due to repeated failures. "
        "Please try again later."
    )

    def __init__(self, api_name: str, **log_context: Any):
        self.api_name = api_name
        super().__init__(
            self.DEFAULT_MESSAGE,
            log_level="warning",
            api_name=api_name,
            **log_context,
        )
