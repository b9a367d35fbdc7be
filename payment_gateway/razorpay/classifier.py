"""
Razorpay error classification.

Decides whether a failed call counts against the circuit breaker and turns
raw client errors into the gateway exception taxonomy. Recurring payment
failures also get a descriptive, customer-facing message from a fixed
catalogue of Razorpay failure reasons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final

from shared.config.logging import get_logger
from shared.utils.exceptions import (
    GatewayError,
    PermanentProviderError,
    TransientProviderError,
)

logger = get_logger(__name__)


# Provider codes for caller mistakes; the provider itself is healthy
NON_COUNTED_ERROR_CODES: Final[frozenset[str]] = frozenset({
    "BAD_REQUEST_ERROR",
    "VALIDATION_ERROR",
    "INVALID_REQUEST_ERROR",
    "DUPLICATE_ENTRY_ERROR",
    "NOT_FOUND_ERROR",
    "UNAUTHORIZED_ERROR",
})

UNKNOWN_ERROR_MESSAGE: Final[str] = "Unknown error occurred"


# =============================================================================
# Field Extraction
# =============================================================================


def _as_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _status_code(error: BaseException) -> int | None:
    for attr in ("status_code", "status"):
        status = _as_status(getattr(error, attr, None))
        if status is not None:
            return status

    response = getattr(error, "response", None)
    if response is not None:
        return _as_status(getattr(response, "status_code", None))
    return None


def _error_body_field(error: BaseException, name: str) -> Any:
    body = getattr(error, "error", None)
    if isinstance(body, dict):
        return body.get(name)
    return getattr(body, name, None)


def _error_code(error: BaseException) -> str | None:
    code = _error_body_field(error, "code") or getattr(error, "code", None)
    return code if isinstance(code, str) and code else None


def extract_error_message(error: BaseException) -> str:
    """Best human-readable description of a provider error."""
    description = _error_body_field(error, "description") or getattr(error, "description", None)
    if isinstance(description, str) and description:
        return description
    return str(error) or UNKNOWN_ERROR_MESSAGE


# =============================================================================
# Classification
# =============================================================================


def should_count_as_failure(error: BaseException) -> bool:
    """
    True if the error means the provider is unhealthy.

    Rules, first match wins:
    1. An HTTP status counts only when it is 403 or 5xx.
    2. A provider code counts unless it is a caller-error code.
    3. Anything else (network errors, timeouts) counts.
    """
    if isinstance(error, GatewayError):
        return error.counts_as_failure

    status = _status_code(error)
    if status is not None:
        return status == 403 or 500 <= status < 600

    code = _error_code(error)
    if code is not None:
        return code not in NON_COUNTED_ERROR_CODES

    return True


def is_retryable(error: BaseException) -> bool:
    """Only failures that count against the provider are worth retrying."""
    if isinstance(error, GatewayError):
        return error.retryable
    return should_count_as_failure(error)


def classify(error: BaseException, attempts: int = 1, **log_context: Any) -> GatewayError:
    """Map a raw client error to TransientProviderError or PermanentProviderError."""
    if isinstance(error, GatewayError):
        return error

    error_class = TransientProviderError if should_count_as_failure(error) else PermanentProviderError
    return error_class(
        extract_error_message(error),
        status_code=_status_code(error),
        code=_error_code(error),
        attempts=attempts,
        log_level="error",
        cause_type=type(error).__name__,
        **log_context,
    )


# =============================================================================
# Recurring Payment Failure Catalogue
# =============================================================================


@dataclass(frozen=True, slots=True)
class RecurringPaymentErrorInfo:
    message: str
    solution: str
    retryable: bool


RECURRING_PAYMENT_ERRORS: Final[dict[str, RecurringPaymentErrorInfo]] = {
    # Amount
    "amount_exceeds_maximum_amount_allowed": RecurringPaymentErrorInfo(
        "Amount exceeds maximum amount allowed for this token.",
        "Please use an amount equal to or less than the maximum authorized amount for this token.",
        False,
    ),
    "invalid_amount": RecurringPaymentErrorInfo(
        "Invalid amount or currency provided.",
        "Please check the amount and currency values in your request.",
        False,
    ),
    "amount_mismatch": RecurringPaymentErrorInfo(
        "Payment amount differs from order amount.",
        "Ensure the order and payment amounts are identical.",
        False,
    ),
    # Bank account
    "bank_account_invalid": RecurringPaymentErrorInfo(
        "Customer bank account is closed or invalid.",
        "Customer needs to re-register the mandate with a valid bank account.",
        False,
    ),
    "bank_account_validation_failed": RecurringPaymentErrorInfo(
        "Bank could not validate customer registration.",
        "Please retry after some time or contact Razorpay support.",
        True,
    ),
    "insufficient_funds": RecurringPaymentErrorInfo(
        "Insufficient funds in customer account.",
        "Customer should add funds to their bank account before retrying.",
        True,
    ),
    # Technical
    "bank_technical_error": RecurringPaymentErrorInfo(
        "Bank technical error occurred.",
        "Temporary bank system issue. Please retry after some time.",
        True,
    ),
    "gateway_technical_error": RecurringPaymentErrorInfo(
        "Gateway technical error occurred.",
        "Temporary gateway issue. Please retry after some time.",
        True,
    ),
    "server_error": RecurringPaymentErrorInfo(
        "Razorpay server error occurred.",
        "Temporary server issue. Please retry after some time.",
        True,
    ),
    "payment_timed_out": RecurringPaymentErrorInfo(
        "Payment timed out.",
        "Bank could not process the payment in time. Please retry.",
        True,
    ),
    # Account / instrument
    "debit_instrument_blocked": RecurringPaymentErrorInfo(
        "Customer account is temporarily blocked for withdrawals.",
        "Customer should contact their bank to unblock the account.",
        False,
    ),
    "debit_instrument_inactive": RecurringPaymentErrorInfo(
        "Customer account is inactive for withdrawals.",
        "Customer should contact their bank to activate the account.",
        False,
    ),
    "transaction_limit_exceeded": RecurringPaymentErrorInfo(
        "Transaction limit exceeded.",
        "Customer should update their transaction limits with the bank.",
        True,
    ),
    # Mandate
    "mandate_not_active": RecurringPaymentErrorInfo(
        "Registered mandate is no longer active.",
        "Customer needs to re-register the mandate.",
        False,
    ),
    "payment_mandate_not_active": RecurringPaymentErrorInfo(
        "Mandate is not yet activated by the bank.",
        "Please retry after some time as banks may take time to activate mandates.",
        True,
    ),
    # Payment status
    "payment_cancelled": RecurringPaymentErrorInfo(
        "Payment was cancelled by the customer.",
        "Customer should remove the cancellation request with their bank.",
        True,
    ),
    "payment_declined": RecurringPaymentErrorInfo(
        "Payment was declined by the bank or gateway.",
        "Please retry after some time or contact Razorpay support.",
        True,
    ),
    "payment_failed": RecurringPaymentErrorInfo(
        "Payment failed due to business or technical reasons.",
        "Please retry after some time or contact Razorpay support.",
        True,
    ),
    # Validation
    "input_validation_failed": RecurringPaymentErrorInfo(
        "Input validation failed.",
        "Please check your request parameters and correct any validation issues.",
        False,
    ),
}


def lookup_recurring_payment_error(error: BaseException) -> RecurringPaymentErrorInfo | None:
    code = _error_code(error)
    if code is None:
        return None
    return RECURRING_PAYMENT_ERRORS.get(code)


def describe_recurring_payment_error(error: BaseException) -> str:
    """
    Customer-facing message for a failed recurring charge.

    Known failure codes get the catalogue message plus a suggested fix.
    This never affects retry or circuit decisions.
    """
    info = lookup_recurring_payment_error(error)
    if info is not None:
        logger.error(
            "Recurring payment error categorized",
            code=_error_code(error),
            retryable=info.retryable,
        )
        return f"{info.message} Solution: {info.solution}"

    description = extract_error_message(error)
    logger.error(
        "Unknown recurring payment error",
        code=_error_code(error),
        description=description,
    )
    return f"Payment failed: {description}. Please contact support if the issue persists."
