"""
Tests for Razorpay error classification.
"""

from types import SimpleNamespace

import httpx
import pytest

from shared.utils.exceptions import (
    CircuitOpenError,
    PermanentProviderError,
    TransientProviderError,
    ValidationError,
)
from payment_gateway.razorpay.classifier import (
    RECURRING_PAYMENT_ERRORS,
    classify,
    describe_recurring_payment_error,
    extract_error_message,
    is_retryable,
    should_count_as_failure,
)

from tests.conftest import api_error


class ErrorWithBody(Exception):
    """Error shaped like an SDK error: {"error": {...}} body, no status."""

    def __init__(self, code, description="failed"):
        super().__init__(description)
        self.error = {"code": code, "description": description}


class TestShouldCountAsFailure:
    """Tests for the circuit-counting rules."""

    @pytest.mark.parametrize("status", [403, 500, 502, 503, 599])
    def test_server_errors_and_forbidden_count(self, status):
        assert should_count_as_failure(api_error(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 404, 409, 429, 200])
    def test_other_statuses_do_not_count(self, status):
        assert should_count_as_failure(api_error(status, code="SERVER_ERROR")) is False

    def test_status_takes_priority_over_code(self):
        """A 500 with a deny-listed code still counts."""
        assert should_count_as_failure(api_error(500, code="BAD_REQUEST_ERROR")) is True

    def test_status_attribute_aliases(self):
        assert should_count_as_failure(SimpleNamespace(status=503)) is True
        assert should_count_as_failure(SimpleNamespace(status="404")) is False

    def test_response_status_code(self):
        request = httpx.Request("GET", "https://api.razorpay.com/v1/customers/cust_1")
        response = httpx.Response(502, request=request)
        error = httpx.HTTPStatusError("bad gateway", request=request, response=response)

        assert should_count_as_failure(error) is True

    @pytest.mark.parametrize(
        "code",
        [
            "BAD_REQUEST_ERROR",
            "VALIDATION_ERROR",
            "INVALID_REQUEST_ERROR",
            "DUPLICATE_ENTRY_ERROR",
            "NOT_FOUND_ERROR",
            "UNAUTHORIZED_ERROR",
        ],
    )
    def test_deny_listed_codes_do_not_count(self, code):
        assert should_count_as_failure(ErrorWithBody(code)) is False

    def test_unknown_code_counts(self):
        assert should_count_as_failure(ErrorWithBody("GATEWAY_ERROR")) is True

    def test_plain_code_attribute(self):
        error = RuntimeError("boom")
        error.code = "NOT_FOUND_ERROR"

        assert should_count_as_failure(error) is False

    def test_network_errors_count(self):
        assert should_count_as_failure(httpx.ConnectTimeout("timed out")) is True
        assert should_count_as_failure(RuntimeError("unknown")) is True

    def test_gateway_errors_use_their_class_flag(self):
        assert should_count_as_failure(TransientProviderError("down")) is True
        assert should_count_as_failure(PermanentProviderError("bad")) is False
        assert should_count_as_failure(CircuitOpenError("razorpay")) is False
        assert should_count_as_failure(ValidationError("Amount is mandatory.")) is False


class TestClassify:
    """Tests for mapping raw errors to the gateway taxonomy."""

    def test_counted_error_becomes_transient(self):
        result = classify(api_error(503, description="Service unavailable"), attempts=4)

        assert isinstance(result, TransientProviderError)
        assert result.retryable
        assert result.attempts == 4
        assert result.message == "Service unavailable"

    def test_non_counted_error_becomes_permanent(self):
        result = classify(ErrorWithBody("DUPLICATE_ENTRY_ERROR", "Customer already exists for the merchant"))

        assert isinstance(result, PermanentProviderError)
        assert not result.retryable
        assert result.code == "DUPLICATE_ENTRY_ERROR"
        assert result.message == "Customer already exists for the merchant"

    def test_gateway_error_passes_through(self):
        error = CircuitOpenError("razorpay_upi")

        assert classify(error) is error

    def test_retryable_follows_counting(self):
        assert is_retryable(httpx.ConnectError("refused")) is True
        assert is_retryable(api_error(400, code="BAD_REQUEST_ERROR")) is False


class TestExtractErrorMessage:
    """Tests for description unwrapping."""

    def test_prefers_provider_description(self):
        assert extract_error_message(ErrorWithBody("X", "Token expired")) == "Token expired"

    def test_falls_back_to_str(self):
        assert extract_error_message(RuntimeError("socket closed")) == "socket closed"

    def test_unknown_when_empty(self):
        assert extract_error_message(RuntimeError()) == "Unknown error occurred"


class TestRecurringPaymentErrors:
    """Tests for the customer-facing recurring charge messages."""

    def test_catalogue_size(self):
        assert len(RECURRING_PAYMENT_ERRORS) == 19

    def test_known_code_includes_solution(self):
        message = describe_recurring_payment_error(ErrorWithBody("insufficient_funds"))

        assert message == (
            "Insufficient funds in customer account. "
            "Solution: Customer should add funds to their bank account before retrying."
        )

    def test_unknown_code_includes_description(self):
        message = describe_recurring_payment_error(ErrorWithBody("weird_code", "Card network down"))

        assert message == (
            "Payment failed: Card network down. Please contact support if the issue persists."
        )

    def test_error_without_code(self):
        message = describe_recurring_payment_error(RuntimeError("boom"))

        assert message == "Payment failed: boom. Please contact support if the issue persists."

    def test_catalogue_retryable_flags(self):
        assert RECURRING_PAYMENT_ERRORS["mandate_not_active"].retryable is False
        assert RECURRING_PAYMENT_ERRORS["payment_timed_out"].retryable is True
