"""
Razorpay gateway.

Usage:
    from payment_gateway.razorpay import get_razorpay_service
    from shared.config.constants import MandateType

    service = get_razorpay_service()
    result = await service.fetch_tokens("cust_123", MandateType.E_MANDATE)
"""

from payment_gateway.razorpay.accounts import AccountManager, InitializationState
from payment_gateway.razorpay.circuit_breaker import CircuitRecord, RedisCircuitBreakerStore
from payment_gateway.razorpay.classifier import (
    classify,
    describe_recurring_payment_error,
    should_count_as_failure,
)
from payment_gateway.razorpay.client import RazorpayAPIError, RazorpayClient
from payment_gateway.razorpay.credentials import AccountCredentials, CredentialResolver
from payment_gateway.razorpay.retry import RetryEngine, RetryPolicy
from payment_gateway.razorpay.schemas import CustomerValidationResult, OperationResult
from payment_gateway.razorpay.service import (
    RazorpayService,
    build_razorpay_service,
    get_razorpay_service,
)
from payment_gateway.razorpay.webhook import WebhookVerifier

__all__ = [
    # service
    "RazorpayService",
    "build_razorpay_service",
    "get_razorpay_service",
    # components
    "AccountManager",
    "InitializationState",
    "CredentialResolver",
    "AccountCredentials",
    "RedisCircuitBreakerStore",
    "CircuitRecord",
    "RetryEngine",
    "RetryPolicy",
    "WebhookVerifier",
    "RazorpayClient",
    "RazorpayAPIError",
    # errors
    "classify",
    "should_count_as_failure",
    "describe_recurring_payment_error",
    # results
    "OperationResult",
    "CustomerValidationResult",
]
