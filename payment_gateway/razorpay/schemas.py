"""
Razorpay request payloads, response models and operation results.

Request payloads are TypedDicts shaped like the Razorpay JSON API so callers
can pass plain dicts; validation.py enforces the required fields. Responses
are parsed into pydantic models that tolerate extra provider fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, TypedDict

from pydantic import BaseModel, ConfigDict

from shared.utils.exceptions import GatewayError


# =============================================================================
# Request Payloads
# =============================================================================


class CustomerCreateRequest(TypedDict, total=False):
    name: str
    email: str
    contact: str
    fail_existing: str
    notes: dict[str, str]


class CustomerUpdateRequest(TypedDict, total=False):
    name: str
    email: str
    contact: str
    notes: dict[str, str]


class ExpectedCustomer(TypedDict):
    name: str
    email: str
    contact: str


class BankAccount(TypedDict):
    account_number: int | str
    name: str
    ifsc: str


class ChargeOrderRequest(TypedDict, total=False):
    amount: int | str
    currency: str
    payment_capture: bool
    method: str
    bank_account: BankAccount
    receipt: str
    product: list[dict[str, Any]]
    transfers: list[dict[str, Any]]
    notes: dict[str, str]


class RecurringPaymentRequest(TypedDict, total=False):
    email: str
    contact: str
    amount: int
    currency: str
    order_id: str
    customer_id: str
    token: str
    recurring: bool
    description: str
    notes: dict[str, str]


# =============================================================================
# Response Models
# =============================================================================


class RazorpayModel(BaseModel):
    """Base for provider responses; unknown fields are kept, not rejected."""

    model_config = ConfigDict(extra="allow")


class RazorpayCustomer(RazorpayModel):
    id: str
    entity: str = "customer"
    name: str | None = None
    email: str | None = None
    contact: str | None = None
    gstin: str | None = None
    # Razorpay returns [] instead of {} when a customer has no notes
    notes: dict[str, Any] | list[Any] | None = None
    created_at: int | None = None


class RazorpayToken(RazorpayModel):
    id: str
    entity: str = "token"
    token: str | None = None
    bank: str | None = None
    wallet: str | None = None
    method: str | None = None
    recurring: bool | None = None
    recurring_details: dict[str, Any] | None = None
    auth_type: str | None = None
    mrn: str | None = None
    used_at: int | None = None
    expired_at: int | None = None
    created_at: int | None = None


class TokenCollection(RazorpayModel):
    entity: str = "collection"
    count: int = 0
    items: list[RazorpayToken] = []


class TokenDeleteResult(RazorpayModel):
    deleted: bool = False


class ChargeOrder(RazorpayModel):
    id: str
    entity: str = "order"
    amount: int
    amount_paid: int = 0
    amount_due: int = 0
    currency: str
    receipt: str | None = None
    offer_id: str | None = None
    status: str
    attempts: int = 0
    notes: dict[str, Any] | list[Any] | None = None
    created_at: int | None = None


class RecurringPayment(RazorpayModel):
    razorpay_payment_id: str
    razorpay_order_id: str | None = None
    razorpay_signature: str | None = None


# =============================================================================
# Results
# =============================================================================


T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """
    Uniform outcome of a remote gateway operation.

    Provider and circuit failures are carried in `error`; `error_message` is
    always safe to show to end users.
    """

    success: bool
    data: T | None = None
    customer_id: str | None = None
    error: GatewayError | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, data: T | None = None, customer_id: str | None = None) -> "OperationResult[T]":
        if customer_id is None and isinstance(data, RazorpayCustomer):
            customer_id = data.id
        return cls(success=True, data=data, customer_id=customer_id)

    @classmethod
    def failed(cls, error: GatewayError, message: str | None = None) -> "OperationResult[T]":
        return cls(
            success=False,
            error=error,
            error_message=message or error.user_message,
        )

    def unwrap(self) -> T | None:
        """Return the payload, or raise the classified error."""
        if not self.success and self.error is not None:
            raise self.error
        return self.data


@dataclass
class CustomerValidationResult:
    """Outcome of comparing a stored customer with the expected details."""

    is_valid: bool
    customer_id: str | None = None
    needs_update: bool = False
    differences: dict[str, bool] = field(default_factory=dict)
    error: str | None = None
    error_type: str | None = None
