"""
Pre-flight validation for Razorpay requests.

All checks run before any network call and raise ValidationError with a
message that can be shown to the caller as-is.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from shared.config.constants import PaymentMethods
from shared.utils.exceptions import ValidationError


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)+$")
CONTACT_PATTERN = re.compile(r"^\d{10,15}$")


def _require(payload: Mapping[str, Any], fields: list[tuple[str, str]]) -> None:
    for name, message in fields:
        if not payload.get(name):
            raise ValidationError(message, field=name)


def validate_customer_id(customer_id: str | None) -> None:
    if not customer_id:
        raise ValidationError("Customer ID is mandatory.", field="customer_id")


def validate_customer_create(data: Mapping[str, Any]) -> None:
    _require(data, [
        ("name", "Name is mandatory."),
        ("email", "Email is mandatory."),
        ("contact", "Contact is mandatory."),
    ])


def validate_bank_account(bank_account: Mapping[str, Any]) -> None:
    _require(bank_account, [
        ("account_number", "Bank account number is required."),
        ("name", "Bank account holder name is required."),
        ("ifsc", "Bank IFSC code is required."),
    ])


def validate_charge_order(request: Mapping[str, Any]) -> None:
    """
    Validate an order payload.

    Bank-transfer methods (emandate, nach) also need a complete
    bank_account block.
    """
    _require(request, [
        ("amount", "Amount is mandatory."),
        ("currency", "Currency is mandatory."),
    ])

    if not isinstance(request.get("payment_capture"), bool):
        raise ValidationError(
            "Payment capture flag is mandatory and must be a boolean.",
            field="payment_capture",
        )

    if request.get("method") in PaymentMethods.BANK_TRANSFER:
        bank_account = request.get("bank_account")
        if not bank_account or not isinstance(bank_account, Mapping):
            raise ValidationError(
                "bank_account is mandatory for bank transfer payments.",
                field="bank_account",
            )
        validate_bank_account(bank_account)


def validate_recurring_payment(request: Mapping[str, Any]) -> None:
    _require(request, [
        ("email", "Email is mandatory."),
        ("contact", "Contact is mandatory."),
        ("amount", "Amount is mandatory."),
        ("currency", "Currency is mandatory."),
        ("order_id", "Order ID is mandatory."),
        ("customer_id", "Customer ID is mandatory."),
        ("token", "Token is mandatory."),
        ("recurring", "Recurring flag is mandatory."),
    ])

    if not isinstance(request["recurring"], bool):
        raise ValidationError("Recurring flag must be a boolean.", field="recurring")

    amount = request["amount"]
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        raise ValidationError("Amount must be greater than 0.", field="amount")

    if not EMAIL_PATTERN.fullmatch(str(request["email"])):
        raise ValidationError("Invalid email format.", field="email")

    if not CONTACT_PATTERN.fullmatch(str(request["contact"])):
        raise ValidationError("Contact should be 10-15 digits.", field="contact")
