"""
Per-attempt logging for Razorpay calls.

Wraps the operation closure handed to the retry engine, so each attempt is
logged with its duration, the mandate type and a masked account identifier.
"""

from __future__ import annotations

import functools
import time
from typing import Awaitable, Callable, TypeVar

from shared.config.constants import MandateType
from shared.config.logging import get_logger, mask_account

from payment_gateway.razorpay.classifier import extract_error_message

logger = get_logger(__name__)

T = TypeVar("T")


def logged_call(
    operation_name: str,
    mandate_type: MandateType,
    account: str | None = None,
) -> Callable[[Callable[[], Awaitable[T]]], Callable[[], Awaitable[T]]]:
    """
    Decorator factory for one gateway operation.

    Usage:
        operation = logged_call("create customer", MandateType.UPI, email)(
            lambda: client.create_customer(payload)
        )
        await engine.execute(operation, api_name="razorpay_upi")
    """
    masked = mask_account(account)

    def decorator(operation: Callable[[], Awaitable[T]]) -> Callable[[], Awaitable[T]]:
        @functools.wraps(operation)
        async def wrapper() -> T:
            started = time.monotonic()
            try:
                result = await operation()
            except Exception as e:
                logger.warning(
                    f"Razorpay {operation_name} attempt failed",
                    mandate_type=mandate_type.value,
                    account=masked,
                    error=extract_error_message(e),
                    error_type=type(e).__name__,
                    duration_ms=round((time.monotonic() - started) * 1000, 1),
                )
                raise

            logger.info(
                f"Razorpay {operation_name} succeeded",
                mandate_type=mandate_type.value,
                account=masked,
                duration_ms=round((time.monotonic() - started) * 1000, 1),
            )
            return result

        return wrapper

    return decorator
