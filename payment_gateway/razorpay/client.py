"""
Async Razorpay REST client.

One RazorpayClient is one merchant account: it holds the account's key pair
and an httpx connection pool. Non-2xx responses raise RazorpayAPIError with
the HTTP status and the provider's error code so the classifier can decide
whether the failure counts against the circuit breaker.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

import httpx

from shared.config.constants import MandateType
from shared.config.settings import settings


class RazorpayAPIError(Exception):
    """
    Error response from the Razorpay API.

    Mirrors the provider's error body:
        {"error": {"code": "BAD_REQUEST_ERROR", "description": "...",
                   "reason": "...", "field": "...", "metadata": {...}}}
    """

    def __init__(
        self,
        status_code: int,
        code: str | None = None,
        description: str | None = None,
        reason: str | None = None,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        self.code = code
        self.description = description
        self.reason = reason
        self.field = field
        self.metadata = metadata or {}
        super().__init__(description or f"Razorpay API error (HTTP {status_code})")

    @property
    def error(self) -> dict[str, Any]:
        """Provider error body, shaped like the API response."""
        return {
            "code": self.code,
            "description": self.description,
            "reason": self.reason,
            "field": self.field,
            "metadata": self.metadata,
        }

    @classmethod
    def from_response(cls, response: httpx.Response) -> "RazorpayAPIError":
        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return cls(
                status_code=response.status_code,
                description=response.text or response.reason_phrase or None,
            )

        return cls(
            status_code=response.status_code,
            code=error.get("code"),
            description=error.get("description"),
            reason=error.get("reason"),
            field=error.get("field"),
            metadata=error.get("metadata") if isinstance(error.get("metadata"), dict) else None,
        )


class RazorpayClient:
    """
    Client for one Razorpay merchant account.

    Usage:
        client = RazorpayClient("rzp_test_xxx", "secret", MandateType.UPI)
        customer = await client.create_customer({"name": "A", ...})
        await client.aclose()
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        mandate_type: MandateType,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.key_id = key_id
        self.mandate_type = mandate_type
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.razorpay_base_url,
            auth=(key_id, key_secret),
            timeout=timeout if timeout is not None else settings.razorpay_timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __repr__(self) -> str:
        return f"RazorpayClient(mandate_type={self.mandate_type.value}, key_id={self.key_id[:8]}...)"

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = await self._http.request(method, path, json=payload)

        if not response.is_success:
            raise RazorpayAPIError.from_response(response)

        if not response.content:
            return {}
        return response.json()

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    async def create_customer(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/customers", data)

    async def fetch_customer(self, customer_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/customers/{customer_id}")

    async def edit_customer(self, customer_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", f"/customers/{customer_id}", data)

    # -------------------------------------------------------------------------
    # Tokens (saved mandates)
    # -------------------------------------------------------------------------

    async def fetch_tokens(self, customer_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/customers/{customer_id}/tokens")

    async def delete_token(self, customer_id: str, token_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/customers/{customer_id}/tokens/{token_id}")

    # -------------------------------------------------------------------------
    # Orders and payments
    # -------------------------------------------------------------------------

    async def create_order(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/orders", data)

    async def create_recurring_payment(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/payments/create/recurring", data)

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    @staticmethod
    def verify_webhook_signature(body: str | bytes, signature: str, secret: str) -> bool:
        """
        Check an X-Razorpay-Signature header against the raw request body.

        The signature is the hex HMAC-SHA256 of the body keyed with the
        webhook secret.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")

        expected = hmac.new(
            secret.encode("utf-8"),
            body,
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)

    async def aclose(self) -> None:
        await self._http.aclose()
