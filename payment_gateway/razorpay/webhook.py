"""
Razorpay webhook signature verification.
"""

from __future__ import annotations

from shared.config.constants import SecretKeys
from shared.config.logging import get_logger
from shared.infrastructure.secrets import SecretStore

from payment_gateway.razorpay.client import RazorpayClient

logger = get_logger(__name__)


class WebhookVerifier:
    """
    Verifies X-Razorpay-Signature headers.

    The webhook secret is read from the secret store on every call so a
    rotated secret is picked up without a restart.
    """

    def __init__(self, secret_store: SecretStore):
        self._secret_store = secret_store

    async def verify(self, raw_body: str | bytes, signature: str | None) -> bool:
        """Return True only for a valid signature. Never raises."""
        if not signature:
            logger.error("Webhook signature missing")
            return False

        try:
            secret = await self._secret_store.get_secret(
                SecretKeys.NAMESPACE, SecretKeys.WEBHOOK_SECRET
            )
            if not secret:
                logger.error("Razorpay webhook secret not configured")
                return False

            is_valid = RazorpayClient.verify_webhook_signature(raw_body, signature, secret)
        except Exception as e:
            logger.error(
                "Webhook signature verification failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if not is_valid:
            logger.warning("Invalid Razorpay webhook signature")
        return is_valid
