"""
Razorpay credential resolution from the secret store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from shared.config.constants import MandateType, SecretKeys
from shared.config.logging import get_logger
from shared.infrastructure.secrets import SecretStore
from shared.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

KEY_ID_PREFIX = "rzp_"


@dataclass(frozen=True, slots=True)
class AccountCredentials:
    """Key pair for one Razorpay merchant account. The secret never appears in repr."""

    key_id: str
    key_secret: str = field(repr=False)


class CredentialResolver:
    """
    Fetches the key pair for a mandate type.

    Secrets are read as razorpay.<prefix>_key_id and
    razorpay.<prefix>_key_secret, e.g. razorpay.upi_key_id.
    """

    def __init__(self, secret_store: SecretStore):
        self._secret_store = secret_store

    async def resolve(self, mandate_type: MandateType) -> AccountCredentials:
        prefix = mandate_type.secret_prefix
        key_id, key_secret = await asyncio.gather(
            self._secret_store.get_secret(
                SecretKeys.NAMESPACE, f"{prefix}_{SecretKeys.KEY_ID_SUFFIX}"
            ),
            self._secret_store.get_secret(
                SecretKeys.NAMESPACE, f"{prefix}_{SecretKeys.KEY_SECRET_SUFFIX}"
            ),
        )

        if not key_id or not key_secret:
            raise ConfigurationError(
                f"Razorpay credentials not configured for {mandate_type.value}",
                mandate_type=mandate_type.value,
                has_key_id=bool(key_id),
                has_key_secret=bool(key_secret),
            )

        key_id = str(key_id).strip()
        key_secret = str(key_secret).strip()
        if not key_id.startswith(KEY_ID_PREFIX) or not key_secret:
            raise ConfigurationError(
                f"Razorpay credentials for {mandate_type.value} are malformed",
                mandate_type=mandate_type.value,
            )

        return AccountCredentials(key_id=key_id, key_secret=key_secret)
