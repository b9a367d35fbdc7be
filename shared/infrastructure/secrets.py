"""
Secret store access.

The gateway reads Razorpay credentials and the webhook secret through the
SecretStore protocol. Production deployments can plug in any async store
(Vault, SSM, ...); the default implementation reads environment variables
and the .env file through pydantic-settings.
"""

from typing import Callable, Protocol

from shared.config.settings import Settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


class SecretStore(Protocol):
    """Async key/value secret lookup. May raise on backend failures."""

    async def get_secret(self, namespace: str, key: str) -> str | None:
        ...


class SettingsSecretStore:
    """
    Secret store backed by Settings fields named <namespace>_<key>.

    A fresh Settings object is built on every lookup so a rotated value in
    the environment or .env takes effect on the next call.

    Usage:
        store = SettingsSecretStore()
        key_id = await store.get_secret("razorpay", "upi_key_id")
        # reads RAZORPAY_UPI_KEY_ID
    """

    def __init__(self, settings_factory: Callable[[], Settings] = Settings):
        self._settings_factory = settings_factory

    async def get_secret(self, namespace: str, key: str) -> str | None:
        field_name = f"{namespace}_{key}".lower()
        current = self._settings_factory()

        value = getattr(current, field_name, None)
        if value is None:
            logger.warning(
                "Secret not defined",
                namespace=namespace,
                key=key,
            )
            return None

        logger.debug("Secret loaded", namespace=namespace, key=key)
        return str(value) if value != "" else None
