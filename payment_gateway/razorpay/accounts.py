"""
Lazy, idempotent Razorpay account initialization.

Each MandateType is a separate merchant account with its own client. The
first caller for a type starts initialization; callers arriving while it is
in flight join the same task instead of fetching credentials again.

Usage:
    manager = AccountManager(CredentialResolver(SettingsSecretStore()))
    client = await manager.ensure_ready(MandateType.UPI)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from shared.config.constants import MandateType
from shared.config.logging import get_logger
from shared.utils.exceptions import ConfigurationError

from payment_gateway.razorpay.client import RazorpayClient
from payment_gateway.razorpay.credentials import AccountCredentials, CredentialResolver

logger = get_logger(__name__)


class InitializationState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"


ClientFactory = Callable[[AccountCredentials, MandateType], RazorpayClient]


def default_client_factory(credentials: AccountCredentials, mandate_type: MandateType) -> RazorpayClient:
    return RazorpayClient(credentials.key_id, credentials.key_secret, mandate_type)


@dataclass
class _AccountSlot:
    state: InitializationState = InitializationState.UNINITIALIZED
    client: RazorpayClient | None = None
    task: asyncio.Task | None = None


class AccountManager:
    """Owns at most one RazorpayClient per MandateType."""

    def __init__(
        self,
        resolver: CredentialResolver,
        client_factory: ClientFactory = default_client_factory,
    ):
        self._resolver = resolver
        self._client_factory = client_factory
        self._slots: dict[MandateType, _AccountSlot] = {mt: _AccountSlot() for mt in MandateType}

    def state(self, mandate_type: MandateType) -> InitializationState:
        return self._slots[mandate_type].state

    async def ensure_ready(self, mandate_type: MandateType) -> RazorpayClient:
        """
        Return the client for `mandate_type`, initializing it on first use.

        Raises:
            ConfigurationError: Credentials are missing, malformed or could
                not be fetched. Every caller joined to the same attempt
                receives the same exception.
        """
        slot = self._slots[mandate_type]

        if slot.state is InitializationState.READY and slot.client is not None:
            return slot.client

        # Cancelled before its first step, so _initialize never reset the slot
        if slot.task is not None and slot.task.cancelled():
            self._reset_slot(slot)

        if slot.task is None:
            slot.state = InitializationState.INITIALIZING
            slot.task = asyncio.create_task(
                self._initialize(mandate_type, slot),
                name=f"razorpay-init-{mandate_type.value}",
            )

        # Shielded so one cancelled caller does not abort the shared attempt
        return await asyncio.shield(slot.task)

    async def _initialize(self, mandate_type: MandateType, slot: _AccountSlot) -> RazorpayClient:
        try:
            credentials = await self._resolver.resolve(mandate_type)
            client = self._client_factory(credentials, mandate_type)
        except ConfigurationError:
            self._reset_slot(slot)
            raise
        except Exception as e:
            self._reset_slot(slot)
            raise ConfigurationError(
                f"Failed to initialize Razorpay for {mandate_type.value}: {e}",
                mandate_type=mandate_type.value,
                cause_type=type(e).__name__,
            ) from e
        except BaseException:
            # Init task cancelled; the next ensure_ready starts a fresh attempt
            self._reset_slot(slot)
            raise

        slot.client = client
        slot.state = InitializationState.READY
        slot.task = None
        logger.info(
            "Razorpay account initialized",
            mandate_type=mandate_type.value,
            key_id_prefix=credentials.key_id[:8],
        )
        return client

    @staticmethod
    def _reset_slot(slot: _AccountSlot) -> None:
        slot.state = InitializationState.UNINITIALIZED
        slot.client = None
        slot.task = None

    async def initialize_all(self) -> list[MandateType]:
        """
        Initialize every mandate type concurrently.

        Partial failure is tolerated and logged; only a total failure raises.
        Returns the mandate types that are ready.
        """
        mandate_types = list(MandateType)
        results = await asyncio.gather(
            *(self.ensure_ready(mt) for mt in mandate_types),
            return_exceptions=True,
        )

        failed = [mt for mt, result in zip(mandate_types, results) if isinstance(result, BaseException)]
        ready = [mt for mt in mandate_types if mt not in failed]

        if not ready:
            raise ConfigurationError(
                f"Failed to initialize Razorpay for: {', '.join(mt.value for mt in failed)}",
                failed=[mt.value for mt in failed],
            )

        if failed:
            logger.warning(
                "Some Razorpay accounts failed to initialize",
                failed=[mt.value for mt in failed],
                ready=[mt.value for mt in ready],
            )
        else:
            logger.info("All Razorpay accounts initialized", ready=[mt.value for mt in ready])

        return ready

    async def aclose(self) -> None:
        """Close every initialized client. Call on process shutdown."""
        for mandate_type, slot in self._slots.items():
            if slot.client is not None:
                await slot.client.aclose()
                logger.info("Razorpay account closed", mandate_type=mandate_type.value)
            self._reset_slot(slot)
