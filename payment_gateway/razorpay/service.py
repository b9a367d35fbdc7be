"""
Razorpay operation façade.

Every remote operation follows the same path:
1. Validate the request (raises ValidationError, no network)
2. Get the mandate type's client (raises ConfigurationError)
3. Run the call through the retry engine with per-attempt logging
4. Return an OperationResult carrying either the parsed response or the
   classified provider/circuit error

Usage:
    service = get_razorpay_service()
    result = await service.create_customer(
        {"name": "Asha", "email": "asha@example.com", "contact": "9876543210"},
        MandateType.UPI,
    )
    if result.success:
        customer_id = result.customer_id
"""

from __future__ import annotations

import dataclasses
from functools import lru_cache
from typing import Any, Awaitable, Callable, Mapping, TypeVar

import pydantic

from shared.config.constants import ExternalApi, MandateType
from shared.config.logging import get_logger, mask_account
from shared.infrastructure.correlation import correlation_scope
from shared.infrastructure.secrets import SecretStore, SettingsSecretStore
from shared.utils.exceptions import (
    CircuitOpenError,
    PermanentProviderError,
    ProviderError,
    ValidationError,
)

from payment_gateway.razorpay.accounts import AccountManager, InitializationState
from payment_gateway.razorpay.circuit_breaker import RedisCircuitBreakerStore
from payment_gateway.razorpay.classifier import describe_recurring_payment_error
from payment_gateway.razorpay.client import RazorpayClient
from payment_gateway.razorpay.credentials import CredentialResolver
from payment_gateway.razorpay.middleware import logged_call
from payment_gateway.razorpay.retry import RetryEngine, RetryPolicy
from payment_gateway.razorpay.schemas import (
    ChargeOrder,
    CustomerValidationResult,
    OperationResult,
    RazorpayCustomer,
    RazorpayModel,
    RecurringPayment,
    TokenCollection,
    TokenDeleteResult,
)
from payment_gateway.razorpay.validation import (
    validate_charge_order,
    validate_customer_create,
    validate_customer_id,
    validate_recurring_payment,
)
from payment_gateway.razorpay.webhook import WebhookVerifier

logger = get_logger(__name__)

M = TypeVar("M", bound=RazorpayModel)

RetryOverride = RetryPolicy | Mapping[str, Any] | None
ProviderCall = Callable[[RazorpayClient], Awaitable[dict[str, Any]]]

CUSTOMER_FIELDS = ("name", "email", "contact")


class RazorpayService:
    """Resilient Razorpay operations for every mandate type."""

    def __init__(
        self,
        accounts: AccountManager,
        engine: RetryEngine,
        webhook_verifier: WebhookVerifier,
        default_policy: RetryPolicy | None = None,
    ):
        self._accounts = accounts
        self._engine = engine
        self._webhook_verifier = webhook_verifier
        self._default_policy = default_policy or RetryPolicy.from_settings()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self, mandate_type: MandateType | None = None) -> list[MandateType]:
        """Eagerly initialize one mandate type, or all of them."""
        if mandate_type is None:
            return await self._accounts.initialize_all()
        await self._accounts.ensure_ready(mandate_type)
        return [mandate_type]

    def account_state(self, mandate_type: MandateType) -> InitializationState:
        return self._accounts.state(mandate_type)

    async def circuit_statuses(self) -> dict[str, str]:
        return await self._engine.store.get_all_statuses()

    async def reset_circuit(self, mandate_type: MandateType) -> None:
        await self._engine.store.reset(ExternalApi.for_mandate(mandate_type))

    async def aclose(self) -> None:
        await self._accounts.aclose()

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _policy(self, retry_policy: RetryOverride) -> RetryPolicy:
        if isinstance(retry_policy, RetryPolicy):
            return retry_policy
        if retry_policy:
            known = {f.name for f in dataclasses.fields(RetryPolicy)}
            unknown = sorted(set(retry_policy) - known)
            if unknown:
                raise ValidationError(
                    f"Unknown retry option: {', '.join(unknown)}.",
                    field="retry_policy",
                )
            return self._default_policy.merged(**retry_policy)
        return self._default_policy

    async def _run(
        self,
        mandate_type: MandateType,
        operation_name: str,
        call: ProviderCall,
        model: type[M],
        *,
        account: str | None = None,
        retry_policy: RetryOverride = None,
        single_shot: bool = False,
    ) -> OperationResult[M]:
        policy = self._policy(retry_policy)
        if single_shot:
            policy = policy.merged(max_retries=0)

        client = await self._accounts.ensure_ready(mandate_type)

        operation = logged_call(operation_name, mandate_type, account)(lambda: call(client))

        try:
            raw = await self._engine.execute(
                operation,
                api_name=ExternalApi.for_mandate(mandate_type),
                policy=policy,
                operation_name=operation_name,
            )
        except (ProviderError, CircuitOpenError) as e:
            return OperationResult.failed(e)

        try:
            data = model.model_validate(raw)
        except pydantic.ValidationError as e:
            return OperationResult.failed(
                PermanentProviderError(
                    f"Unexpected Razorpay response for {operation_name}",
                    log_level="error",
                    mandate_type=mandate_type.value,
                    error=str(e),
                )
            )

        return OperationResult.ok(data)

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    async def create_customer(
        self,
        data: Mapping[str, Any],
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> OperationResult[RazorpayCustomer]:
        validate_customer_create(data)
        payload = dict(data)

        with correlation_scope():
            result = await self._run(
                mandate_type,
                "create customer",
                lambda client: client.create_customer(payload),
                RazorpayCustomer,
                account=payload.get("email"),
                retry_policy=retry_policy,
            )

        if result.success:
            logger.info(
                "Razorpay customer created",
                mandate_type=mandate_type.value,
                customer_id=result.customer_id,
            )
        return result

    async def fetch_customer(
        self,
        customer_id: str,
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> OperationResult[RazorpayCustomer]:
        validate_customer_id(customer_id)

        with correlation_scope():
            return await self._run(
                mandate_type,
                "fetch customer",
                lambda client: client.fetch_customer(customer_id),
                RazorpayCustomer,
                account=customer_id,
                retry_policy=retry_policy,
            )

    async def update_customer(
        self,
        customer_id: str,
        data: Mapping[str, Any],
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> OperationResult[RazorpayCustomer]:
        validate_customer_id(customer_id)
        payload = dict(data)

        with correlation_scope():
            return await self._run(
                mandate_type,
                "update customer",
                lambda client: client.edit_customer(customer_id, payload),
                RazorpayCustomer,
                account=payload.get("email") or customer_id,
                retry_policy=retry_policy,
            )

    async def validate_customer(
        self,
        customer_id: str,
        expected: Mapping[str, Any],
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> CustomerValidationResult:
        """
        Compare the stored customer with the expected name, email and contact.

        differences lists only the fields that differ. is_valid is False when
        any field differs or the fetch failed; a failed fetch also sets error
        rather than raising.
        """
        fetched = await self.fetch_customer(customer_id, mandate_type, retry_policy)
        if not fetched.success or fetched.data is None:
            return CustomerValidationResult(
                is_valid=False,
                customer_id=customer_id,
                error=fetched.error_message or "Customer could not be fetched.",
                error_type=type(fetched.error).__name__ if fetched.error else None,
            )

        customer = fetched.data
        differences = {
            name: True
            for name in CUSTOMER_FIELDS
            if getattr(customer, name) != expected.get(name)
        }
        needs_update = bool(differences)

        return CustomerValidationResult(
            is_valid=not needs_update,
            customer_id=customer.id,
            needs_update=needs_update,
            differences=differences,
        )

    async def create_or_update_customer(
        self,
        customer_id: str | None,
        data: Mapping[str, Any],
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> OperationResult[RazorpayCustomer]:
        """
        Make sure a Razorpay customer with these details exists.

        - No customer_id: create one.
        - Stored customer cannot be fetched: create a new one.
        - Any of name/email/contact differs: update all of them (and notes).
        - Otherwise: nothing to write, return the existing id.
        """
        validate_customer_create(data)

        if not customer_id:
            return await self.create_customer(data, mandate_type, retry_policy)

        validation = await self.validate_customer(customer_id, data, mandate_type, retry_policy)

        if validation.error is not None:
            # Also reached during a provider outage; may create a duplicate customer
            logger.warning(
                "Customer validation failed, creating new customer",
                mandate_type=mandate_type.value,
                customer_id=customer_id,
                error=validation.error,
                error_type=validation.error_type,
            )
            return await self.create_customer(data, mandate_type, retry_policy)

        if validation.needs_update:
            update = {name: data.get(name) for name in CUSTOMER_FIELDS}
            if data.get("notes") is not None:
                update["notes"] = data["notes"]
            logger.info(
                "Customer details changed, updating",
                mandate_type=mandate_type.value,
                customer_id=customer_id,
                differences=sorted(validation.differences),
            )
            return await self.update_customer(customer_id, update, mandate_type, retry_policy)

        logger.debug("Customer up to date", customer_id=customer_id, mandate_type=mandate_type.value)
        return OperationResult.ok(customer_id=customer_id)

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    async def fetch_tokens(
        self,
        customer_id: str,
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> OperationResult[TokenCollection]:
        validate_customer_id(customer_id)

        with correlation_scope():
            return await self._run(
                mandate_type,
                "fetch tokens",
                lambda client: client.fetch_tokens(customer_id),
                TokenCollection,
                account=customer_id,
                retry_policy=retry_policy,
            )

    async def delete_token(
        self,
        customer_id: str,
        token_id: str,
        mandate_type: MandateType,
    ) -> OperationResult[TokenDeleteResult]:
        """Delete a saved mandate. Single attempt: a retried delete is not safe to assume idempotent."""
        validate_customer_id(customer_id)
        if not token_id:
            raise ValidationError("Token ID is mandatory.", field="token_id")

        with correlation_scope():
            result = await self._run(
                mandate_type,
                "delete token",
                lambda client: client.delete_token(customer_id, token_id),
                TokenDeleteResult,
                account=customer_id,
                single_shot=True,
            )

        if result.success:
            logger.info(
                "Razorpay token deleted",
                mandate_type=mandate_type.value,
                customer_id=customer_id,
                token_id=token_id,
            )
        return result

    # -------------------------------------------------------------------------
    # Orders and Payments
    # -------------------------------------------------------------------------

    async def create_charge_order(
        self,
        request: Mapping[str, Any],
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> OperationResult[ChargeOrder]:
        validate_charge_order(request)
        payload = dict(request)

        with correlation_scope():
            result = await self._run(
                mandate_type,
                "create charge order",
                lambda client: client.create_order(payload),
                ChargeOrder,
                account=payload.get("receipt"),
                retry_policy=retry_policy,
            )

        if result.success:
            logger.info(
                "Razorpay order created",
                mandate_type=mandate_type.value,
                order_id=result.data.id,
                amount=result.data.amount,
                currency=result.data.currency,
            )
        return result

    async def create_recurring_payment(
        self,
        request: Mapping[str, Any],
        mandate_type: MandateType,
        retry_policy: RetryOverride = None,
    ) -> OperationResult[RecurringPayment]:
        """
        Charge a saved token.

        Provider failures carry a descriptive message with a suggested fix
        in error_message when Razorpay's failure code is known.
        """
        validate_recurring_payment(request)
        payload = dict(request)

        with correlation_scope():
            result = await self._run(
                mandate_type,
                "create recurring payment",
                lambda client: client.create_recurring_payment(payload),
                RecurringPayment,
                account=payload.get("email"),
                retry_policy=retry_policy,
            )

        if result.success:
            logger.info(
                "Recurring payment created",
                mandate_type=mandate_type.value,
                payment_id=result.data.razorpay_payment_id,
                order_id=payload.get("order_id"),
            )
        elif isinstance(result.error, ProviderError):
            result.error_message = describe_recurring_payment_error(result.error.__cause__ or result.error)
            logger.error(
                "Failed to create recurring payment",
                mandate_type=mandate_type.value,
                account=mask_account(payload.get("email")),
                amount=payload.get("amount"),
                currency=payload.get("currency"),
            )
        return result

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    async def verify_webhook_signature(self, raw_body: str | bytes, signature: str | None) -> bool:
        return await self._webhook_verifier.verify(raw_body, signature)


def build_razorpay_service(
    secret_store: SecretStore | None = None,
    store: RedisCircuitBreakerStore | None = None,
) -> RazorpayService:
    """Wire a RazorpayService from settings, the secret store and Redis."""
    secret_store = secret_store or SettingsSecretStore()
    return RazorpayService(
        accounts=AccountManager(CredentialResolver(secret_store)),
        engine=RetryEngine(store or RedisCircuitBreakerStore()),
        webhook_verifier=WebhookVerifier(secret_store),
    )


@lru_cache
def get_razorpay_service() -> RazorpayService:
    """Process-wide RazorpayService singleton."""
    return build_razorpay_service()
