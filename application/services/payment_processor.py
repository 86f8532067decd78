"""
Paystack payment processor: the checkout lifecycle callbacks the host invokes.

Paystack has no session concept; a session is reconstructed from the transaction
reference we mint at initiation and the snapshots the gateway returns for it.
Status is always derived from the latest snapshot, never stored on its own.

The host owns persistence. Every operation takes the persisted session blob and
returns a new one; the input is never mutated.
"""
from __future__ import annotations

import copy
import uuid
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union

from application.dtos.paystack import (
    GatewayResult,
    InitiatePaymentInput,
    PaymentSessionResult,
    TransactionSnapshot,
    WebhookActionResult,
)
from application.ports.payment_gateway import PaystackGateway
from application.services.webhook_dispatcher import WebhookDispatcher
from core.logging_config import get_logger
from core.settings import PaystackSettings
from domain.common.exceptions import (
    MissingEmailException,
    MissingTransactionIdException,
    MissingTransactionReferenceException,
    PaymentValidationException,
)
from domain.payment.currency import normalize_currency, round_subunits, to_subunits
from domain.payment.session import (
    AuthorizedSession,
    ErroredSession,
    ErrorReason,
    InitiatedSession,
    PaymentSession,
    PaymentSessionStatus,
    UninitiatedSession,
    derive_status,
    host_data_of,
    load_session,
    transaction_id_of,
)
from infrastructure.external.payments.exceptions import (
    PaymentConfigurationError,
    PaymentProviderError,
)
from shared.codes.payment_codes import map_transaction_status


SessionData = Mapping[str, Any]


def new_transaction_reference() -> str:
    return f"pstk_{uuid.uuid4().hex}"


class PaystackPaymentProcessor:
    identifier = "paystack"

    def __init__(
        self,
        gateway: PaystackGateway,
        *,
        options: PaystackSettings,
        dispatcher: Optional[WebhookDispatcher] = None,
        reference_factory: Callable[[], str] = new_transaction_reference,
        logger=None,
    ) -> None:
        if not options.secret_key:
            raise PaymentConfigurationError(
                "The Paystack provider requires the secret_key option",
                option="secret_key",
            )
        self.gateway = gateway
        self.options = options
        self._logger = logger or get_logger(__name__)
        self._dispatcher = dispatcher or WebhookDispatcher(
            options.secret_key, debug=options.debug, logger=self._logger
        )
        self._new_reference = reference_factory

    # -- initiation -------------------------------------------------------

    async def initiate_payment(self, payload: InitiatePaymentInput) -> PaymentSessionResult:
        """Initialize a Paystack transaction for the checkout under a fresh reference."""
        if not payload.email or not payload.email.strip():
            raise MissingEmailException()
        currency = normalize_currency(payload.currency_code)
        amount = to_subunits(payload.amount, currency)
        reference = self._new_reference()

        self._logger.info(
            "paystack_initiate_request",
            reference=reference,
            amount=amount,
            currency=currency,
            session_id=payload.session_id,
            cart_id=payload.cart_id,
        )
        result = await self.gateway.initialize_transaction(
            amount=amount,
            email=payload.email.strip(),
            currency=currency,
            reference=reference,
            metadata=payload.gateway_metadata(),
        )
        if not result.status or result.data is None:
            raise PaymentProviderError(
                result.message or "Failed to initiate Paystack payment",
                details={"operation": "initiate_payment"},
            )

        session = InitiatedSession(
            transaction_reference=result.data.reference or reference,
            access_code=result.data.access_code,
            authorization_url=result.data.authorization_url,
            amount=amount,
            currency=currency,
            session_id=payload.session_id,
            cart_id=payload.cart_id,
        )
        return PaymentSessionResult(status=derive_status(session), data=session.to_data())

    async def update_payment(
        self,
        session_data: SessionData,
        payload: InitiatePaymentInput,
    ) -> PaymentSessionResult:
        """Paystack cannot amend an initialized transaction, so abandon it and start over."""
        previous = load_session(session_data)
        result = await self.initiate_payment(payload)
        self._logger.info(
            "paystack_session_reinitiated",
            previous_reference=getattr(previous, "transaction_reference", None),
            reference=result.data["transaction_reference"],
            session_id=payload.session_id,
        )
        carried = host_data_of(previous)
        if carried:
            return PaymentSessionResult(status=result.status, data={**carried, **result.data})
        return result

    async def update_payment_data(self, session_id: str, data: SessionData) -> dict[str, Any]:
        if "amount" in data:
            raise PaymentValidationException(
                "Cannot update amount from update_payment_data",
                field="amount",
                details={"session_id": session_id},
            )
        return copy.deepcopy(dict(data))

    # -- confirmation -----------------------------------------------------

    async def authorize_payment(self, session_data: SessionData) -> PaymentSessionResult:
        """Verify the transaction behind the session's reference."""
        session = load_session(session_data)
        if isinstance(session, UninitiatedSession):
            raise MissingTransactionReferenceException()
        if isinstance(session, (AuthorizedSession, ErroredSession)):
            # terminal; a late webhook or a retried completion must not re-verify
            return PaymentSessionResult(status=derive_status(session), data=copy.deepcopy(dict(session_data)))

        result = await self.gateway.verify_transaction(session.transaction_reference)
        outcome = await self._apply_verification(session, result)
        if outcome is None:
            self._logger.info("paystack_authorize_pending", reference=session.transaction_reference)
            return PaymentSessionResult(
                status=PaymentSessionStatus.PENDING,
                data=copy.deepcopy(dict(session_data)),
            )

        status = derive_status(outcome)
        self._logger.info(
            "paystack_authorize_result",
            reference=session.transaction_reference,
            status=status.value,
            reason=getattr(outcome, "reason", None),
            transaction_id=transaction_id_of(outcome),
        )
        return PaymentSessionResult(status=status, data=outcome.to_data())

    async def _apply_verification(
        self,
        session: InitiatedSession,
        result: GatewayResult[TransactionSnapshot],
    ) -> Optional[PaymentSession]:
        """Next session for a verify result, or None while Paystack has no final answer."""
        common = dict(
            host_data_of(session),
            transaction_reference=session.transaction_reference,
            amount=session.amount,
            currency=session.currency,
        )
        if not result.status:
            return ErroredSession(
                **common,
                reason=ErrorReason.GATEWAY_REJECTED,
                transaction_id=None,
                transaction_data=result.data.raw() if result.data else {},
                message=result.message,
            )

        snapshot = result.data or TransactionSnapshot()
        gateway_status = (snapshot.status or "").lower()

        if gateway_status == "failed":
            return ErroredSession(
                **common,
                reason=ErrorReason.FAILED,
                transaction_id=snapshot.id,
                transaction_data=snapshot.raw(),
                message=(snapshot.model_extra or {}).get("gateway_response"),
            )
        if gateway_status != "success":
            return None
        if snapshot.id is None:
            raise PaymentProviderError(
                "Paystack reported a successful transaction without an id",
                details={"operation": "authorize_payment", "reference": session.transaction_reference},
            )

        mismatch = self._settlement_mismatch(session, snapshot)
        if mismatch is None:
            return AuthorizedSession(
                **common,
                transaction_id=snapshot.id,
                transaction_data=snapshot.raw(),
            )

        paid = round_subunits(snapshot.amount) if snapshot.amount is not None else None
        self._logger.warning(
            "paystack_settlement_mismatch",
            reference=session.transaction_reference,
            reason=mismatch.value,
            expected_amount=session.amount,
            paid_amount=paid,
            expected_currency=session.currency,
            paid_currency=snapshot.currency,
        )
        refund = await self.gateway.create_refund(transaction_id=snapshot.id, amount=paid)
        if not refund.status:
            raise PaymentProviderError(
                refund.message or "Failed to refund mismatched Paystack payment",
                details={"operation": "authorize_payment", "transaction_id": snapshot.id},
            )
        return ErroredSession(
            **common,
            reason=mismatch,
            transaction_id=snapshot.id,
            transaction_data=snapshot.raw(),
            refund_data=refund.data.raw() if refund.data else {},
            message=f"Paid {paid} {snapshot.currency}, expected {session.amount} {session.currency}",
        )

    @staticmethod
    def _settlement_mismatch(session: InitiatedSession, snapshot: TransactionSnapshot) -> Optional[ErrorReason]:
        if snapshot.amount is None or round_subunits(snapshot.amount) != session.amount:
            return ErrorReason.AMOUNT_MISMATCH
        if (snapshot.currency or "").upper() != session.currency:
            return ErrorReason.CURRENCY_MISMATCH
        return None

    async def get_payment_status(self, session_data: SessionData) -> PaymentSessionStatus:
        session = load_session(session_data)
        transaction_id = transaction_id_of(session)
        if transaction_id is None:
            return PaymentSessionStatus.PENDING

        result = await self.gateway.get_transaction(transaction_id)
        if not result.status:
            self._logger.warning("paystack_status_rejected", transaction_id=transaction_id, message=result.message)
            return PaymentSessionStatus.ERROR
        return map_transaction_status(result.data.status if result.data else None)

    async def retrieve_payment(self, session_data: SessionData) -> dict[str, Any]:
        """Refresh the stored gateway snapshot; the session state is left as is."""
        session = load_session(session_data)
        transaction_id = transaction_id_of(session)
        if transaction_id is None:
            return copy.deepcopy(dict(session_data))

        result = await self.gateway.get_transaction(transaction_id)
        if not result.status:
            raise PaymentProviderError(
                result.message or "Failed to retrieve Paystack payment",
                details={"operation": "retrieve_payment", "transaction_id": transaction_id},
            )
        merged = {**session.transaction_data, **(result.data.raw() if result.data else {})}
        return session.model_copy(update={"transaction_data": merged}).to_data()

    async def refund_payment(
        self,
        session_data: SessionData,
        amount: Union[Decimal, int, float, str],
    ) -> dict[str, Any]:
        """Refund ``amount`` (major units of the session currency)."""
        session = load_session(session_data)
        transaction_id = transaction_id_of(session)
        if transaction_id is None:
            raise MissingTransactionIdException()

        refund_amount = to_subunits(amount, session.currency)
        self._logger.info(
            "paystack_refund_request",
            transaction_id=transaction_id,
            amount=refund_amount,
            currency=session.currency,
        )
        result = await self.gateway.create_refund(transaction_id=transaction_id, amount=refund_amount)
        if not result.status:
            raise PaymentProviderError(
                result.message or "Failed to refund Paystack payment",
                details={"operation": "refund_payment", "transaction_id": transaction_id},
            )
        refund_data = result.data.raw() if result.data else {}
        return session.model_copy(update={"refund_data": refund_data}).to_data()

    # -- host contract no-ops ---------------------------------------------
    # Paystack settles at verification and has no cancel primitive.

    async def capture_payment(self, session_data: SessionData) -> dict[str, Any]:
        return copy.deepcopy(dict(session_data))

    async def cancel_payment(self, session_data: SessionData) -> dict[str, Any]:
        return copy.deepcopy(dict(session_data))

    async def delete_payment(self, session_data: SessionData) -> dict[str, Any]:
        return copy.deepcopy(dict(session_data))

    # -- webhooks ---------------------------------------------------------

    def get_webhook_action_and_data(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookActionResult:
        return self._dispatcher.resolve(raw_body, headers)

    async def aclose(self) -> None:
        await self.gateway.aclose()
