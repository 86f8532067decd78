"""
Payment session data owned by the Paystack provider.

The host persists the session blob; the adapter only reads it in and hands a new
version back. Each lifecycle state has its own schema and the blob is validated
when it enters the state machine, so call sites never probe optional keys.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Annotated, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from domain.common.exceptions import PaymentValidationException
from domain.payment.currency import normalize_currency


TransactionId = Union[int, str]


class PaymentSessionStatus(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    ERROR = "error"


class ErrorReason(str, Enum):
    GATEWAY_REJECTED = "gateway_rejected"
    FAILED = "failed"
    AMOUNT_MISMATCH = "amount_mismatch"
    CURRENCY_MISMATCH = "currency_mismatch"


class _SessionData(BaseModel):
    """Keys the host merged into the blob (see update_payment_data) ride along as extras."""

    model_config = ConfigDict(frozen=True, extra="allow")

    def to_data(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class _ChargedSession(_SessionData):
    """Fields shared by every state reached after initialization."""

    transaction_reference: str = Field(min_length=1)
    amount: int = Field(ge=0, description="Amount in currency sub-units")
    currency: str

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, v: str) -> str:
        return normalize_currency(v)


class UninitiatedSession(_SessionData):
    state: Literal["uninitiated"] = "uninitiated"


class InitiatedSession(_ChargedSession):
    state: Literal["initiated"] = "initiated"
    access_code: Optional[str] = None
    authorization_url: Optional[str] = None
    session_id: Optional[str] = None
    cart_id: Optional[str] = None


class AuthorizedSession(_ChargedSession):
    state: Literal["authorized"] = "authorized"
    transaction_id: TransactionId
    transaction_data: dict[str, Any] = Field(default_factory=dict)
    refund_data: Optional[dict[str, Any]] = None


class ErroredSession(_ChargedSession):
    state: Literal["errored"] = "errored"
    reason: ErrorReason
    transaction_id: Optional[TransactionId] = None
    transaction_data: dict[str, Any] = Field(default_factory=dict)
    refund_data: Optional[dict[str, Any]] = None
    message: Optional[str] = None


PaymentSession = Annotated[
    Union[UninitiatedSession, InitiatedSession, AuthorizedSession, ErroredSession],
    Field(discriminator="state"),
]

_session_adapter: TypeAdapter[PaymentSession] = TypeAdapter(PaymentSession)


def load_session(data: Optional[Mapping[str, Any]]) -> PaymentSession:
    """Validate a persisted blob; empty data is an uninitiated session."""
    if not data:
        return UninitiatedSession()
    payload = dict(data)
    payload.setdefault("state", "uninitiated")
    try:
        return _session_adapter.validate_python(payload)
    except ValidationError as exc:
        errors = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
        raise PaymentValidationException(
            "Invalid payment session data",
            details={"errors": errors},
        ) from exc


def derive_status(session: PaymentSession) -> PaymentSessionStatus:
    """Status of a session as recorded by its last gateway snapshot."""
    if isinstance(session, AuthorizedSession):
        # Paystack settles funds at successful verification
        return PaymentSessionStatus.CAPTURED
    if isinstance(session, ErroredSession):
        return PaymentSessionStatus.ERROR
    return PaymentSessionStatus.PENDING


def transaction_id_of(session: PaymentSession) -> Optional[TransactionId]:
    return getattr(session, "transaction_id", None)


_PROVIDER_FIELDS = frozenset().union(
    *(model.model_fields for model in (UninitiatedSession, InitiatedSession, AuthorizedSession, ErroredSession))
)


def host_data_of(session: PaymentSession) -> dict[str, Any]:
    """Host-owned keys stored beside the provider fields, carried across transitions."""
    return {k: v for k, v in (session.model_extra or {}).items() if k not in _PROVIDER_FIELDS}
