"""
Paystack DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.types import condecimal

from domain.payment.session import PaymentSessionStatus


T = TypeVar("T")

GatewayAmount = Union[int, float, None]


class TransactionAuthorization(BaseModel):
    """Redirect artifacts returned by POST /transaction/initialize."""

    model_config = ConfigDict(extra="allow")

    reference: str
    access_code: Optional[str] = None
    authorization_url: Optional[str] = None


class TransactionSnapshot(BaseModel):
    """A Paystack transaction as returned by verify/fetch; unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    status: Optional[str] = None
    reference: Optional[str] = None
    amount: GatewayAmount = None
    currency: Optional[str] = None
    metadata: Any = None

    def raw(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class RefundSnapshot(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    status: Optional[str] = None
    amount: GatewayAmount = None
    currency: Optional[str] = None
    transaction: Any = None

    def raw(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class GatewayResult(BaseModel, Generic[T]):
    """Paystack response envelope: {status, message, data}."""

    status: bool
    message: str = ""
    data: Optional[T] = None


class InitiatePaymentInput(BaseModel):
    """What the host knows about a checkout when a Paystack session starts."""

    amount: condecimal(ge=0)  # type: ignore[valid-type]
    currency_code: str
    email: Optional[str] = None
    session_id: Optional[str] = None
    cart_id: Optional[str] = None
    customer_id: Optional[str] = None

    def gateway_metadata(self) -> dict[str, str]:
        keys = ("session_id", "cart_id", "customer_id")
        return {k: getattr(self, k) for k in keys if getattr(self, k)}


class PaymentSessionResult(BaseModel):
    status: PaymentSessionStatus
    data: dict[str, Any]


class WebhookAction(str, Enum):
    AUTHORIZED = "authorized"
    NOT_SUPPORTED = "not_supported"


class WebhookActionData(BaseModel):
    session_id: str
    amount: Any = None
    cart_id: Optional[str] = None


class WebhookActionResult(BaseModel):
    action: WebhookAction
    data: Optional[WebhookActionData] = None

    @classmethod
    def not_supported(cls) -> "WebhookActionResult":
        return cls(action=WebhookAction.NOT_SUPPORTED)


class WebhookEvent(BaseModel):
    """Inbound Paystack event body."""

    model_config = ConfigDict(extra="allow")

    event: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def metadata(self) -> dict[str, Any]:
        # Paystack sends "" when a transaction was initialized without metadata
        meta = self.data.get("metadata")
        return meta if isinstance(meta, dict) else {}

