"""
Paystack gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements it.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, Union, runtime_checkable

from application.dtos.paystack import (
    GatewayResult,
    RefundSnapshot,
    TransactionAuthorization,
    TransactionSnapshot,
)


@runtime_checkable
class PaystackGateway(Protocol):
    """Amounts are integer sub-units; results mirror the gateway envelope."""

    provider: str

    async def initialize_transaction(
        self,
        *,
        amount: int,
        email: str,
        currency: str,
        reference: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> GatewayResult[TransactionAuthorization]: ...

    async def verify_transaction(self, reference: str) -> GatewayResult[TransactionSnapshot]: ...

    async def get_transaction(self, transaction_id: Union[int, str]) -> GatewayResult[TransactionSnapshot]: ...

    async def create_refund(
        self,
        *,
        transaction_id: Union[int, str],
        amount: Optional[int] = None,
    ) -> GatewayResult[RefundSnapshot]: ...

    async def aclose(self) -> None: ...
