"""
Paystack REST adapter built on the shared retrying API client.

Endpoints used (https://paystack.com/docs/api):
- POST /transaction/initialize
- GET  /transaction/verify/{reference}
- GET  /transaction/{id}
- POST /refund
All calls authenticate with the secret key as a bearer token.
"""
from __future__ import annotations

from typing import Any, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from application.dtos.paystack import (
    GatewayResult,
    RefundSnapshot,
    TransactionAuthorization,
    TransactionSnapshot,
)
from application.ports.payment_gateway import PaystackGateway
from core.logging_config import get_logger
from infrastructure.external.api_clients.base import APIError, BaseAPIClient, HTTPMethod
from infrastructure.external.payments.exceptions import (
    PaymentConfigurationError,
    PaymentProviderError,
    PaymentRecoverableError,
)


logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.paystack.co"

M = TypeVar("M", bound=BaseModel)


def to_payment_error(exc: APIError) -> Union[PaymentProviderError, PaymentRecoverableError]:
    """4xx means Paystack rejected the call; anything else means we never got a usable answer."""
    status_code = exc.status_code
    if status_code is not None and 400 <= status_code < 500:
        return PaymentProviderError(exc.message, status_code=status_code)
    return PaymentRecoverableError(exc.message, status_code=status_code)


class PaystackClient(BaseAPIClient, PaystackGateway):
    provider = "paystack"

    def __init__(
        self,
        secret_key: Optional[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Union[float, httpx.Timeout] = 30.0,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        disable_retries: bool = False,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not secret_key:
            raise PaymentConfigurationError(
                "The Paystack provider requires the secret_key option",
                option="secret_key",
            )
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            max_retries=0 if disable_retries else max_retries,
            retry_delay=retry_delay,
            auth_token=secret_key,
            debug=debug,
            transport=transport,
        )

    async def _call(
        self,
        method: HTTPMethod,
        endpoint: str,
        data_model: Type[M],
        *,
        json_data: Optional[dict[str, Any]] = None,
    ) -> GatewayResult[M]:
        try:
            response = await self._request(method, endpoint, json_data=json_data)
        except APIError as exc:
            logger.warning(
                "paystack_request_failed",
                method=method.value,
                endpoint=endpoint,
                status_code=exc.status_code,
                error=exc.message,
            )
            raise to_payment_error(exc) from exc

        try:
            return GatewayResult[data_model].model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PaymentProviderError(
                "Unexpected response from Paystack",
                status_code=response.status_code,
                details={"endpoint": endpoint},
            ) from exc

    async def initialize_transaction(
        self,
        *,
        amount: int,
        email: str,
        currency: str,
        reference: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> GatewayResult[TransactionAuthorization]:
        payload: dict[str, Any] = {"amount": amount, "email": email, "currency": currency}
        if reference:
            payload["reference"] = reference
        if metadata:
            payload["metadata"] = metadata
        return await self._call(
            HTTPMethod.POST, "/transaction/initialize", TransactionAuthorization, json_data=payload
        )

    async def verify_transaction(self, reference: str) -> GatewayResult[TransactionSnapshot]:
        return await self._call(HTTPMethod.GET, f"/transaction/verify/{reference}", TransactionSnapshot)

    async def get_transaction(self, transaction_id: Union[int, str]) -> GatewayResult[TransactionSnapshot]:
        return await self._call(HTTPMethod.GET, f"/transaction/{transaction_id}", TransactionSnapshot)

    async def create_refund(
        self,
        *,
        transaction_id: Union[int, str],
        amount: Optional[int] = None,
    ) -> GatewayResult[RefundSnapshot]:
        payload: dict[str, Any] = {"transaction": transaction_id}
        if amount is not None:
            payload["amount"] = amount
        return await self._call(HTTPMethod.POST, "/refund", RefundSnapshot, json_data=payload)

    async def aclose(self) -> None:
        await self.close()
