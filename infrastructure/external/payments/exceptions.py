"""
Exceptions for the Paystack provider mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


PROVIDER = "paystack"


def _details(provider: str, status_code: Optional[int], details: Optional[dict]) -> dict:
    full_details: dict = {"provider": provider, "status_code": status_code}
    if details:
        full_details.update(details)
    return full_details


class PaymentConfigurationError(BusinessException):
    def __init__(self, message: str, *, provider: str = PROVIDER, option: Optional[str] = None):
        super().__init__(
            code=PaymentCode.CONFIGURATION_ERROR,
            message=message,
            error_type="PaymentConfigurationError",
            details={"provider": provider, "option": option},
        )


class PaymentProviderError(BusinessException):
    """The gateway answered but rejected the call (status:false or a 4xx)."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = PROVIDER,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        self.status_code = status_code
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="PaymentProviderError",
            details=_details(provider, status_code, details),
        )


class PaymentRecoverableError(BusinessException):
    """The gateway could not be reached, or kept failing with 5xx, after all retries."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = PROVIDER,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        self.status_code = status_code
        super().__init__(
            code=PaymentCode.PROVIDER_RECOVERABLE,
            message=message,
            error_type="PaymentRecoverableError",
            details=_details(provider, status_code, details),
        )


class PaymentSignatureError(BusinessException):
    def __init__(self, message: str, *, provider: str = PROVIDER, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=message,
            error_type="PaymentSignatureError",
            details=full_details,
        )


class CartCompletionError(BusinessException):
    def __init__(self, cart_id: str, *, response_code: int, response_body: object = None):
        self.response_code = response_code
        super().__init__(
            code=PaymentCode.COMPLETION_FAILED,
            message=f"Cart {cart_id} could not be completed (response code {response_code})",
            error_type="CartCompletionError",
            details={"cart_id": cart_id, "response_code": response_code, "response_body": response_body},
        )
