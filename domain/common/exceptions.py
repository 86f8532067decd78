"""Domain-level business exceptions shared by domain and infrastructure.

The core layer only maps these to HTTP responses; the domain never imports core.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """Base business exception."""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        message_key: Optional[str] = None,
        format_params: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.message_key = message_key
        self.format_params = format_params
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
        message_key: str | None = None,
        format_params: dict | None = None,
        error_type: str = "DomainValidationError",
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type=error_type,
            details=details,
            field=field,
            message_key=message_key or "validation.domain",
            format_params=format_params,
        )


class PaymentValidationException(DomainValidationException):
    def __init__(self, message: str, *, field: str | None = None, details: dict | None = None):
        super().__init__(
            message,
            field=field,
            details=details,
            message_key="payment.validation",
            error_type="PaymentValidationError",
        )


class MissingEmailException(DomainValidationException):
    def __init__(self):
        super().__init__(
            "Email is required",
            field="email",
            message_key="payment.email.required",
            error_type="MissingEmail",
        )


class UnsupportedCurrencyException(DomainValidationException):
    def __init__(self, currency: Optional[str], supported: tuple[str, ...]):
        super().__init__(
            f"Unsupported currency code: {currency}",
            field="currency_code",
            details={"currency": currency, "supported": list(supported)},
            message_key="payment.currency.unsupported",
            format_params={"currency": currency},
            error_type="UnsupportedCurrency",
        )


class MissingTransactionReferenceException(DomainValidationException):
    def __init__(self):
        super().__init__(
            "Payment session has no transaction reference; initiate the payment first",
            field="transaction_reference",
            message_key="payment.reference.missing",
            error_type="MissingTransactionReference",
        )


class MissingTransactionIdException(DomainValidationException):
    def __init__(self):
        super().__init__(
            "Payment session has no transaction id; the payment has not been authorized",
            field="transaction_id",
            message_key="payment.transaction_id.missing",
            error_type="MissingTransactionId",
        )
