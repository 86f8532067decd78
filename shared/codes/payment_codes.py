"""
Payment specific codes and Paystack status mapping.
"""
from __future__ import annotations

from enum import IntEnum

from domain.payment.session import PaymentSessionStatus


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    SIGNATURE_ERROR = 60002
    CONFIGURATION_ERROR = 60005
    COMPLETION_FAILED = 60006


# Paystack transaction.status -> session status; anything unlisted is still in flight
PAYSTACK_STATUS_TO_SESSION = {
    "success": PaymentSessionStatus.AUTHORIZED,
    "failed": PaymentSessionStatus.ERROR,
}


def map_transaction_status(gateway_status: object) -> PaymentSessionStatus:
    if not isinstance(gateway_status, str):
        return PaymentSessionStatus.PENDING
    return PAYSTACK_STATUS_TO_SESSION.get(gateway_status.lower(), PaymentSessionStatus.PENDING)
