"""
Inbound Paystack webhook classification.

Turns a raw callback into the action the host should take. Nothing here raises
for a bad event: forged, unsupported or unmappable events are reported as
NOT_SUPPORTED so the gateway is never pushed into a retry loop.
"""
from __future__ import annotations

import json
from typing import Mapping, Optional

from pydantic import ValidationError

from application.dtos.paystack import (
    WebhookAction,
    WebhookActionData,
    WebhookActionResult,
    WebhookEvent,
)
from core.logging_config import get_logger
from infrastructure.external.payments.exceptions import PaymentConfigurationError
from infrastructure.external.payments.signature import signature_from_headers, verify_signature


SUPPORTED_EVENT = "charge.success"


class WebhookDispatcher:
    def __init__(self, secret_key: Optional[str], *, debug: bool = False, logger=None) -> None:
        if not secret_key:
            raise PaymentConfigurationError(
                "The Paystack webhook handler requires the secret_key option",
                option="secret_key",
            )
        self._secret_key = secret_key
        self._debug = debug
        self._logger = logger or get_logger(__name__)

    def verify(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        return verify_signature(raw_body, self._secret_key, signature_from_headers(headers))

    def parse(self, raw_body: bytes) -> Optional[WebhookEvent]:
        try:
            return WebhookEvent.model_validate(json.loads(raw_body))
        except (ValueError, ValidationError):
            return None

    def resolve(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookActionResult:
        if not self.verify(raw_body, headers):
            self._logger.warning("paystack_webhook_invalid_signature", body_bytes=len(raw_body))
            return WebhookActionResult.not_supported()

        event = self.parse(raw_body)
        if event is None:
            self._logger.warning("paystack_webhook_malformed_body")
            return WebhookActionResult.not_supported()

        if self._debug:
            self._logger.info("paystack_webhook_event", paystack_event=event.event, data=event.data)

        if event.event != SUPPORTED_EVENT:
            self._logger.info("paystack_webhook_event_ignored", paystack_event=event.event)
            return WebhookActionResult.not_supported()

        metadata = event.metadata
        session_id = metadata.get("session_id")
        if not isinstance(session_id, str) or not session_id.strip():
            self._logger.warning("paystack_webhook_missing_session_id", reference=event.data.get("reference"))
            return WebhookActionResult.not_supported()

        cart_id = metadata.get("cart_id")
        result = WebhookActionResult(
            action=WebhookAction.AUTHORIZED,
            data=WebhookActionData(
                session_id=session_id,
                amount=event.data.get("amount"),
                cart_id=cart_id if isinstance(cart_id, str) and cart_id else None,
            ),
        )
        self._logger.info(
            "paystack_webhook_authorized",
            session_id=session_id,
            reference=event.data.get("reference"),
        )
        return result
