"""
Paystack webhook route.

Answers 200 for every event it can classify, including forged ones, so Paystack
does not retry them. Only a missing secret key (500) or, in strict mode, a bad
signature (400) produce error responses.
"""
from __future__ import annotations

import hashlib
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from redis.exceptions import RedisError

from api.dependencies import get_checkout_completion_service, get_webhook_dispatcher
from application.dtos.paystack import WebhookAction
from application.services.checkout_completion import CheckoutCompletionService
from application.services.webhook_dispatcher import WebhookDispatcher
from core.config import settings
from core.logging_config import get_logger
from core.response import success_response
from core.settings import payment_settings
from infrastructure.external.cache import get_redis_client
from infrastructure.external.payments.exceptions import PaymentSignatureError


router = APIRouter(prefix="/paystack", tags=["Paystack"])
logger = get_logger(__name__)


async def _is_duplicate_delivery(raw_body: bytes) -> bool:
    """SET NX on the body hash; without Redis every delivery counts as new."""
    if not settings.redis.url:
        return False
    body_hash = hashlib.sha256(raw_body or b"{}").hexdigest()
    try:
        cache = await get_redis_client()
        is_new = await cache.set(
            f"webhook:paystack:{body_hash}",
            1,
            ttl=max(60, payment_settings.webhook.dedupe_ttl_seconds),
            nx=True,
        )
    except (RedisError, OSError, RuntimeError) as exc:
        # the host idempotency key still guards completion
        logger.warning("webhook_dedupe_unavailable", error=str(exc))
        return False
    return not is_new


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
    completion: Optional[CheckoutCompletionService] = Depends(get_checkout_completion_service),
):
    raw_body = await request.body()
    headers = dict(request.headers)

    if payment_settings.webhook.strict_signature and not dispatcher.verify(raw_body, headers):
        raise PaymentSignatureError("Invalid x-paystack-signature header")

    result = dispatcher.resolve(raw_body, headers)
    if result.action is not WebhookAction.AUTHORIZED:
        return success_response(data=result.model_dump(mode="json"), message="Event not supported")

    if await _is_duplicate_delivery(raw_body):
        logger.info("webhook_duplicate_ignored", session_id=result.data.session_id)
        return success_response(
            data={**result.model_dump(mode="json"), "duplicate": True},
            message="Duplicate event ignored",
        )

    cart_id = result.data.cart_id
    if completion is not None and cart_id:
        background_tasks.add_task(
            completion.complete_after_delay,
            cart_id,
            payment_settings.webhook.dispatch_delay_seconds,
        )
        logger.info(
            "webhook_completion_scheduled",
            cart_id=cart_id,
            delay_seconds=payment_settings.webhook.dispatch_delay_seconds,
        )

    return success_response(data=result.model_dump(mode="json"), message="Webhook received")
