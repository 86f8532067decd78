"""
Completion paths that run on the host's checkout unit of work.

A successful charge can be reported twice: by the storefront's redirect (which
drives authorize_payment) and by Paystack's webhook. Both end in cart
completion, and whichever arrives second has to find the order already there.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable

from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractCheckoutUnitOfWork
from infrastructure.external.payments.exceptions import CartCompletionError


UnitOfWorkFactory = Callable[[], AbstractCheckoutUnitOfWork]


class CompletionOutcome(str, Enum):
    COMPLETED = "completed"
    SKIPPED_ORDER_EXISTS = "skipped_order_exists"


class CheckoutCompletionService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        request_path: str = "/paystack/hooks",
        logger=None,
    ) -> None:
        self._uow_factory = uow_factory
        self._request_path = request_path
        self._logger = logger or get_logger(__name__)

    async def handle_charge_success(self, cart_id: str) -> CompletionOutcome:
        """Complete the cart unless an order already exists for it."""
        async with self._uow_factory() as uow:
            if await uow.orders.exists_for_cart(cart_id):
                self._logger.info("paystack_completion_skipped", cart_id=cart_id, reason="order_exists")
                return CompletionOutcome.SKIPPED_ORDER_EXISTS

            key = await uow.idempotency_keys.retrieve_or_create(cart_id, self._request_path)
            context = await uow.carts.retrieve_context(cart_id)
            result = await uow.carts.complete(cart_id, idempotency_key=key, context=context)
            if result.response_code != 200:
                raise CartCompletionError(
                    cart_id,
                    response_code=result.response_code,
                    response_body=result.response_body,
                )

        self._logger.info("paystack_completion_succeeded", cart_id=cart_id)
        return CompletionOutcome.COMPLETED

    async def complete_after_delay(self, cart_id: str, delay: float) -> None:
        """Background entry point for webhook-triggered completion.

        The delay gives the storefront's synchronous confirmation a head start; it
        narrows the race but the idempotency key is what settles it. Failures are
        logged and left to the synchronous path.
        """
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await self.handle_charge_success(cart_id)
        except Exception:
            self._logger.error("paystack_completion_failed", cart_id=cart_id, exc_info=True)


class OrderCaptureService:
    """Marks Paystack payments captured once the host places the order."""

    def __init__(self, uow_factory: UnitOfWorkFactory, *, provider_id: str = "paystack", logger=None) -> None:
        self._uow_factory = uow_factory
        self._provider_id = provider_id
        self._logger = logger or get_logger(__name__)

    async def handle_order_placed(self, order_id: str) -> bool:
        async with self._uow_factory() as uow:
            providers = await uow.orders.get_payment_providers(order_id)
            if self._provider_id not in providers:
                return False
            await uow.orders.capture_payment(order_id)
        self._logger.info("paystack_order_captured", order_id=order_id)
        return True
