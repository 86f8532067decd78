import pytest

from application.services.checkout_completion import (
    CheckoutCompletionService,
    CompletionOutcome,
    OrderCaptureService,
)
from conftest import InMemoryCheckoutUnitOfWork
from domain.checkout.repository import IdempotencyKey
from infrastructure.external.payments.exceptions import CartCompletionError


class RecordingLogger:
    def __init__(self):
        self.events = []

    def info(self, event, **kw):
        self.events.append(("info", event, kw))

    def error(self, event, **kw):
        self.events.append(("error", event, kw))


@pytest.fixture
def uow():
    return InMemoryCheckoutUnitOfWork()


@pytest.mark.asyncio
async def test_charge_success_completes_cart(uow):
    service = CheckoutCompletionService(uow, request_path="/paystack/hooks")

    outcome = await service.handle_charge_success("cart_01")

    assert outcome is CompletionOutcome.COMPLETED
    cart_id, key, context = uow.carts.completions[0]
    assert cart_id == "cart_01"
    assert key == IdempotencyKey("cart_01", "/paystack/hooks")
    assert context.cart_id == "cart_01"
    assert uow.commits == 1


@pytest.mark.asyncio
async def test_existing_order_skips_completion(uow):
    uow.orders.cart_orders["cart_01"] = "order_1"
    service = CheckoutCompletionService(uow)

    outcome = await service.handle_charge_success("cart_01")

    assert outcome is CompletionOutcome.SKIPPED_ORDER_EXISTS
    assert uow.carts.completions == []


@pytest.mark.asyncio
async def test_second_delivery_finds_order_from_first(uow):
    service = CheckoutCompletionService(uow)

    first = await service.handle_charge_success("cart_01")
    second = await service.handle_charge_success("cart_01")

    assert first is CompletionOutcome.COMPLETED
    assert second is CompletionOutcome.SKIPPED_ORDER_EXISTS
    assert len(uow.carts.completions) == 1


@pytest.mark.asyncio
async def test_non_200_completion_raises_and_rolls_back(uow):
    uow.carts.response_code = 409
    service = CheckoutCompletionService(uow)

    with pytest.raises(CartCompletionError) as exc_info:
        await service.handle_charge_success("cart_01")

    assert exc_info.value.response_code == 409
    assert exc_info.value.details["cart_id"] == "cart_01"
    assert uow.rollbacks == 1
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_background_completion_logs_failures(uow):
    uow.carts.response_code = 500
    logger = RecordingLogger()
    service = CheckoutCompletionService(uow, logger=logger)

    await service.complete_after_delay("cart_01", 0)

    errors = [event for level, event, _ in logger.events if level == "error"]
    assert errors == ["paystack_completion_failed"]
    assert uow.rollbacks == 1


@pytest.mark.asyncio
async def test_background_completion_runs_after_delay(uow):
    service = CheckoutCompletionService(uow)

    await service.complete_after_delay("cart_01", 0.01)

    assert uow.orders.cart_orders == {"cart_01": "order_for_cart_01"}


@pytest.mark.asyncio
async def test_order_placed_captures_paystack_payments(uow):
    uow.orders.providers = {"order_1": ["manual", "paystack"], "order_2": ["manual"]}
    service = OrderCaptureService(uow)

    assert await service.handle_order_placed("order_1") is True
    assert await service.handle_order_placed("order_2") is False
    assert uow.orders.captured == ["order_1"]
