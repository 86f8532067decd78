"""
API dependencies: composition of the Paystack services for request handlers.
"""
from typing import Optional

from fastapi import FastAPI, Request

from application.services.checkout_completion import CheckoutCompletionService, UnitOfWorkFactory
from application.services.payment_processor import PaystackPaymentProcessor
from application.services.webhook_dispatcher import WebhookDispatcher
from core.settings import payment_settings
from infrastructure.external.payments import get_payment_gateway, resolve_options


def register_checkout_unit_of_work(app: FastAPI, uow_factory: UnitOfWorkFactory) -> None:
    """Called by the embedding host to enable webhook-driven cart completion."""
    app.state.checkout_uow_factory = uow_factory


async def get_webhook_dispatcher() -> WebhookDispatcher:
    options = resolve_options()
    return WebhookDispatcher(options.secret_key, debug=options.debug)


async def get_checkout_completion_service(request: Request) -> Optional[CheckoutCompletionService]:
    factory = getattr(request.app.state, "checkout_uow_factory", None)
    if factory is None:
        return None
    return CheckoutCompletionService(
        factory,
        request_path=payment_settings.webhook.idempotency_request_path,
    )


def build_payment_processor(options=None, *, transport=None) -> PaystackPaymentProcessor:
    """Processor wired from host options (or PAYSTACK__* settings)."""
    opts = resolve_options(options)
    return PaystackPaymentProcessor(get_payment_gateway(opts, transport=transport), options=opts)
