"""
Factory for the Paystack gateway client.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

import httpx

from core.settings import PaystackSettings, payment_settings
from application.ports.payment_gateway import PaystackGateway


def resolve_options(options: Union[PaystackSettings, Mapping[str, Any], None] = None) -> PaystackSettings:
    """Provider options from the host, falling back to PAYSTACK__* settings."""
    if options is None:
        return payment_settings.paystack
    if isinstance(options, PaystackSettings):
        return options
    return PaystackSettings.model_validate(dict(options))


def get_payment_gateway(
    options: Union[PaystackSettings, Mapping[str, Any], None] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PaystackGateway:
    from .paystack_client import PaystackClient

    opts = resolve_options(options)
    timeouts = payment_settings.timeouts
    return PaystackClient(
        opts.secret_key,
        base_url=opts.base_url,
        timeout=httpx.Timeout(
            timeouts.total,
            connect=timeouts.connect,
            read=timeouts.read,
            write=timeouts.write,
        ),
        max_retries=payment_settings.retry.max,
        retry_delay=payment_settings.retry.base_backoff,
        disable_retries=opts.disable_retries,
        debug=opts.debug,
        transport=transport,
    )
