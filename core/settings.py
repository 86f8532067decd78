"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so the provider options can also be built
from a plain mapping handed over by the commerce host.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 15.0
    write: float = 15.0
    total: float = 30.0


class PaymentRetry(BaseModel):
    max: int = 3
    base_backoff: float = 0.5


class WebhookSettings(BaseModel):
    dispatch_delay_seconds: float = 5.0
    dedupe_ttl_seconds: int = 300
    strict_signature: bool = False
    idempotency_request_path: str = "/paystack/hooks"


class PaystackSettings(BaseModel):
    """Provider options: the host passes secret_key, disable_retries and debug."""

    secret_key: Optional[str] = None
    base_url: str = "https://api.paystack.co"
    disable_retries: bool = False
    debug: bool = False


class PaymentSettings(BaseSettings):
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    paystack: PaystackSettings = Field(default_factory=PaystackSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
