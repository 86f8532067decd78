"""
Host checkout ports used by the webhook completion path.

The commerce host owns carts, orders and idempotency keys; these interfaces only
say what the adapter needs from it.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class IdempotencyKey:
    idempotency_key: str
    request_path: str
    recovery_point: Optional[str] = None


@dataclass(frozen=True)
class CartContext:
    cart_id: str
    ip: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CartCompletionResult:
    response_code: int
    response_body: Any = None


class OrderRepository(ABC):
    """Read and settle orders created from carts."""

    @abstractmethod
    async def exists_for_cart(self, cart_id: str) -> bool:
        pass

    @abstractmethod
    async def get_payment_providers(self, order_id: str) -> list[str]:
        """Provider ids of every payment attached to the order."""
        pass

    @abstractmethod
    async def capture_payment(self, order_id: str) -> None:
        pass


class IdempotencyKeyRepository(ABC):

    @abstractmethod
    async def retrieve_or_create(self, idempotency_key: str, request_path: str) -> IdempotencyKey:
        """Return the stored key or create it; at most one completion runs per key."""
        pass


class CartRepository(ABC):

    @abstractmethod
    async def retrieve_context(self, cart_id: str) -> CartContext:
        pass

    @abstractmethod
    async def complete(
        self,
        cart_id: str,
        *,
        idempotency_key: IdempotencyKey,
        context: CartContext,
    ) -> CartCompletionResult:
        pass
