"""Unit of Work abstraction over the host checkout transaction."""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.checkout.repository import (
    CartRepository,
    IdempotencyKeyRepository,
    OrderRepository,
)


class AbstractCheckoutUnitOfWork(ABC):
    """Transaction boundary for order/cart work done on behalf of a webhook."""

    orders: OrderRepository
    carts: CartRepository
    idempotency_keys: IdempotencyKeyRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly

    async def __aenter__(self) -> "AbstractCheckoutUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        else:
            # commit only when writable and not committed explicitly
            if not self._readonly and not self._committed:
                await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
