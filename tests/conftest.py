"""Pytest bootstrap configuration.

Environment defaults are set before any module that builds settings at import
time is collected. The Paystack API is replaced by an httpx.MockTransport.
"""
import json
import os

os.environ.setdefault("PAYSTACK__SECRET_KEY", "sk_test_secret")
os.environ.setdefault("RETRY__BASE_BACKOFF", "0")
os.environ.setdefault("WEBHOOK__DISPATCH_DELAY_SECONDS", "0")

import httpx
import pytest

from domain.checkout.repository import (
    CartCompletionResult,
    CartContext,
    CartRepository,
    IdempotencyKey,
    IdempotencyKeyRepository,
    OrderRepository,
)
from domain.common.unit_of_work import AbstractCheckoutUnitOfWork


TEST_SECRET_KEY = os.environ["PAYSTACK__SECRET_KEY"]


def _transaction(tx_id, reference, status, amount=2000, currency="GHS", **extra):
    return {
        "id": tx_id,
        "reference": reference,
        "status": status,
        "amount": amount,
        "currency": currency,
        "metadata": {"session_id": "ps_01"},
        **extra,
    }


class FakePaystack:
    """In-memory stand-in for https://api.paystack.co routed by method and path."""

    def __init__(self):
        self.calls = []
        self.fail_next = 0
        self.initialize_ok = True
        self.refund_ok = True
        txs = [
            _transaction(123, "123-passed", "success", gateway_response="Approved"),
            _transaction(124, "123-failed", "failed", gateway_response="Declined"),
            _transaction(125, "123-underpaid", "success", amount=1500),
            _transaction(126, "123-wrong-currency", "success", currency="NGN"),
            _transaction(127, "123-pending", "ongoing"),
            _transaction(None, "123-no-id", "success"),
        ]
        self.by_reference = {tx["reference"]: tx for tx in txs}
        self.by_id = {str(tx["id"]): tx for tx in txs if tx["id"] is not None}

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def paths(self, method=None):
        return [c["path"] for c in self.calls if method is None or c["method"] == method]

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.calls.append({
            "method": request.method,
            "path": path,
            "json": body,
            "authorization": request.headers.get("authorization"),
        })
        if self.fail_next > 0:
            self.fail_next -= 1
            return httpx.Response(500, json={"status": False, "message": "Internal server error"})

        if request.method == "POST" and path == "/transaction/initialize":
            return self._initialize(body)
        if request.method == "GET" and path.startswith("/transaction/verify/"):
            tx = self.by_reference.get(path.rsplit("/", 1)[-1])
            return self._envelope(tx, "Verification successful", "Transaction reference not found")
        if request.method == "GET" and path.startswith("/transaction/"):
            tx = self.by_id.get(path.rsplit("/", 1)[-1])
            return self._envelope(tx, "Transaction retrieved", "Transaction not found")
        if request.method == "POST" and path == "/refund":
            return self._refund(body)
        if request.method == "POST" and path == "/reject":
            return httpx.Response(400, json={"status": False, "message": "Invalid amount"})
        return httpx.Response(404, json={"status": False, "message": "Not found"})

    def _initialize(self, body):
        if not self.initialize_ok:
            return httpx.Response(200, json={"status": False, "message": "Invalid key"})
        access_code = f"ac_{len(self.calls)}"
        return httpx.Response(200, json={
            "status": True,
            "message": "Authorization URL created",
            "data": {
                "authorization_url": f"https://checkout.paystack.com/{access_code}",
                "access_code": access_code,
                "reference": body["reference"],
            },
        })

    @staticmethod
    def _envelope(tx, ok_message, missing_message):
        # Paystack reports some logical failures with status:false in a 200 body
        if tx is None:
            return httpx.Response(200, json={"status": False, "message": missing_message})
        return httpx.Response(200, json={"status": True, "message": ok_message, "data": tx})

    def _refund(self, body):
        if not self.refund_ok:
            return httpx.Response(200, json={"status": False, "message": "Refund not allowed"})
        tx = self.by_id.get(str(body["transaction"]), {})
        return httpx.Response(200, json={
            "status": True,
            "message": "Refund has been queued for processing",
            "data": {
                "id": 9001,
                "status": "pending",
                "amount": body.get("amount", tx.get("amount")),
                "currency": tx.get("currency"),
                "transaction": {"id": body["transaction"], "reference": tx.get("reference")},
            },
        })


@pytest.fixture
def fake_paystack():
    return FakePaystack()


@pytest.fixture
def paystack_options():
    return {"secret_key": TEST_SECRET_KEY}


@pytest.fixture
def processor(fake_paystack, paystack_options):
    from api.dependencies import build_payment_processor

    return build_payment_processor(paystack_options, transport=fake_paystack.transport())


def initiated_session(reference, amount=2000, currency="GHS", **extra):
    return {
        "state": "initiated",
        "transaction_reference": reference,
        "amount": amount,
        "currency": currency,
        **extra,
    }


def authorized_session(transaction_id, reference="123-passed", amount=2000, currency="GHS"):
    return {
        "state": "authorized",
        "transaction_reference": reference,
        "amount": amount,
        "currency": currency,
        "transaction_id": transaction_id,
        "transaction_data": {"id": transaction_id, "status": "success"},
    }


class InMemoryOrders(OrderRepository):
    def __init__(self):
        self.cart_orders = {}
        self.providers = {}
        self.captured = []

    async def exists_for_cart(self, cart_id):
        return cart_id in self.cart_orders

    async def get_payment_providers(self, order_id):
        return self.providers.get(order_id, [])

    async def capture_payment(self, order_id):
        self.captured.append(order_id)


class InMemoryIdempotencyKeys(IdempotencyKeyRepository):
    def __init__(self):
        self.keys = {}

    async def retrieve_or_create(self, idempotency_key, request_path):
        return self.keys.setdefault(idempotency_key, IdempotencyKey(idempotency_key, request_path))


class InMemoryCarts(CartRepository):
    def __init__(self, orders):
        self.orders = orders
        self.response_code = 200
        self.completions = []

    async def retrieve_context(self, cart_id):
        return CartContext(cart_id=cart_id, ip="127.0.0.1")

    async def complete(self, cart_id, *, idempotency_key, context):
        self.completions.append((cart_id, idempotency_key, context))
        if self.response_code == 200:
            self.orders.cart_orders[cart_id] = f"order_for_{cart_id}"
            return CartCompletionResult(200, {"order_id": f"order_for_{cart_id}"})
        return CartCompletionResult(self.response_code, {"message": "cart already completing"})


class InMemoryCheckoutUnitOfWork(AbstractCheckoutUnitOfWork):
    def __init__(self):
        super().__init__()
        self.orders = InMemoryOrders()
        self.carts = InMemoryCarts(self.orders)
        self.idempotency_keys = InMemoryIdempotencyKeys()
        self.commits = 0
        self.rollbacks = 0

    async def commit(self):
        self.commits += 1
        self._committed = True

    async def rollback(self):
        self.rollbacks += 1

    def __call__(self):
        # reusable as its own factory; reset per transaction
        self._committed = False
        return self
