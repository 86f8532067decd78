import json

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

import api.routes.paystack as paystack_route
from api.dependencies import register_checkout_unit_of_work
from conftest import TEST_SECRET_KEY, InMemoryCheckoutUnitOfWork
from core.config import settings
from core.settings import payment_settings
from infrastructure.external.payments.signature import compute_signature
from main import app


URL = "/api/v1/paystack/webhook"


def _body(metadata=None, event="charge.success"):
    if metadata is None:
        metadata = {"session_id": "ps_01", "cart_id": "cart_01"}
    return json.dumps({
        "event": event,
        "data": {"id": 123, "reference": "pstk_abc", "amount": 2000, "currency": "NGN", "metadata": metadata},
    }).encode()


def _post(client, body, secret=TEST_SECRET_KEY):
    return client.post(
        URL,
        content=body,
        headers={"content-type": "application/json", "x-paystack-signature": compute_signature(body, secret)},
    )


class FakeCache:
    def __init__(self, error=None):
        self.keys = {}
        self.error = error

    async def set(self, key, value, ttl=None, nx=False):
        if self.error is not None:
            raise self.error
        if nx and key in self.keys:
            return False
        self.keys[key] = (value, ttl)
        return True


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def checkout_uow():
    uow = InMemoryCheckoutUnitOfWork()
    register_checkout_unit_of_work(app, uow)
    yield uow
    del app.state.checkout_uow_factory


@pytest.fixture
def redis_cache(monkeypatch):
    cache = FakeCache()
    monkeypatch.setattr(settings.redis, "url", "redis://localhost:6379/0")

    async def _get_cache():
        return cache

    monkeypatch.setattr(paystack_route, "get_redis_client", _get_cache)
    return cache


def test_valid_event_is_authorized(client):
    response = _post(client, _body())

    assert response.status_code == 200
    payload = response.json()
    assert payload["code"] == 0
    assert payload["data"]["action"] == "authorized"
    assert payload["data"]["data"] == {"session_id": "ps_01", "amount": 2000, "cart_id": "cart_01"}


def test_forged_event_is_acknowledged_as_not_supported(client):
    response = _post(client, _body(), secret="sk_forged")

    assert response.status_code == 200
    assert response.json()["message"] == "Event not supported"
    assert response.json()["data"] == {"action": "not_supported", "data": None}


def test_non_ascii_signature_header_is_acknowledged(client):
    response = client.post(
        URL,
        content=_body(),
        headers={"content-type": "application/json", "x-paystack-signature": b"\xe9abc"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["action"] == "not_supported"


def test_unsupported_event_is_acknowledged(client):
    response = _post(client, _body(event="transfer.success"))

    assert response.status_code == 200
    assert response.json()["data"]["action"] == "not_supported"


def test_missing_secret_key_is_a_server_error(client, monkeypatch):
    monkeypatch.setattr(payment_settings.paystack, "secret_key", None)

    response = _post(client, _body())

    assert response.status_code == 500
    payload = response.json()
    assert payload["code"] == 60005
    assert payload["error"]["type"] == "PaymentConfigurationError"


def test_strict_mode_rejects_bad_signature(client, monkeypatch):
    monkeypatch.setattr(payment_settings.webhook, "strict_signature", True)

    rejected = _post(client, _body(), secret="sk_forged")
    accepted = _post(client, _body())

    assert rejected.status_code == 400
    assert rejected.json()["code"] == 60002
    assert accepted.status_code == 200
    assert accepted.json()["data"]["action"] == "authorized"


def test_authorized_event_completes_registered_cart(client, checkout_uow):
    response = _post(client, _body())

    assert response.status_code == 200
    assert checkout_uow.orders.cart_orders == {"cart_01": "order_for_cart_01"}
    assert checkout_uow.idempotency_keys.keys["cart_01"].request_path == "/paystack/hooks"


def test_event_without_cart_id_completes_nothing(client, checkout_uow):
    response = _post(client, _body(metadata={"session_id": "ps_01"}))

    assert response.status_code == 200
    assert checkout_uow.carts.completions == []


def test_duplicate_delivery_is_ignored(client, checkout_uow, redis_cache):
    body = _body()

    first = _post(client, body)
    second = _post(client, body)

    assert "duplicate" not in first.json()["data"]
    assert second.status_code == 200
    assert second.json()["data"]["duplicate"] is True
    assert len(checkout_uow.carts.completions) == 1
    (key, (_, ttl)), = redis_cache.keys.items()
    assert key.startswith("webhook:paystack:")
    assert ttl == payment_settings.webhook.dedupe_ttl_seconds


def test_dedupe_outage_still_processes_event(client, checkout_uow, redis_cache):
    redis_cache.error = RedisConnectionError("connection refused")

    response = _post(client, _body())

    assert response.status_code == 200
    assert response.json()["data"]["action"] == "authorized"
    assert len(checkout_uow.carts.completions) == 1


def test_health_echoes_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.json()["data"] == {"status": "healthy"}
    assert response.headers["X-Request-ID"] == "req-123"
