import json

import pytest

from application.dtos.paystack import WebhookAction
from application.services.webhook_dispatcher import WebhookDispatcher
from infrastructure.external.payments.exceptions import PaymentConfigurationError
from infrastructure.external.payments.signature import compute_signature


SECRET = "sk_test_secret"


def _event(event="charge.success", metadata=None, amount=2000):
    if metadata is None:
        metadata = {"session_id": "ps_01", "cart_id": "cart_01"}
    return json.dumps({
        "event": event,
        "data": {"id": 123, "reference": "pstk_abc", "amount": amount, "currency": "NGN", "metadata": metadata},
    }).encode()


def _signed(body, secret=SECRET):
    return {"x-paystack-signature": compute_signature(body, secret)}


@pytest.fixture
def dispatcher():
    return WebhookDispatcher(SECRET)


def test_valid_charge_success_is_authorized(dispatcher):
    body = _event(amount=12345)

    result = dispatcher.resolve(body, _signed(body))

    assert result.action is WebhookAction.AUTHORIZED
    assert result.data.session_id == "ps_01"
    assert result.data.amount == 12345
    assert result.data.cart_id == "cart_01"


def test_cart_id_is_optional(dispatcher):
    body = _event(metadata={"session_id": "ps_02"})

    result = dispatcher.resolve(body, _signed(body))

    assert result.action is WebhookAction.AUTHORIZED
    assert result.data.cart_id is None


def test_invalid_signature_is_not_supported(dispatcher):
    body = _event()

    assert dispatcher.resolve(body, _signed(body, "sk_forged")).action is WebhookAction.NOT_SUPPORTED
    assert dispatcher.resolve(body, {}).action is WebhookAction.NOT_SUPPORTED


def test_body_changed_after_signing_is_not_supported(dispatcher):
    headers = _signed(_event(amount=2000))

    result = dispatcher.resolve(_event(amount=1), headers)

    assert result.action is WebhookAction.NOT_SUPPORTED
    assert result.data is None


@pytest.mark.parametrize("event", ["charge.failed", "transfer.success", "refund.processed"])
def test_other_events_are_not_supported(dispatcher, event):
    body = _event(event=event)
    assert dispatcher.resolve(body, _signed(body)).action is WebhookAction.NOT_SUPPORTED


@pytest.mark.parametrize("metadata", [{}, "", {"cart_id": "cart_01"}, {"session_id": ""}, {"session_id": 42}])
def test_missing_session_id_is_not_supported(dispatcher, metadata):
    body = _event(metadata=metadata)
    assert dispatcher.resolve(body, _signed(body)).action is WebhookAction.NOT_SUPPORTED


@pytest.mark.parametrize("body", [b"not json", b"[]", b'{"data": {}}'])
def test_malformed_signed_body_is_not_supported(dispatcher, body):
    assert dispatcher.resolve(body, _signed(body)).action is WebhookAction.NOT_SUPPORTED


def test_mixed_case_signature_header_is_accepted(dispatcher):
    body = _event()
    headers = {"X-Paystack-Signature": compute_signature(body, SECRET)}

    assert dispatcher.resolve(body, headers).action is WebhookAction.AUTHORIZED


def test_dispatcher_requires_secret_key():
    with pytest.raises(PaymentConfigurationError):
        WebhookDispatcher(None)


def test_processor_delegates_webhook_classification(processor):
    body = _event()

    result = processor.get_webhook_action_and_data(body, _signed(body))

    assert result.action is WebhookAction.AUTHORIZED
    assert result.data.session_id == "ps_01"


def test_non_ascii_signature_is_not_supported(dispatcher):
    body = _event()

    result = dispatcher.resolve(body, {"x-paystack-signature": "\u00e9" * 128})

    assert result.action is WebhookAction.NOT_SUPPORTED
