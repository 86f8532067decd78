import hashlib
import hmac

from infrastructure.external.payments.signature import (
    compute_signature,
    signature_from_headers,
    verify_signature,
)


BODY = b'{"event":"charge.success","data":{"amount":2000}}'
SECRET = "sk_test_signing"


def test_compute_signature_is_hex_hmac_sha512():
    expected = hmac.new(SECRET.encode(), BODY, hashlib.sha512).hexdigest()
    assert compute_signature(BODY, SECRET) == expected
    assert len(expected) == 128


def test_verify_signature_accepts_matching_digest():
    signature = compute_signature(BODY, SECRET)
    assert verify_signature(BODY, SECRET, signature)
    assert verify_signature(BODY, SECRET, signature.upper())


def test_verify_signature_rejects_tampering():
    signature = compute_signature(BODY, SECRET)
    assert not verify_signature(BODY + b" ", SECRET, signature)
    assert not verify_signature(BODY, "sk_other", signature)
    assert not verify_signature(BODY, SECRET, compute_signature(b"{}", SECRET))


def test_verify_signature_rejects_missing_header():
    assert not verify_signature(BODY, SECRET, None)
    assert not verify_signature(BODY, SECRET, "")


def test_signature_header_lookup_is_case_insensitive():
    assert signature_from_headers({"X-Paystack-Signature": "abc"}) == "abc"
    assert signature_from_headers({"x-paystack-signature": "def"}) == "def"
    assert signature_from_headers({"content-type": "application/json"}) is None


def test_verify_signature_rejects_non_ascii_header():
    assert not verify_signature(BODY, SECRET, "\u00e9" * 128)
    assert not verify_signature(BODY, SECRET, "\u00e9abc")
    assert not verify_signature(BODY, SECRET, compute_signature(BODY, SECRET)[:-1] + "\u00e9")
