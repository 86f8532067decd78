"""
Paystack webhook signature verification.

Paystack signs every event with HMAC-SHA512 of the raw request body keyed by the
account secret key and sends the hex digest in ``x-paystack-signature``.
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Mapping, Optional

SIGNATURE_HEADER = "x-paystack-signature"


def compute_signature(raw_body: bytes, secret_key: str) -> str:
    return hmac.new(secret_key.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def verify_signature(raw_body: bytes, secret_key: str, provided_signature: Optional[str]) -> bool:
    """True only when the header matches the digest of the exact bytes received.

    Compared as bytes: headers arrive latin-1 decoded and may hold non-ASCII text.
    """
    if not provided_signature or not secret_key:
        return False
    expected = compute_signature(raw_body, secret_key).encode("ascii")
    provided = provided_signature.strip().lower().encode("utf-8", "surrogateescape")
    return hmac.compare_digest(expected, provided)


def signature_from_headers(headers: Mapping[str, str]) -> Optional[str]:
    for name, value in headers.items():
        if name.lower() == SIGNATURE_HEADER:
            return value
    return None
