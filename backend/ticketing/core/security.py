"""
Webhook signature verification and admin secret checks.

Gateway webhooks are signed as base64(HMAC-SHA256(secret, timestamp + raw_body)).
The raw request body is signed, not the parsed JSON, so verification must
happen before any decoding.
"""

import base64
import hashlib
import hmac
from typing import Optional


def compute_signature(secret: str, raw_body: bytes, timestamp: str = "") -> str:
    message = timestamp.encode("utf-8") + raw_body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(
    secret: str,
    raw_body: bytes,
    signature: Optional[str],
    timestamp: str = "",
) -> bool:
    """Constant-time comparison of the supplied signature with the expected one."""
    if not secret or not signature:
        return False
    expected = compute_signature(secret, raw_body, timestamp)
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("ascii", "ignore"))


def secrets_match(expected: str, supplied: Optional[str]) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))
