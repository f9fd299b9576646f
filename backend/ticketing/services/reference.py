"""
Booking identifiers: order ids, reference numbers, and parsing of scanned codes.

Reference numbers look like DIW1234567K2Q: the event prefix, the last six
digits of the millisecond clock, and four random characters. Uniqueness is
enforced by the unique index on bookings.reference_number; the store
retries generation on collision.

Door scanners submit whatever the QR code contains, e.g.
"SLANUP-DIWALI-DIW1234567K2Q-Asha Rao". Parsing rule: upper-case and trim;
if a known prefix token occurs, take the text after it up to the next "-";
otherwise the whole normalized input is the candidate.
"""

import secrets
import string
import time
from typing import Iterable

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
_ORDER_ALPHABET = string.ascii_lowercase + string.digits
SEPARATOR = "-"


def generate_reference_number(prefix: str) -> str:
    millis = str(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"{prefix.upper()}{millis[-6:]}{suffix}"


def generate_order_id() -> str:
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ORDER_ALPHABET) for _ in range(6))
    return f"TXN{millis}{suffix}"


def normalize(code: str) -> str:
    return code.strip().upper()


def parse_reference(code: str, prefix_tokens: Iterable[str] = ()) -> str:
    normalized = normalize(code)
    for token in prefix_tokens:
        token = normalize(token)
        if token and token in normalized:
            remainder = normalized.split(token, 1)[1]
            candidate = remainder.split(SEPARATOR, 1)[0].strip()
            if candidate:
                return candidate
    return normalized


def reference_candidates(code: str, prefix_tokens: Iterable[str] = ()) -> list[str]:
    """Ordered lookup candidates: parsed reference first, then the raw normalized input."""
    parsed = parse_reference(code, prefix_tokens)
    raw = normalize(code)
    candidates = [parsed]
    if raw and raw != parsed:
        candidates.append(raw)
    return [c for c in candidates if c]
