"""Order numbers and tracking tokens.

Order numbers are ``ORD-`` followed by the creation time in milliseconds
(13 digits, so they sort by time) and six random hex characters.
"""

import secrets
import time


def next_order_number() -> str:
    millis = time.time_ns() // 1_000_000
    return f"ORD-{millis:013d}{secrets.token_hex(3).upper()}"


def new_tracking_token() -> str:
    return secrets.token_urlsafe(16)


def tokens_match(expected, presented) -> bool:
    if not expected or not presented:
        return False
    return secrets.compare_digest(str(expected), str(presented))
