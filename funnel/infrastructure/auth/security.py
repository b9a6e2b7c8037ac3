"""Shared credential and response-header helpers.

Single source of truth for the admin token comparison and the security
headers attached to admin responses, so handlers never re-derive them.
"""
import re

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


def compare(token, secret) -> bool:
    """Compare *token* with *secret* in time independent of the first mismatch.

    Only the two lengths influence the running time. Anything that is not a
    non-empty ``str`` is a non-match, including an unset secret.
    """
    if not isinstance(token, str) or not isinstance(secret, str):
        return False
    if not token or not secret:
        return False

    token_len = len(token)
    secret_len = len(secret)
    result = token_len ^ secret_len
    for i in range(max(token_len, secret_len)):
        a = ord(token[i]) if i < token_len else 0
        b = ord(secret[i]) if i < secret_len else 0
        result |= a ^ b
    return result == 0


def bearer_token(header_value: str | None) -> str:
    """Strip a leading ``Bearer`` scheme (any case) from an Authorization value."""
    if not header_value:
        return ""
    return _BEARER_PREFIX.sub("", header_value, count=1)


def build_security_headers() -> dict[str, str]:
    """Headers that stop admin responses from being sniffed, framed or cached."""
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Cache-Control": "no-store",
    }
