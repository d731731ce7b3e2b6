"""Stateless proof-of-intent tokens for mutating calls.

Token format: ``{random_hex}.{timestamp_ms}.{hmac_sha256_hex}``. The
signature covers ``random.timestamp`` and tokens expire after a TTL.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time

DEFAULT_TTL_SECONDS = 60 * 60


class CsrfTokens:
    """Issues and validates HMAC-signed CSRF tokens."""

    def __init__(self, secret: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        if not secret:
            raise ValueError("CSRF secret must not be empty")
        self._secret = secret.encode("utf-8")
        self._ttl_ms = ttl_seconds * 1000

    def _sign(self, payload: str) -> str:
        return hmac.new(self._secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue(self, now_ms: int | None = None) -> str:
        """Return a fresh signed token."""
        random_value = secrets.token_hex(32)
        timestamp = str(now_ms if now_ms is not None else int(time.time() * 1000))
        signature = self._sign(f"{random_value}.{timestamp}")
        return f"{random_value}.{timestamp}.{signature}"

    def validate(self, token: str | None, now_ms: int | None = None) -> bool:
        """Check signature and expiry. Never raises."""
        if not token:
            return False

        parts = token.split(".")
        if len(parts) != 3:
            return False
        random_value, timestamp, signature = parts

        expected = self._sign(f"{random_value}.{timestamp}")
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
            return False

        try:
            issued_ms = int(timestamp)
        except ValueError:
            return False

        current_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return current_ms - issued_ms <= self._ttl_ms

    __call__ = validate
