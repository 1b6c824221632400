"""Security utilities: constant-time token comparison and audit redaction."""
import hashlib
import hmac
import secrets
from typing import Any, Optional

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset(
    {
        "token",
        "api_token",
        "access_token",
        "refresh_token",
        "authorization",
        "bearer",
        "password",
        "secret",
        "credentials",
        "credential",
        "api_key",
        "apikey",
    }
)
SENSITIVE_FRAGMENTS = ("token", "secret", "password", "credential")


class TokenVerifier:
    """Compares bearer tokens without leaking the mismatch position.

    Both values are reduced to HMAC-SHA256 digests under a per-process random
    key, so the final comparison always runs over 32 bytes regardless of the
    length or content of the presented token.
    """

    def __init__(self, expected_token: str):
        self._key = secrets.token_bytes(32)
        self._expected_digest = self._digest(expected_token)

    def _digest(self, value: str) -> bytes:
        return hmac.new(self._key, value.encode("utf-8"), hashlib.sha256).digest()

    def verify(self, presented_token: str) -> bool:
        return hmac.compare_digest(self._digest(presented_token), self._expected_digest)


def parse_bearer_token(header_value: str) -> Optional[str]:
    """Return the token from ``Bearer <token>``, or None for any other scheme."""
    scheme, _, token = header_value.partition(" ")
    if scheme != "Bearer":
        return None
    token = token.strip()
    return token or None


def is_sensitive_key(key: str) -> bool:
    normalized = key.strip().lower()
    if normalized in SENSITIVE_KEYS:
        return True
    return any(fragment in normalized for fragment in SENSITIVE_FRAGMENTS)


def redact_audit_params(value: Any) -> Any:
    """Recursively replace values under credential-like keys with a marker."""
    if isinstance(value, dict):
        return {
            key: REDACTED if is_sensitive_key(str(key)) else redact_audit_params(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_audit_params(item) for item in value]
    return value
