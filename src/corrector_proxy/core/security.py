"""Install token helpers."""
from __future__ import annotations

import hashlib
import re
import secrets

TOKEN_PREFIX = "tok_"
TOKEN_BYTES = 24

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def generate_install_token() -> str:
    """Return a new high-entropy bearer token."""
    return f"{TOKEN_PREFIX}{secrets.token_hex(TOKEN_BYTES)}"


def hash_key(token: str) -> str:
    """Return a SHA-256 hash of the provided token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def get_bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer`` header, or return ""."""
    match = _BEARER_RE.match(authorization or "")
    return match.group(1).strip() if match else ""
