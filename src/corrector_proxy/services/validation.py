"""Input validation for proxy requests."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Final

from corrector_proxy.core.errors import ErrorCode, ProxyError

VALID_MODES: Final[tuple[str, ...]] = ("polish", "to_en")
DEFAULT_MODE: Final[str] = "polish"
DEFAULT_STYLE: Final[str] = "neutral"

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: object) -> bool:
    """Return True for canonical version 1-5 UUID strings."""
    return isinstance(value, str) and bool(_UUID_RE.match(value))


@dataclass(frozen=True)
class TransformInput:
    """A validated /transform request body."""

    mode: str
    style: str
    text: str


def forced_error_code(payload: Any, header_value: str | None) -> str | None:
    """Return the error code a test caller asked to be forced, if any.

    The header takes precedence over the ``test_error`` body field.
    """
    if header_value:
        return header_value
    if isinstance(payload, dict):
        value = payload.get("test_error")
        if isinstance(value, str) and value:
            return value
    return None


def validate_transform_payload(payload: Any, *, max_text_length: int) -> TransformInput:
    """Validate a decoded /transform body.

    Checks run in a fixed order: text presence, text encoding, text length,
    mode, style.

    Raises:
        ProxyError: ``INVALID_REQUEST`` describing the first failed check.
    """
    body = payload if isinstance(payload, dict) else {}
    text = body.get("text", "")
    mode = body.get("mode", DEFAULT_MODE)
    style = body.get("style", DEFAULT_STYLE)

    if not isinstance(text, str) or not text.strip():
        raise ProxyError(ErrorCode.INVALID_REQUEST, "Text is required")

    # JSON escapes can smuggle in lone surrogates, which cannot be hashed or sent upstream.
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as err:
        raise ProxyError(ErrorCode.INVALID_REQUEST, "Invalid text") from err

    if len(text) > max_text_length:
        raise ProxyError(
            ErrorCode.INVALID_REQUEST,
            f"Text too long (max {max_text_length} chars)",
        )

    if mode not in VALID_MODES:
        raise ProxyError(ErrorCode.INVALID_REQUEST, "Invalid mode")

    if not isinstance(style, str):
        raise ProxyError(ErrorCode.INVALID_REQUEST, "Invalid style")

    return TransformInput(mode=mode, style=style, text=text)
