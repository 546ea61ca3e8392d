"""Client for the third-party text-completion API.

This module owns the single outbound call the proxy makes. It includes:

- Prompt construction from a fixed per-mode table
- A hard end-to-end timeout that abandons the in-flight HTTP request
- Translation of upstream failures into proxy error codes

The status mapping decides whether the extension re-registers, backs off or
gives up, so it must stay stable:

=========  =======================  ======================
Upstream   Proxy code               Message
=========  =======================  ======================
400        INVALID_REQUEST          Invalid request
401        UPSTREAM_UNAVAILABLE     Upstream down
402        PAYMENT_REQUIRED         Payment required
408, 504   UPSTREAM_UNAVAILABLE     Upstream timeout
429        RATE_LIMITED             Too many requests
other      UPSTREAM_UNAVAILABLE     Upstream service error
=========  =======================  ======================

A 429 propagates the upstream ``Retry-After`` as ``retry_after_ms``. A
timeout raised locally maps to UPSTREAM_UNAVAILABLE "Upstream timeout"; any
other transport failure maps to UPSTREAM_UNAVAILABLE with its default message.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Final, Protocol

import httpx

from corrector_proxy.core.errors import ErrorCode, ProxyError
from corrector_proxy.core.settings import Settings

logger = logging.getLogger(__name__)

MODE_PROMPTS: Final[dict[str, str]] = {
    "polish": "Improve grammar and tone. Keep meaning.",
    "to_en": "Translate to natural English. Fix grammar.",
}

UPSTREAM_TIMEOUT_MESSAGE: Final[str] = "Upstream timeout"

UPSTREAM_STATUS_MAP: Final[dict[int, tuple[ErrorCode, str]]] = {
    400: (ErrorCode.INVALID_REQUEST, "Invalid request"),
    401: (ErrorCode.UPSTREAM_UNAVAILABLE, "Upstream down"),
    402: (ErrorCode.PAYMENT_REQUIRED, "Payment required"),
    408: (ErrorCode.UPSTREAM_UNAVAILABLE, UPSTREAM_TIMEOUT_MESSAGE),
    429: (ErrorCode.RATE_LIMITED, "Too many requests"),
    504: (ErrorCode.UPSTREAM_UNAVAILABLE, UPSTREAM_TIMEOUT_MESSAGE),
}
DEFAULT_UPSTREAM_ERROR: Final[tuple[ErrorCode, str]] = (
    ErrorCode.UPSTREAM_UNAVAILABLE,
    "Upstream service error",
)


@dataclass(frozen=True)
class UpstreamConfig:
    """Immutable configuration for upstream calls."""

    api_key: str
    base_url: str
    model: str
    timeout_seconds: float
    max_tokens: int = 500
    temperature: float = 0.3


@dataclass(frozen=True)
class UpstreamResult:
    """Either an output string or a classified error, never both."""

    output: str | None = None
    error: ProxyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TextTransformer(Protocol):
    """Anything that can stand in for the upstream client."""

    async def transform(self, text: str, mode: str) -> UpstreamResult: ...

    async def close(self) -> None: ...


def load_upstream_config(settings: Settings) -> UpstreamConfig:
    """Build upstream configuration from application settings."""
    return UpstreamConfig(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
    )


def build_system_prompt(mode: str) -> str:
    return (
        f"You are a writing assistant. {MODE_PROMPTS[mode]} "
        "Return only the result, no explanations."
    )


def parse_retry_after_ms(header_value: str | None) -> int:
    """Convert a ``Retry-After`` header in seconds to milliseconds.

    Missing or non-numeric values yield 0.
    """
    if not header_value:
        return 0
    try:
        seconds = float(header_value)
    except ValueError:
        return 0
    if not math.isfinite(seconds):
        return 0
    return max(0, int(seconds * 1000))


def map_upstream_status(status_code: int, retry_after: str | None = None) -> ProxyError:
    """Translate a non-success upstream status into a proxy error."""
    code, message = UPSTREAM_STATUS_MAP.get(status_code, DEFAULT_UPSTREAM_ERROR)
    retry_after_ms = parse_retry_after_ms(retry_after) if status_code == 429 else 0
    return ProxyError(code, message, retry_after_ms=retry_after_ms)


def unexpected_upstream_error(exc: BaseException) -> UpstreamResult:
    """Classify an exception that escaped the upstream call path."""
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return UpstreamResult(
            error=ProxyError(ErrorCode.UPSTREAM_UNAVAILABLE, UPSTREAM_TIMEOUT_MESSAGE)
        )
    return UpstreamResult(error=ProxyError(ErrorCode.UPSTREAM_UNAVAILABLE))


def extract_output(payload: Any) -> str:
    """Return the trimmed first-choice message content, or "" if absent."""
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content.strip() if isinstance(content, str) else ""


class UpstreamClient:
    """HTTP client wrapper for the completion API."""

    def __init__(
        self,
        config: UpstreamConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_payload(self, text: str, mode: str) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": build_system_prompt(mode)},
                {"role": "user", "content": text},
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }

    async def transform(self, text: str, mode: str) -> UpstreamResult:
        """Send one completion request and classify the outcome.

        Never raises for upstream or transport failures; those come back as
        ``UpstreamResult.error``. An empty completion is a valid output.
        """
        client = await self._ensure_client()
        headers = {"Authorization": f"Bearer {self.config.api_key}"}

        try:
            response = await asyncio.wait_for(
                client.post(
                    "/chat/completions",
                    json=self._build_payload(text, mode),
                    headers=headers,
                ),
                timeout=self.config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(
                "Upstream timed out after %.1fs", self.config.timeout_seconds
            )
            return unexpected_upstream_error(exc)
        except httpx.HTTPError as exc:
            logger.warning("Upstream request failed: %s", exc)
            return unexpected_upstream_error(exc)

        if not response.is_success:
            error = map_upstream_status(
                response.status_code, response.headers.get("retry-after")
            )
            logger.error(
                "Upstream API error: %s - %s", response.status_code, response.text
            )
            return UpstreamResult(error=error)

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Upstream returned a non-JSON body")
            return unexpected_upstream_error(exc)

        return UpstreamResult(output=extract_output(payload))
