"""Business logic services for the corrector proxy."""

from .cache import ResponseCache, fingerprint
from .dedupe import DedupCoordinator
from .rate_limit import FixedWindowRateLimiter, RateLimitDecision
from .registry import InstallationRecord, InstallationRegistry
from .upstream import UpstreamClient, UpstreamResult

__all__ = [
    "DedupCoordinator",
    "FixedWindowRateLimiter",
    "InstallationRecord",
    "InstallationRegistry",
    "RateLimitDecision",
    "ResponseCache",
    "UpstreamClient",
    "UpstreamResult",
    "fingerprint",
]
