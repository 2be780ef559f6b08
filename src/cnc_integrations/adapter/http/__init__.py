"""HTTP API adapter with authentication and rate limiting."""

from .adapter import HttpApiAdapter, HttpVerb
from .auth import auth_headers
from .config import HttpApiConfig, RateLimit
from .rate_limit import FixedWindowRateLimiter

__all__ = [
    "HttpApiAdapter",
    "HttpVerb",
    "HttpApiConfig",
    "RateLimit",
    "FixedWindowRateLimiter",
    "auth_headers",
]
