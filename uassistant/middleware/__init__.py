from .auth import APIKeyMiddleware
from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import (
    RateLimitExceeded,
    RateLimitMiddleware,
    SlidingWindowLimiter,
)

__all__ = [
    "APIKeyMiddleware",
    "RequestLoggingMiddleware",
    "RateLimitExceeded",
    "RateLimitMiddleware",
    "SlidingWindowLimiter",
]
