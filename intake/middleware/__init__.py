# intake/middleware/__init__.py
"""
HTTP middleware: request ids, request logging, security headers and rate limiting.
"""

from intake.middleware.logging import LoggingMiddleware
from intake.middleware.rate_limiter import RateLimitingMiddleware
from intake.middleware.request_id import RequestIdMiddleware
from intake.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "LoggingMiddleware",
    "RateLimitingMiddleware",
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
]
