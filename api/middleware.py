"""HTTP middleware and exception handlers for the Sharpline API.

Provides:
- Security headers (X-Content-Type-Options, X-Frame-Options, etc.)
- FeedError handler (upstream feed down → 503)
- Global exception handler with sanitized responses
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from sharpline.errors import FeedError

logger = logging.getLogger(__name__)


async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    # Only add HSTS when served over TLS
    if request.url.scheme == "https":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


async def feed_error_handler(request: Request, exc: FeedError):
    """Upstream odds feed unavailable."""
    logger.warning(f"Feed error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"error": "Odds feed unavailable", "detail": str(exc), "path": request.url.path},
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler - never leak internal details."""
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "path": request.url.path},
    )
