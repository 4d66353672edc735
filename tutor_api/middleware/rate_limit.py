"""Rate limiting for the classification API, built on slowapi."""

import json
from typing import Any, Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address


def get_client_ip(request: Request) -> str:
    """
    Get the client IP address used as the rate limit key.

    X-Forwarded-For is only honoured when the direct peer is one of the
    configured trusted proxies.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address string
    """
    from tutor_api.config import get_settings

    direct_ip: str = get_remote_address(request)

    settings = get_settings()
    if not settings.trusted_proxies:
        return direct_ip

    trusted_proxy_list = [
        ip.strip() for ip in settings.trusted_proxies.split(",")
        if ip.strip()
    ]

    if direct_ip in trusted_proxy_list:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

    return direct_ip


# In-memory storage, keyed by client IP. With headers enabled, routes that
# return plain data must accept a `response: Response` parameter.
limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["200/minute"],
    headers_enabled=True,
)


RATE_LIMITS = {
    "analyze": "30/minute",    # POST /api/classification/analyze
    "batch": "5/minute",       # POST /api/classification/batch - up to 50 texts each
    "feedback": "100/minute",  # PUT /api/classification/{id}/feedback
    "reads": "100/minute",     # GET /api/classification/stats, /subjects
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Custom handler for rate limit exceeded errors.

    Returns 429 Too Many Requests with:
    - Retry-After: Seconds until the client may retry
    - X-RateLimit-Limit: The limit that was exceeded
    - X-RateLimit-Remaining: Always 0 when exceeded

    Args:
        request: FastAPI request object
        exc: RateLimitExceeded exception with limit details

    Returns:
        Response with 429 status code and rate limit headers
    """
    retry_after = getattr(exc, "retry_after", 60)

    error_body = {
        "success": False,
        "detail": "Rate limit exceeded",
        "message": f"Too many requests. Please retry after {retry_after} seconds.",
        "retry_after": retry_after,
    }

    response = Response(
        content=json.dumps(error_body),
        status_code=429,
        media_type="application/json",
    )

    response.headers["Retry-After"] = str(retry_after)
    response.headers["X-RateLimit-Remaining"] = "0"

    if hasattr(exc, "detail") and exc.detail:
        response.headers["X-RateLimit-Limit"] = exc.detail

    return response


def get_limiter() -> Any:
    """Return the module-level limiter used by route decorators."""
    return limiter


def limit_analyze(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply rate limit for the single-problem analyze endpoint."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["analyze"])(func)
    return decorated


def limit_batch(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply rate limit for the batch classification endpoint."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["batch"])(func)
    return decorated


def limit_feedback(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply rate limit for the feedback endpoint."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["feedback"])(func)
    return decorated


def limit_reads(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply rate limit for read-only endpoints."""
    decorated: Callable[..., Any] = limiter.limit(RATE_LIMITS["reads"])(func)
    return decorated
