"""Fixed-window rate limiting keyed by client IP and path, on top of `limits`.

Counters live in process memory, so limits are per worker.
"""
import math
import time
from typing import NamedTuple

from fastapi import HTTPException, Request, Response
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from app.config import get_settings


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int
    reset_at: float  # Unix timestamp
    limit: int


PRESETS = {
    "contact": "5 per hour",
    "newsletter": "10 per hour",
    "general": "100 per 15 minutes",
    "auth": "10 per 15 minutes",
}

storage = MemoryStorage()
limiter = FixedWindowRateLimiter(storage)


def check_limit(item: RateLimitItem, *identifiers: str, strategy: FixedWindowRateLimiter | None = None) -> RateLimitResult:
    """Count one request against the window for identifiers."""
    strategy = strategy or limiter
    allowed = strategy.hit(item, *identifiers)
    stats = strategy.get_window_stats(item, *identifiers)
    return RateLimitResult(
        allowed=allowed,
        remaining=max(0, stats.remaining),
        reset_at=stats.reset_time,
        limit=item.amount,
    )


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    for header in ("x-real-ip", "cf-connecting-ip"):
        value = (request.headers.get(header) or "").strip()
        if value:
            return value
    return "unknown"


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_at)),
    }


def rate_limit(preset: str):
    """FastAPI dependency enforcing one of PRESETS on the current route."""
    item = parse(PRESETS[preset])

    def dependency(request: Request, response: Response) -> None:
        if not get_settings().rate_limit_enabled:
            return
        result = check_limit(item, get_client_ip(request), request.url.path)
        headers = rate_limit_headers(result)
        if not result.allowed:
            retry_after = max(1, math.ceil(result.reset_at - time.time()))
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please try again later.",
                headers={**headers, "Retry-After": str(retry_after)},
            )
        for name, value in headers.items():
            response.headers[name] = value

    return dependency
