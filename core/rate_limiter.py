"""Per-client rate limits for the API (SlowAPI, in-memory counters)."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse


def get_client_identifier(request: Request) -> str:
    """First X-Forwarded-For address when behind a proxy, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(key_func=get_client_identifier, strategy="fixed-window")


class RateLimits:
    # Hits the upstream feed on every request
    REALTIME_RELAY = "60/minute"
    ADMIN_RELOAD = "2/minute"

    # In-memory lookups
    SCHEDULE = "240/minute"
    STATUS = "240/minute"
    HEALTH = "1000/minute"


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": f"Rate limit exceeded: {exc.detail}",
        },
        headers={"Retry-After": "60"},
    )
