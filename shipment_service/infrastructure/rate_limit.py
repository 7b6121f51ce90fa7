"""
Request rate limiting with SlowAPI.

Every route gets ``RATE_LIMIT_DEFAULT``; login and registration are
decorated with the stricter ``RATE_LIMIT_AUTH``. Counters live in Redis
when ``REDIS_URL`` is set so several instances share them, otherwise in
process memory. If Redis stops answering, counting switches to process
memory until it comes back.
"""

from typing import Optional

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from shipment_service.core import get_logger
from shipment_service.core_settings import get_settings

logger = get_logger(__name__)
settings = get_settings()

def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)

def build_limiter(storage_uri: Optional[str], default_limit: str, enabled: bool = True) -> Limiter:
    return Limiter(
        key_func=get_client_ip,
        enabled=enabled,
        default_limits=[default_limit],
        storage_uri=storage_uri or "memory://",
        in_memory_fallback_enabled=True,
        in_memory_fallback=[default_limit],
    )

limiter = build_limiter(settings.REDIS_URL, settings.RATE_LIMIT_DEFAULT, enabled=settings.RATE_LIMIT_ENABLED)

def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit exceeded: {get_client_ip(request)} on {request.url.path}")
    return JSONResponse(
        status_code=429,
        content={"success": False, "message": "Too many requests, please try again later."},
        headers={"Retry-After": "60"},
    )
