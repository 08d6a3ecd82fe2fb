"""
Fixed-window rate limiting per client IP
"""
import logging
import time

from fastapi import Depends, Request

from sinar.core.cache import CacheStore, get_cache
from sinar.core.config import settings
from sinar.core.exceptions import TooManyRequests

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit(request: Request, cache: CacheStore = Depends(get_cache)) -> None:
    """Router dependency: RATE_LIMIT_MAX_REQUESTS per RATE_LIMIT_WINDOW_SECONDS"""
    if not settings.RATE_LIMIT_ENABLED:
        return
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    bucket = int(time.time() // window)
    ip = client_ip(request)
    count = await cache.incr(f"ratelimit:{ip}:{bucket}", ttl=window)
    if count > settings.RATE_LIMIT_MAX_REQUESTS:
        logger.warning("Rate limit exceeded for %s", ip)
        raise TooManyRequests()
