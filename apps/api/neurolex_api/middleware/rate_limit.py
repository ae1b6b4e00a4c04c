"""Rate limiting middleware."""

import logging
import time

import redis
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from neurolex_api.settings import get_settings
from neurolex_api.utils.metrics import rate_limit_backend_errors, rate_limit_rejections

logger = logging.getLogger(__name__)
settings = get_settings()
redis_client = redis.from_url(settings.redis_url, decode_responses=True)

LIMITED_METHODS = ("POST", "PUT", "PATCH")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token bucket rate limiting per account for state-changing requests."""

    async def dispatch(self, request: Request, call_next):
        """Apply rate limiting."""
        if request.method not in LIMITED_METHODS:
            return await call_next(request)

        # Account from request state (set by auth middleware)
        subject = getattr(request.state, "account_id", None)
        if not subject:
            subject = request.client.host if request.client else "unknown"

        limit = settings.rate_limit_requests_per_minute
        key = f"rate_limit:{subject}"
        now = time.time()

        try:
            pipe = redis_client.pipeline()
            pipe.get(key)
            pipe.get(f"{key}:last_refill")
            results = pipe.execute()
        except redis.RedisError as e:
            # Redis down: let the request through rather than block purchases
            rate_limit_backend_errors.inc()
            logger.warning(f"Rate limiter unavailable: {e}")
            return await call_next(request)

        tokens = float(results[0]) if results[0] else limit
        last_refill = float(results[1]) if results[1] else now

        # Refill tokens based on time passed
        refill_amount = ((now - last_refill) / 60.0) * limit
        tokens = min(limit, tokens + refill_amount)

        if tokens < 1:
            rate_limit_rejections.inc()
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please try again later."},
                headers={"Retry-After": "60"},
            )

        tokens -= 1

        ttl = settings.rate_limit_ttl_seconds
        try:
            pipe = redis_client.pipeline()
            pipe.set(key, tokens, ex=ttl)
            pipe.set(f"{key}:last_refill", now, ex=ttl)
            pipe.execute()
        except redis.RedisError as e:
            rate_limit_backend_errors.inc()
            logger.warning(f"Rate limiter state not saved: {e}")

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(int(tokens))
        response.headers["X-RateLimit-Reset"] = str(int(now + 60))

        return response
