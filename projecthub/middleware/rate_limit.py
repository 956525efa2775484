"""
Rate Limiting Middleware

Per-client rate limiting using Redis.

ARCHITECTURE: Token bucket per client address. The bucket holds up to
RATE_LIMIT_BURST tokens and refills at RATE_LIMIT_PER_MINUTE. Requests are
limited before authentication runs, so the client address is the only
identity available here.

If Redis is unreachable the limiter lets every request through
(availability over strict limiting).
"""
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import redis
import time
import logging

from projecthub.config import Settings

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Token bucket rate limiter per client address.

    Uses Redis so the limit holds across workers.
    """

    excluded_paths = [
        "/docs",
        "/redoc",
        "/openapi.json",
        "/health",
    ]

    def __init__(self, app, settings: Settings, redis_client: Optional[redis.Redis] = None):
        super().__init__(app)
        self.rate_limit = settings.RATE_LIMIT_PER_MINUTE
        self.burst = settings.RATE_LIMIT_BURST

        if redis_client is not None:
            self.redis_client = redis_client
            self.redis_available = True
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            self.redis_client.ping()
            self.redis_available = True
            logger.info("Redis connection established for rate limiting")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.error(f"Redis connection failed: {e}")
            self.redis_available = False

    async def dispatch(self, request: Request, call_next):
        if any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        if not self.redis_available:
            logger.debug("Rate limiting skipped - Redis unavailable")
            return await call_next(request)

        client_id = self._get_client_identifier(request)
        allowed, retry_after = self._check_rate_limit(client_id)

        if not allowed:
            logger.warning(
                f"Rate limit exceeded for client {client_id}",
                extra={"path": request.url.path, "method": request.method}
            )
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded",
                    "type": "rate_limit_exceeded",
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        return await call_next(request)

    def _check_rate_limit(self, client_id: str) -> tuple[bool, int]:
        """
        Check if request is allowed under rate limit.

        Returns: (allowed: bool, retry_after: int)

        Uses token bucket algorithm:
        - Bucket holds max tokens (burst capacity)
        - Tokens added at fixed rate
        - Each request consumes one token
        """
        key = f"rate_limit:{client_id}"
        key_timestamp = f"{key}:timestamp"

        try:
            current_tokens = self.redis_client.get(key)
            last_update = self.redis_client.get(key_timestamp)

            now = time.time()

            if current_tokens is None:
                # First request - initialize bucket
                current_tokens = self.burst - 1
                self.redis_client.setex(key, 60, current_tokens)
                self.redis_client.setex(key_timestamp, 60, now)
                return True, 0

            current_tokens = float(current_tokens)
            last_update = float(last_update) if last_update else now

            elapsed = now - last_update
            tokens_to_add = elapsed * (self.rate_limit / 60.0)
            new_tokens = min(self.burst, current_tokens + tokens_to_add)

            if new_tokens >= 1:
                new_tokens -= 1
                self.redis_client.setex(key, 60, new_tokens)
                self.redis_client.setex(key_timestamp, 60, now)
                return True, 0

            tokens_needed = 1 - new_tokens
            retry_after = int((tokens_needed / (self.rate_limit / 60.0)) + 1)
            return False, retry_after

        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return True, 0

    def _get_client_identifier(self, request: Request) -> str:
        """Client address, or "unknown" when the transport does not give one."""
        if request.client and request.client.host:
            return request.client.host
        return "unknown"
