"""Per-client request rate limiting.

Each client (keyed by remote address) may make `max_requests` requests in
any rolling `window_seconds`. Requests beyond the cap are rejected
immediately; nothing is queued or retried.

Backends:
- Redis sorted-set sliding window when a Redis client is configured.
  Fails open (request allowed, warning logged) if Redis errors.
- In-process sliding window otherwise. Per worker process only.

Redis keys:
- rate:req:{client_key} - sorted set of request timestamps in the window
"""

import math
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

import redis
from redis.exceptions import RedisError

from mindflow.logging import get_logger

logger = get_logger(__name__)

# Rate limit defaults
DEFAULT_MAX_REQUESTS = 120
DEFAULT_WINDOW_SECONDS = 60

# In-memory backend sweeps idle keys once it tracks this many clients
MEMORY_SWEEP_THRESHOLD = 10_000


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


class RateLimiter:
    """Sliding-window rate limiter.

    Thread-safe for use from FastAPI middleware.
    """

    def __init__(
        self,
        redis_client=None,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiter.

        Args:
            redis_client: Redis client instance (sync). If None, an in-process window is used.
            max_requests: Maximum requests per window per client.
            window_seconds: Length of the rolling window.
            clock: Time source in epoch seconds (overridable in tests).
        """
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    def hit(self, client_key: str) -> RateLimitDecision:
        """Record a request for a client and decide whether it may proceed."""
        if self._redis is not None:
            try:
                return self._hit_redis(client_key)
            except RedisError as e:
                logger.warning("rate_limit_check_failed", backend="redis", error=str(e))
                # Fail open
                return RateLimitDecision(
                    allowed=True, limit=self._max_requests, remaining=self._max_requests
                )

        return self._hit_memory(client_key)

    def _deny(self, oldest: float, now: float) -> RateLimitDecision:
        retry_after = max(1, math.ceil(oldest + self._window_seconds - now))
        logger.warning("rate_limit_blocked", backend=self.backend, retry_after=retry_after)
        return RateLimitDecision(
            allowed=False, limit=self._max_requests, remaining=0, retry_after=retry_after
        )

    def _hit_redis(self, client_key: str) -> RateLimitDecision:
        key = f"rate:req:{client_key}"
        now = self._clock()
        window_start = now - self._window_seconds
        member = f"{now}:{uuid4().hex}"

        # Use sorted set for sliding window
        pipe = self._redis.pipeline()
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        pipe.expire(key, self._window_seconds * 2)
        results = pipe.execute()

        count = int(results[2])
        if count > self._max_requests:
            # Rejected requests do not consume window capacity
            self._redis.zrem(key, member)
            oldest = results[3][0][1] if results[3] else now
            return self._deny(float(oldest), now)

        return RateLimitDecision(
            allowed=True, limit=self._max_requests, remaining=self._max_requests - count
        )

    def _hit_memory(self, client_key: str) -> RateLimitDecision:
        now = self._clock()
        window_start = now - self._window_seconds

        with self._lock:
            if len(self._hits) > MEMORY_SWEEP_THRESHOLD:
                self._sweep(window_start)

            hits = self._hits.setdefault(client_key, deque())
            while hits and hits[0] <= window_start:
                hits.popleft()

            if len(hits) >= self._max_requests:
                return self._deny(hits[0], now)

            hits.append(now)
            return RateLimitDecision(
                allowed=True, limit=self._max_requests, remaining=self._max_requests - len(hits)
            )

    def _sweep(self, window_start: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in idle:
            del self._hits[key]

    def reset(self) -> None:
        """Forget all in-process state."""
        with self._lock:
            self._hits.clear()


def build_rate_limiter(redis_url: str | None, max_requests: int, window_seconds: int) -> RateLimiter:
    """Build a limiter from configuration, using Redis when a URL is set."""
    redis_client = None
    if redis_url:
        redis_client = redis.Redis.from_url(redis_url, socket_timeout=1.0)
    return RateLimiter(
        redis_client=redis_client, max_requests=max_requests, window_seconds=window_seconds
    )
