import logging
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional

import redis
from redis.exceptions import RedisError

from order_intake.interfaces.IRateLimiter import IRateLimiter

logger = logging.getLogger(__name__)

class RateLimiter(IRateLimiter):
    """
    Sliding-window counter per key.
    Uses a Redis sorted set per key when Redis is reachable, otherwise a per-process RAM store.
    """

    def __init__(self, redis_url: Optional[str] = None, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.redis = None
        self.redis_available = False

        # 1. Primary store (Redis)
        if redis_url:
            try:
                self.redis = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=1  # Fail fast if Redis is down
                )
                self.redis.ping()
                self.redis_available = True
                logger.info("✅ RateLimiter: Connected to Redis.")
            except RedisError as e:
                logger.warning(f"⚠️ RateLimiter: Redis unreachable ({e}). Using RAM fallback.")
        else:
            logger.info("⚠️ RateLimiter: REDIS_URL not set. Using RAM fallback.")

        # 2. Fallback store (RAM)
        self._memory_store: Dict[str, List[float]] = {}
        self._windows: Dict[str, int] = {}
        self._last_sweep = 0.0
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        key = f"ratelimit:{key}"
        now = self.clock()

        if self.redis_available:
            try:
                return self._hit_redis(key, limit, window_seconds, now)
            except RedisError as e:
                self._handle_redis_error(e)

        return self._hit_memory(key, limit, window_seconds, now)

    def _hit_redis(self, key: str, limit: int, window_seconds: int, now: float) -> bool:
        # Add first, then count, in one MULTI
        member = f"{now}:{uuid.uuid4().hex}"
        pipe = self.redis.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, now - window_seconds)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.expire(key, window_seconds)
        _, _, current, _ = pipe.execute()
        if current > limit:
            # Rejected hits do not count against the window
            self.redis.zrem(key, member)
            return False
        return True

    def _hit_memory(self, key: str, limit: int, window_seconds: int, now: float) -> bool:
        with self._lock:
            self._sweep(window_seconds, now)
            hits = [t for t in self._memory_store.get(key, []) if t > now - window_seconds]
            if len(hits) >= limit:
                if hits:
                    self._memory_store[key] = hits
                else:
                    self._forget(key)
                return False
            hits.append(now)
            self._memory_store[key] = hits
            self._windows[key] = window_seconds
            return True

    def _sweep(self, window_seconds: int, now: float):
        """Drop keys whose newest hit has left their own window. Runs at most once per window."""
        if now - self._last_sweep < window_seconds:
            return
        self._last_sweep = now
        expired = [
            key for key, hits in self._memory_store.items()
            if not hits or hits[-1] <= now - self._windows.get(key, 0)
        ]
        for key in expired:
            self._forget(key)

    def _forget(self, key: str):
        self._memory_store.pop(key, None)
        self._windows.pop(key, None)

    def _handle_redis_error(self, e):
        """Log error and switch flag to False to stop trying Redis for a while."""
        logger.error(f"❌ Redis Error: {e}. Switching to RAM mode.")
        self.redis_available = False
