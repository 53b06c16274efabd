from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional
import logging
import threading
import time

import redis.asyncio as redis

from .models import FailureWindow
from ...config import Settings

logger = logging.getLogger(__name__)

class BreakerStore(ABC):
    """Storage for per-path failure windows."""

    @abstractmethod
    async def get(self, key: str) -> Optional[FailureWindow]:
        """Return the failure window for key, if any."""

    @abstractmethod
    async def increment(self, key: str) -> Optional[FailureWindow]:
        """Record one failure for key and return the updated window."""

    @abstractmethod
    async def reset(self, key: Optional[str] = None) -> None:
        """Forget the window for key, or every window when key is None."""

class InMemoryBreakerStore(BreakerStore):
    """Process-local store. Safe to share across threads."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._windows: Dict[str, FailureWindow] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[FailureWindow]:
        with self._lock:
            window = self._windows.get(key)
            return window.model_copy() if window else None

    async def increment(self, key: str) -> FailureWindow:
        with self._lock:
            previous = self._windows.get(key)
            window = FailureWindow(
                count=(previous.count if previous else 0) + 1,
                last_failure=self._clock()
            )
            self._windows[key] = window
            return window.model_copy()

    async def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

class RedisBreakerStore(BreakerStore):
    """Redis-backed store shared between processes.

    Windows are stored as hashes under ``circuit:<path>`` and expire once they
    can no longer trip the breaker. Redis errors fail open: the circuit is
    treated as closed and the failure is not counted.
    """

    KEY_PREFIX = "circuit:"

    def __init__(
        self,
        redis_client: redis.Redis,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.time
    ):
        self.redis = redis_client
        self.window_seconds = window_seconds
        self._clock = clock

    @classmethod
    def from_url(
        cls,
        url: str,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.time
    ) -> "RedisBreakerStore":
        client = redis.Redis.from_url(url, decode_responses=True)
        return cls(client, window_seconds=window_seconds, clock=clock)

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}{key}"

    async def get(self, key: str) -> Optional[FailureWindow]:
        try:
            data = await self.redis.hgetall(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis error reading circuit {key}: {e}")
            return None

        if not data:
            return None
        return FailureWindow(
            count=int(data.get("count", 0)),
            last_failure=float(data.get("last_failure", 0.0))
        )

    async def increment(self, key: str) -> Optional[FailureWindow]:
        redis_key = self._key(key)
        now = self._clock()

        try:
            async with self.redis.pipeline() as pipe:
                await pipe.hincrby(redis_key, "count", 1)
                await pipe.hset(redis_key, "last_failure", str(now))
                await pipe.expire(redis_key, self.window_seconds * 2)
                count, _, _ = await pipe.execute()
        except redis.RedisError as e:
            logger.warning(f"Redis error recording failure for circuit {key}: {e}")
            return None

        return FailureWindow(count=int(count), last_failure=now)

    async def reset(self, key: Optional[str] = None) -> None:
        try:
            if key is not None:
                await self.redis.delete(self._key(key))
                return

            keys = [k async for k in self.redis.scan_iter(match=f"{self.KEY_PREFIX}*")]
            if keys:
                await self.redis.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Redis error resetting circuit state: {e}")

    async def close(self) -> None:
        await self.redis.aclose()

def create_breaker_store(
    settings: Settings,
    clock: Callable[[], float] = time.time
) -> BreakerStore:
    """Build the breaker store selected by BREAKER_BACKEND.

    ``clock`` stamps failures and must be the clock the breaker ages them with.
    """
    if settings.BREAKER_BACKEND == "redis":
        logger.info(f"Using Redis circuit breaker store at {settings.REDIS_URL}")
        return RedisBreakerStore.from_url(
            settings.REDIS_URL,
            window_seconds=settings.FAILURE_WINDOW_SECONDS,
            clock=clock
        )
    return InMemoryBreakerStore(clock=clock)
