from typing import Callable, Optional
import logging
import time

import httpx

from .models import BreakerConfig, CircuitState, FailureWindow
from .store import BreakerStore, InMemoryBreakerStore

logger = logging.getLogger(__name__)

class CircuitBreaker:
    """Per-path circuit breaker over a failure window store.

    A path trips once it has accumulated ``failure_threshold`` failures and its
    most recent failure is younger than ``failure_window`` seconds. There is no
    half-open state: the circuit closes again as soon as the window ages out.
    """

    def __init__(
        self,
        store: Optional[BreakerStore] = None,
        config: Optional[BreakerConfig] = None,
        clock: Callable[[], float] = time.time
    ):
        self.store = store or InMemoryBreakerStore(clock=clock)
        self.config = config or BreakerConfig()
        self._clock = clock

    @staticmethod
    def key_for(url: str) -> str:
        """Breaker key for a URL: its encoded path, without host or query string."""
        path = httpx.URL(url).raw_path.decode("ascii").split("?", 1)[0]
        return path or "/"

    def _trips(self, window: Optional[FailureWindow]) -> bool:
        if window is None:
            return False
        age = self._clock() - window.last_failure
        return (
            window.count >= self.config.failure_threshold
            and age < self.config.failure_window
        )

    async def is_open(self, key: str) -> bool:
        return self._trips(await self.store.get(key))

    async def state(self, key: str) -> CircuitState:
        return CircuitState.OPEN if await self.is_open(key) else CircuitState.CLOSED

    async def record_failure(self, key: str) -> Optional[FailureWindow]:
        """Count one failed call against key."""
        window = await self.store.increment(key)
        if window is not None and window.count == self.config.failure_threshold:
            logger.warning(
                f"Circuit {key} opened after {window.count} failures"
            )
        return window

    async def reset(self, key: Optional[str] = None) -> None:
        await self.store.reset(key)
        logger.info(f"Circuit {key or '*'} reset to initial state")
