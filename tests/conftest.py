import pytest
import pytest_asyncio
import httpx
from typing import Any, Callable, List, Optional

from fieldops_client.config import Settings
from fieldops_client.client.api_client import ApiClient
from fieldops_client.core.circuit_breaker.store import InMemoryBreakerStore

BASE_URL = "https://functions.test"

class FakeClock:
    """Manually advanced wall clock."""
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

class RecordingSleep:
    """Backoff sleep that records delays instead of waiting."""
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

class ScriptedEndpoint:
    """Transport handler replaying scripted responses.

    Each item is an httpx.Response, an exception to raise, or a callable
    taking the request. The last item repeats once the script runs out.
    """
    def __init__(self, *script: Any):
        self.script = list(script)
        self.requests: List[httpx.Request] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            item = item(request)
            if not isinstance(item, httpx.Response):
                item = await item
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)

@pytest.fixture
def test_settings() -> Settings:
    """Test settings with deterministic values."""
    return Settings(
        API_KEY="test-anon-key",
        BASE_URL=BASE_URL,
        FUNCTIONS_BASE_URL=f"{BASE_URL}/functions/v1",
        BREAKER_BACKEND="memory"
    )

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()

@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()

@pytest.fixture
def store(clock) -> InMemoryBreakerStore:
    """Fresh breaker store per test."""
    return InMemoryBreakerStore(clock=clock)

@pytest_asyncio.fixture
async def make_client(test_settings, store, sleeper, clock):
    """Factory building an ApiClient wired to a scripted endpoint."""
    http_clients: List[httpx.AsyncClient] = []

    def factory(endpoint: ScriptedEndpoint, auth_provider=None, sleep: Optional[Callable] = None) -> ApiClient:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(endpoint.handler),
            base_url=BASE_URL
        )
        http_clients.append(http_client)
        return ApiClient(
            settings=test_settings,
            auth_provider=auth_provider,
            breaker_store=store,
            http_client=http_client,
            sleep=sleep or sleeper,
            clock=clock
        )

    yield factory

    for http_client in http_clients:
        await http_client.aclose()
