import asyncio
import pytest

from fieldops_client.config import Settings
from fieldops_client.core.circuit_breaker.store import (
    InMemoryBreakerStore,
    RedisBreakerStore,
    create_breaker_store,
)

@pytest.mark.asyncio
async def test_get_unknown_key(store):
    """Test a key with no failures has no window."""
    assert await store.get("/orders") is None

@pytest.mark.asyncio
async def test_increment_creates_and_updates_window(store, clock):
    """Test increments count up and refresh the timestamp."""
    first = await store.increment("/orders")
    assert first.count == 1
    assert first.last_failure == clock.now

    clock.advance(10)
    second = await store.increment("/orders")
    assert second.count == 2
    assert second.last_failure == clock.now

    stored = await store.get("/orders")
    assert stored == second

@pytest.mark.asyncio
async def test_returned_windows_are_copies(store):
    """Test callers cannot mutate stored state."""
    window = await store.increment("/orders")
    window.count = 100

    assert (await store.get("/orders")).count == 1

@pytest.mark.asyncio
async def test_reset_single_and_all(store):
    """Test reset by key and reset of everything."""
    await store.increment("/orders")
    await store.increment("/quotes")

    await store.reset("/orders")
    assert await store.get("/orders") is None
    assert await store.get("/quotes") is not None

    await store.reset()
    assert await store.get("/quotes") is None

@pytest.mark.asyncio
async def test_concurrent_increments_are_not_lost(store):
    """Test concurrent increments from many threads all land."""
    def bump():
        loop = asyncio.new_event_loop()
        try:
            for _ in range(50):
                loop.run_until_complete(store.increment("/busy"))
        finally:
            loop.close()

    await asyncio.gather(*(asyncio.to_thread(bump) for _ in range(8)))

    assert (await store.get("/busy")).count == 400

def test_factory_defaults_to_memory():
    """Test the memory backend is the default."""
    assert isinstance(create_breaker_store(Settings()), InMemoryBreakerStore)

@pytest.mark.asyncio
async def test_factory_builds_redis_store():
    """Test the redis backend is selected from settings."""
    store = create_breaker_store(Settings(BREAKER_BACKEND="redis", FAILURE_WINDOW_SECONDS=30))

    assert isinstance(store, RedisBreakerStore)
    assert store.window_seconds == 30
    await store.close()

@pytest.mark.asyncio
async def test_factory_passes_clock(clock):
    """Test stores built by the factory stamp failures with the given clock."""
    store = create_breaker_store(Settings(), clock=clock)

    window = await store.increment("/orders")
    assert window.last_failure == clock.now

    redis_store = create_breaker_store(Settings(BREAKER_BACKEND="redis"), clock=clock)
    assert redis_store._clock is clock
    await redis_store.close()
