import pytest

from entityql.cache import KeyValueCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_get_or_create_calls_factory_once():
    calls = []

    async def factory():
        calls.append(1)
        return 'value'

    cache = KeyValueCache()
    assert await cache.get_or_create('k', factory) == 'value'
    assert await cache.get_or_create('k', factory) == 'value'
    assert len(calls) == 1
    assert 'k' in cache


@pytest.mark.asyncio
async def test_remove():
    cache = KeyValueCache()

    async def factory():
        return 1

    await cache.get_or_create('k', factory)
    await cache.remove('k')
    assert 'k' not in cache
    # removing an absent key is a no-op
    await cache.remove('k')


@pytest.mark.asyncio
async def test_entries_expire():
    clock = FakeClock()
    cache = KeyValueCache(ttl_seconds=10, clock=clock)
    values = iter(['a', 'b'])

    async def factory():
        return next(values)

    assert await cache.get_or_create('k', factory) == 'a'
    clock.now = 5
    assert await cache.get_or_create('k', factory) == 'a'
    clock.now = 11
    assert 'k' not in cache
    assert await cache.get_or_create('k', factory) == 'b'


@pytest.mark.asyncio
async def test_factory_failure_is_not_cached():
    cache = KeyValueCache()

    async def boom():
        raise RuntimeError('store down')

    with pytest.raises(RuntimeError):
        await cache.get_or_create('k', boom)
    assert 'k' not in cache
