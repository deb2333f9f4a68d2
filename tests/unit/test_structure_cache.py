import pytest

from stepwright.dom.cache import StructureCache
from stepwright.settings import CacheSettings


class Clock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_entry_expires_by_insertion_time_even_when_read():
    clock = Clock()
    cache = StructureCache(ttl=60.0, clock=clock)
    cache.set('https://a.example', '[]')

    clock.now = 59.0
    assert cache.get('https://a.example') == '[]'
    clock.now = 60.5
    assert cache.get('https://a.example') is None
    assert len(cache) == 0


def test_least_recently_used_is_evicted():
    cache = StructureCache(max_size=2, clock=Clock())
    cache.set('a', '1')
    cache.set('b', '2')
    cache.get('a')
    cache.set('c', '3')
    assert cache.has('a')
    assert not cache.has('b')
    assert cache.has('c')


def test_oversized_value_is_not_stored():
    cache = StructureCache(max_entry_size=10, clock=Clock())
    assert cache.set('big', 'x' * 11) is False
    assert cache.get('big') is None
    # size counts UTF-8 bytes, not characters
    assert cache.set('accented', 'é' * 6) is False
    assert cache.set('small', 'é' * 5) is True


def test_update_moves_entry_to_most_recent():
    cache = StructureCache(max_size=2, clock=Clock())
    cache.set('a', '1')
    cache.set('b', '2')
    cache.set('a', '1b')
    cache.set('c', '3')
    assert cache.get('a') == '1b'
    assert cache.get('b') is None


def test_cleanup_and_stats():
    clock = Clock()
    cache = StructureCache(ttl=10.0, clock=clock)
    cache.set('old', 'aaaa')
    clock.now = 8.0
    cache.set('new', 'bb')
    clock.now = 9.0

    stats = cache.get_stats()
    assert stats['size'] == 2
    assert stats['total_bytes'] == 6
    assert stats['oldest_entry_age'] == 9.0
    assert stats['newest_entry_age'] == 1.0

    clock.now = 12.0
    assert cache.cleanup_expired() == 1
    assert cache.has('new')
    cache.clear()
    assert cache.get_stats()['oldest_entry_age'] is None


def test_from_settings():
    cache = StructureCache.from_settings(CacheSettings(max_size=3, ttl_seconds=5.0))
    assert cache.max_size == 3
    assert cache.ttl == 5.0


@pytest.mark.asyncio
async def test_get_or_extract_only_extracts_on_miss():
    cache = StructureCache(clock=Clock())
    calls = 0

    async def extract():
        nonlocal calls
        calls += 1
        return '[{"tag": "a"}]'

    assert await cache.get_or_extract('u', extract) == '[{"tag": "a"}]'
    assert await cache.get_or_extract('u', extract) == '[{"tag": "a"}]'
    assert calls == 1


def test_remove_reports_whether_entry_existed():
    cache = StructureCache(clock=Clock())
    cache.set('a', '1')
    assert cache.remove('a') is True
    assert cache.remove('a') is False
    assert not cache.has('a')
