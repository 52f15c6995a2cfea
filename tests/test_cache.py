from types import SimpleNamespace

import pytest

from apps.core.cache import TTLCache


@pytest.fixture
def clock(monkeypatch):
    now = SimpleNamespace(value=1000.0)
    monkeypatch.setattr('apps.core.cache.time', SimpleNamespace(monotonic=lambda: now.value))
    return now


def test_set_and_get():
    cache = TTLCache()
    cache.set('trends:city_001:aqi:30', {'value': 1})
    assert cache.get('trends:city_001:aqi:30') == {'value': 1}
    assert cache.has('trends:city_001:aqi:30')
    assert cache.get('missing') is None


def test_entries_expire_lazily(clock):
    cache = TTLCache(default_ttl=60)
    cache.set('a', 1)
    clock.value += 59
    assert cache.get('a') == 1
    clock.value += 2
    assert cache.get('a') is None
    assert len(cache) == 0


def test_zero_ttl_never_expires(clock):
    cache = TTLCache()
    cache.set('a', 1, ttl=0)
    clock.value += 10 ** 6
    assert cache.get('a') == 1


def test_invalidate_pattern_only_star_is_wildcard():
    cache = TTLCache()
    cache.set('trends:city_001:aqi:30', 1)
    cache.set('correlation:city_001:temperature:aqi:30', 2)
    cache.set('trends:city_002:aqi:30', 3)
    cache.set('trendsXcity_001', 4)

    assert cache.invalidate_pattern('*:city_001:*') == 2
    assert sorted(cache.keys()) == ['trends:city_002:aqi:30', 'trendsXcity_001']

    # '.' is literal, not a regex wildcard
    assert cache.invalidate_pattern('trends.city_001') == 0


def test_get_or_set_reports_cached_flag():
    cache = TTLCache()
    calls = []

    def factory():
        calls.append(1)
        return {'n': len(calls)}

    first, cached_first = cache.get_or_set('k', factory)
    second, cached_second = cache.get_or_set('k', factory)

    assert (first, cached_first) == ({'n': 1}, False)
    assert (second, cached_second) == ({'n': 1}, True)
    assert len(calls) == 1


def test_get_or_set_does_not_cache_failures():
    cache = TTLCache()

    def boom():
        raise ValueError('no data')

    with pytest.raises(ValueError):
        cache.get_or_set('k', boom)
    assert not cache.has('k')


def test_cleanup_and_stats(clock):
    cache = TTLCache(default_ttl=10)
    cache.set('short', 1)
    cache.set('long', 2, ttl=100)
    cache.get('long')
    clock.value += 20

    stats = cache.stats()
    assert stats['total_keys'] == 2
    assert stats['expired_keys'] == 1
    assert stats['total_hits'] == 1

    assert cache.cleanup_expired() == 1
    assert cache.keys() == ['long']


def test_delete_and_clear():
    cache = TTLCache()
    cache.set('a', 1)
    cache.set('b', 2)
    assert cache.delete('a') is True
    assert cache.delete('a') is False
    cache.clear()
    assert len(cache) == 0


def test_sweeper_lifecycle():
    with TTLCache(sweep_interval=60) as cache:
        assert cache._sweeper.is_alive()
        cache.start()  # idempotent
    assert cache._sweeper is None
