from datetime import timedelta

from pilates_studio.cache import MemoryCache


def test_set_get_and_remove():
    cache = MemoryCache()
    cache.set("dashboard", {"total": 3})

    assert cache.get("dashboard") == {"total": 3}
    assert cache.count == 1

    cache.remove("dashboard")
    assert cache.get("dashboard") is None
    assert cache.get("dashboard", "fallback") == "fallback"


def test_expired_entries_are_not_returned_or_counted():
    cache = MemoryCache()
    cache.set("stale", 1, ttl=timedelta(seconds=-1))
    cache.set("fresh", 2, ttl=timedelta(minutes=5))

    assert cache.get("stale") is None
    assert cache.count == 1


def test_default_ttl_applies_when_none_given():
    cache = MemoryCache(default_ttl=timedelta(seconds=-1))
    cache.set("key", "value")
    assert cache.get("key") is None


def test_clear_empties_the_cache():
    cache = MemoryCache()
    for i in range(3):
        cache.set(f"k{i}", i)
    cache.clear()
    assert cache.count == 0
