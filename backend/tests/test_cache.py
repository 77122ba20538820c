"""
Tests for the TTL cache wrapper and the response cache key.

Run with: pytest tests/test_cache.py -v
"""

from app.services.cache import TTLCacheService, response_cache_key


def test_get_set_and_counters():
    cache = TTLCacheService(maxsize=2, ttl_seconds=60, name="test cache")

    assert cache.get("a") is None
    cache.set("a", 1)
    assert cache.get("a") == 1
    assert (cache.hits, cache.misses) == (1, 1)


def test_bounded_size():
    cache = TTLCacheService(maxsize=2, ttl_seconds=60)
    for key in ("a", "b", "c"):
        cache.set(key, key)

    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0


def test_response_key_depends_on_every_option():
    base = response_cache_key("same text", "standard:0", "en")

    assert base == response_cache_key("same text", "standard:0", "en")
    assert base != response_cache_key("same text", "standard:0", "fr")
    assert base != response_cache_key("same text", "agent_analysis:1", "en")
    assert base != response_cache_key("same text ", "standard:0", "en")
