"""Tests for the TTL cache."""

from taskforce.cache import TTLCache


class TestTTLCache:
    """Expiry and invalidation, driven by a fake clock."""

    def test_returns_value_before_expiry(self, clock):
        cache = TTLCache(default_ttl=8.0, clock=clock)
        cache.set("gh:col:todo", ["a"])

        clock.advance(7.9)
        assert cache.get("gh:col:todo") == ["a"]

    def test_expires_at_ttl(self, clock):
        cache = TTLCache(default_ttl=8.0, clock=clock)
        cache.set("gh:col:todo", ["a"])

        clock.advance(8.0)
        assert cache.get("gh:col:todo") is None
        assert len(cache) == 0

    def test_per_entry_ttl_overrides_default(self, clock):
        cache = TTLCache(default_ttl=8.0, clock=clock)
        cache.set("gh:log:ticket-001", "text", ttl=5.0)

        clock.advance(5.0)
        assert "gh:log:ticket-001" not in cache

    def test_set_returns_value(self, clock):
        cache = TTLCache(clock=clock)
        assert cache.set("k", 42) == 42

    def test_missing_key(self, clock):
        assert TTLCache(clock=clock).get("nope") is None

    def test_delete_and_prefix_invalidation(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("gh:col:todo", 1)
        cache.set("gh:col:done", 2)
        cache.set("gh:log:ticket-001", 3)

        cache.invalidate_prefix("gh:col:")
        assert "gh:col:todo" not in cache
        assert "gh:col:done" not in cache
        assert cache.get("gh:log:ticket-001") == 3

        cache.delete("gh:log:ticket-001", "unknown")
        assert len(cache) == 0

    def test_clear(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0

    def test_set_sweeps_expired_entries(self, clock):
        cache = TTLCache(default_ttl=8.0, clock=clock)
        cache.set("gh:blob:aaa", "old")
        cache.set("gh:blob:bbb", "old")

        clock.advance(8.0)
        cache.set("gh:blob:ccc", "new")

        assert len(cache) == 1
        assert cache.get("gh:blob:ccc") == "new"
