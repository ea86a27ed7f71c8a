"""Tests for the per-key rate limiter."""

import asyncio

import pytest

from ratecache.core.config import Settings
from ratecache.exceptions import ConfigurationError, InvalidCostError
from ratecache.rate_limit import KeyedRateLimiter


class TestKeyedRateLimiter:
    """Tests for per-key admission."""

    @pytest.fixture
    def limiter(self, clock):
        return KeyedRateLimiter(capacity=5, refill_rate=1, max_keys=3, clock=clock)

    @pytest.mark.asyncio
    async def test_allows_up_to_burst(self, limiter):
        """A new key starts with a full bucket."""
        for expected_remaining in (4, 3, 2, 1, 0):
            result = await limiter.is_allowed("client")
            assert result.allowed is True
            assert result.remaining == expected_remaining
            assert result.limit == 5

        result = await limiter.is_allowed("client")
        assert result.allowed is False
        assert result.retry_after == pytest.approx(1)

    @pytest.mark.asyncio
    async def test_different_keys_independent(self, limiter):
        result = await limiter.is_allowed("key1", cost=5)
        assert result.allowed is True
        result = await limiter.is_allowed("key1")
        assert result.allowed is False

        result = await limiter.is_allowed("key2")
        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_refills_over_time(self, limiter, clock):
        await limiter.is_allowed("client", cost=5)
        clock.advance(2)

        assert (await limiter.is_allowed("client", cost=2)).allowed is True
        assert (await limiter.is_allowed("client")).allowed is False

    @pytest.mark.asyncio
    async def test_tracked_keys_bounded(self, limiter):
        """The least recently seen key loses its bucket and restarts full."""
        await limiter.is_allowed("a", cost=5)
        await limiter.is_allowed("b")
        await limiter.is_allowed("c")
        await limiter.is_allowed("d")

        assert len(limiter) == 3
        result = await limiter.is_allowed("a", cost=5)
        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_recent_key_keeps_its_bucket(self, limiter):
        await limiter.is_allowed("a", cost=5)
        await limiter.is_allowed("b")
        await limiter.is_allowed("c")
        await limiter.is_allowed("a", cost=0)
        await limiter.is_allowed("d")

        assert (await limiter.is_allowed("a")).allowed is False

    @pytest.mark.asyncio
    async def test_invalid_cost(self, limiter):
        with pytest.raises(InvalidCostError):
            await limiter.is_allowed("client", cost=-2)

    @pytest.mark.asyncio
    async def test_invalid_cost_for_new_key_keeps_existing_buckets(self, clock):
        """A rejected call does not evict a drained bucket to make room."""
        limiter = KeyedRateLimiter(capacity=5, refill_rate=1, max_keys=1, clock=clock)
        assert (await limiter.is_allowed("client", cost=5)).allowed is True

        with pytest.raises(InvalidCostError):
            await limiter.is_allowed("other", cost=-1)

        assert len(limiter) == 1
        result = await limiter.is_allowed("client", cost=5)
        assert result.allowed is False
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_invalid_cost_does_not_refresh_key(self, limiter):
        """A rejected call on a known key leaves recency order alone."""
        await limiter.is_allowed("a", cost=5)
        await limiter.is_allowed("b")
        await limiter.is_allowed("c")

        with pytest.raises(InvalidCostError):
            await limiter.is_allowed("a", cost=float("nan"))
        await limiter.is_allowed("d")

        assert len(limiter) == 3
        assert (await limiter.is_allowed("a", cost=5)).allowed is True

    @pytest.mark.asyncio
    async def test_concurrent_tasks(self, clock):
        limiter = KeyedRateLimiter(capacity=10, refill_rate=1, clock=clock)
        results = await asyncio.gather(
            *(limiter.is_allowed("shared") for _ in range(25))
        )
        assert sum(r.allowed for r in results) == 10


class TestCleanup:
    """Tests for idle bucket removal."""

    @pytest.mark.asyncio
    async def test_removes_only_full_buckets(self, clock):
        limiter = KeyedRateLimiter(capacity=4, refill_rate=1, clock=clock)
        await limiter.is_allowed("idle", cost=1)
        await limiter.is_allowed("busy", cost=4)
        clock.advance(1)

        removed = await limiter.cleanup()

        assert removed == 1
        assert len(limiter) == 1
        assert (await limiter.is_allowed("busy", cost=2)).allowed is False

    @pytest.mark.asyncio
    async def test_cleanup_empty(self, clock):
        limiter = KeyedRateLimiter(capacity=4, refill_rate=1, clock=clock)
        assert await limiter.cleanup() == 0


class TestConstruction:
    """Tests for limiter configuration."""

    def test_rejects_invalid_bucket_parameters(self):
        with pytest.raises(ConfigurationError):
            KeyedRateLimiter(capacity=0, refill_rate=1)
        with pytest.raises(ConfigurationError):
            KeyedRateLimiter(capacity=1, refill_rate=-1)

    def test_rejects_invalid_max_keys(self):
        with pytest.raises(ConfigurationError):
            KeyedRateLimiter(capacity=1, refill_rate=1, max_keys=0)

    def test_from_settings(self, clock):
        settings = Settings(
            _env_file=None,
            bucket_capacity=7,
            bucket_refill_rate=0.5,
            limiter_max_keys=12,
        )
        limiter = KeyedRateLimiter.from_settings(settings, clock=clock)
        assert limiter.max_keys == 12

    def test_from_settings_uses_environment(self, monkeypatch):
        monkeypatch.setenv("RATECACHE_LIMITER_MAX_KEYS", "42")
        limiter = KeyedRateLimiter.from_settings()
        assert limiter.max_keys == 42
