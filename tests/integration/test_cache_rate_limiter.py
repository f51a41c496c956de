"""Integration tests for the fixed-window rate limiter.

Covers:
- Atomic first-hit window start under concurrency
- Window reset after expiry
- TTL repair for counters that lost their expiry
- Allow/deny decisions and fail-open behavior
- Read and reset operations
"""

import asyncio

import pytest

from taskcache.core.errors import BackendUnavailableError, ValidationError
from taskcache.infrastructure.cache.rate_limiter import _now_ms


@pytest.mark.integration
class TestIncrement:
    """increment_rate_limit."""

    @pytest.mark.asyncio
    async def test_first_hit_starts_window(self, cache):
        """Test the first hit counts 1 and sets the window TTL."""
        before = _now_ms()
        result = await cache.increment_rate_limit("general:10.0.0.1", 60)

        assert result.count == 1
        assert before + 59_000 <= result.reset_at <= _now_ms() + 60_000
        assert 0 < await cache.ttl("ratelimit:general:10.0.0.1") <= 60

    @pytest.mark.asyncio
    async def test_concurrent_hits_are_counted_exactly(self, cache):
        """Test N concurrent first hits yield count N and a single window."""
        results = await asyncio.gather(
            *(cache.increment_rate_limit("burst", 60) for _ in range(25))
        )

        assert sorted(r.count for r in results) == list(range(1, 26))
        assert 0 < await cache.ttl("ratelimit:burst") <= 60

    @pytest.mark.asyncio
    async def test_later_hits_do_not_extend_window(self, cache):
        """Test the window is not pushed back by later hits."""
        await cache.increment_rate_limit("steady", 60)
        await cache.expire("ratelimit:steady", 30)
        await cache.increment_rate_limit("steady", 60)

        assert await cache.ttl("ratelimit:steady") <= 30

    @pytest.mark.asyncio
    async def test_window_resets_after_expiry(self, cache):
        """Test the counter restarts at 1 once the window has passed."""
        await cache.increment_rate_limit("short", 1)
        await cache.increment_rate_limit("short", 1)
        await asyncio.sleep(1.1)

        result = await cache.increment_rate_limit("short", 1)
        assert result.count == 1

    @pytest.mark.asyncio
    async def test_repairs_counter_without_ttl(self, cache, redis_client):
        """Test a counter left without expiry gets one on the next hit."""
        await redis_client.set("test:ratelimit:orphan", "7")

        result = await cache.increment_rate_limit("orphan", 60)
        assert result.count == 8
        assert 0 < await cache.ttl("ratelimit:orphan") <= 60

    @pytest.mark.asyncio
    async def test_default_window(self, cache, settings):
        """Test omitted windows use the configured default."""
        await cache.increment_rate_limit("defaulted")
        assert 0 < await cache.ttl("ratelimit:defaulted") <= settings.rate_limit_window_seconds

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", ["", "has space", "ip:*"])
    async def test_malformed_identifier(self, cache, identifier):
        with pytest.raises(ValidationError):
            await cache.increment_rate_limit(identifier, 60)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("window", [0, 86401])
    async def test_window_bounds(self, cache, window):
        """Test windows outside 1 second .. 24 hours are rejected."""
        with pytest.raises(ValidationError):
            await cache.increment_rate_limit("ip", window)

    @pytest.mark.asyncio
    async def test_raises_when_backend_down(self, cache, backend_down):
        """Test the raw increment surfaces backend failures."""
        with pytest.raises(BackendUnavailableError):
            await cache.increment_rate_limit("ip", 60)


@pytest.mark.integration
class TestCheck:
    """check_rate_limit decisions."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit_then_denies(self, cache):
        """Test the (limit+1)-th request in a window is denied."""
        decisions = [await cache.check_rate_limit("login:1.2.3.4", 60, 3) for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]
        assert decisions[-1].count == 4
        assert decisions[-1].limit == 3
        assert 0 < decisions[-1].retry_after_seconds <= 60

    @pytest.mark.asyncio
    async def test_allowed_decision_has_no_retry_after(self, cache):
        decision = await cache.check_rate_limit("ip", 60, 10)
        assert decision.retry_after_seconds == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_requests", [0, -1, True, 2.5])
    async def test_invalid_limit(self, cache, max_requests):
        """Test max_requests must be a positive integer."""
        with pytest.raises(ValidationError):
            await cache.check_rate_limit("ip", 60, max_requests)

    @pytest.mark.asyncio
    async def test_fails_open(self, cache, logger, backend_down):
        """Test an outage allows the request and logs a warning."""
        decision = await cache.check_rate_limit("ip", 60, 5)

        assert decision.allowed is True
        assert decision.remaining == 5
        logger.warning.assert_any_call(
            "Rate limit check failing open",
            operation="check_rate_limit",
            identifier="ip",
            error_code="backend_unavailable",
        )


@pytest.mark.integration
class TestReadAndReset:
    """get_rate_limit / reset_rate_limit."""

    @pytest.mark.asyncio
    async def test_get_without_increment(self, cache):
        """Test reading the counter does not change it."""
        await cache.increment_rate_limit("ip", 60)
        await cache.increment_rate_limit("ip", 60)

        first = await cache.get_rate_limit("ip")
        second = await cache.get_rate_limit("ip")
        assert first is not None and second is not None
        assert first.count == second.count == 2

    @pytest.mark.asyncio
    async def test_get_unknown(self, cache):
        assert await cache.get_rate_limit("never-seen") is None

    @pytest.mark.asyncio
    async def test_reset(self, cache):
        """Test reset removes the counter so the next hit starts over."""
        await cache.increment_rate_limit("ip", 60)

        assert await cache.reset_rate_limit("ip") is True
        assert await cache.reset_rate_limit("ip") is False
        assert (await cache.increment_rate_limit("ip", 60)).count == 1

    @pytest.mark.asyncio
    async def test_degrades_when_backend_down(self, cache, backend_down):
        """Test read and reset degrade instead of raising."""
        assert await cache.get_rate_limit("ip") is None
        assert await cache.reset_rate_limit("ip") is False
