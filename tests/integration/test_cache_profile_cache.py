"""Integration tests for the read-through user profile cache."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from taskcache.core.errors import ValidationError


class UserProfile(BaseModel):
    id: str
    display_name: str
    timezone: str = "UTC"


@pytest.mark.integration
class TestProfileCache:
    """set / get / delete."""

    @pytest.mark.asyncio
    async def test_round_trip(self, cache, settings):
        """Test a pydantic profile is cached and decoded back."""
        profile = UserProfile(id="42", display_name="Ada")
        await cache.set_user_profile("42", profile)

        assert await cache.get_user_profile("42", UserProfile) == profile
        assert 0 < await cache.ttl("user:42:profile") <= settings.profile_ttl_seconds

    @pytest.mark.asyncio
    async def test_expiry(self, cache):
        """Test a profile snapshot expires."""
        await cache.set_user_profile("42", {"id": "42"}, ttl=1)
        await asyncio.sleep(1.1)
        assert await cache.get_user_profile("42") is None

    @pytest.mark.asyncio
    async def test_delete(self, cache):
        """Test invalidation after a profile write."""
        await cache.set_user_profile("42", {"id": "42"})

        assert await cache.delete_user_profile("42") is True
        assert await cache.get_user_profile("42") is None
        assert await cache.delete_user_profile("42") is False

    @pytest.mark.asyncio
    async def test_hit_and_miss_metrics(self, cache):
        await cache.get_user_profile("42")
        await cache.set_user_profile("42", {"id": "42"})
        await cache.get_user_profile("42")

        stats = cache.metrics.get_stats("profile")
        assert (stats["hits"], stats["misses"]) == (1, 1)

    @pytest.mark.asyncio
    async def test_malformed_user_id(self, cache):
        with pytest.raises(ValidationError):
            await cache.set_user_profile("42:x", {"id": "42"})
        assert await cache.get_user_profile("42:x") is None

    @pytest.mark.asyncio
    async def test_backend_down_degrades(self, cache, logger, backend_down):
        """Test writes are skipped and reads miss during an outage."""
        await cache.set_user_profile("42", {"id": "42"})
        assert await cache.get_user_profile("42") is None
        assert await cache.delete_user_profile("42") is False
        assert logger.warning.call_count >= 3


@pytest.mark.integration
class TestGetOrLoad:
    """get_or_load_user_profile."""

    @pytest.mark.asyncio
    async def test_loads_once_then_hits_cache(self, cache):
        """Test the async loader runs only on the first miss."""
        loader = AsyncMock(return_value={"id": "42", "display_name": "Ada"})

        first = await cache.get_or_load_user_profile("42", loader)
        second = await cache.get_or_load_user_profile("42", loader)

        assert first == second == {"id": "42", "display_name": "Ada"}
        loader.assert_awaited_once_with("42")

    @pytest.mark.asyncio
    async def test_sync_loader(self, cache):
        """Test plain callables work as loaders."""
        loader = MagicMock(return_value={"id": "42"})

        assert await cache.get_or_load_user_profile("42", loader) == {"id": "42"}
        assert await cache.get_user_profile("42") == {"id": "42"}

    @pytest.mark.asyncio
    async def test_none_not_cached(self, cache):
        """Test an unknown user is not cached as a negative entry."""
        loader = MagicMock(return_value=None)

        assert await cache.get_or_load_user_profile("42", loader) is None
        assert await cache.get_or_load_user_profile("42", loader) is None
        assert loader.call_count == 2
        assert await cache.exists("user:42:profile") is False

    @pytest.mark.asyncio
    async def test_loader_error_propagates(self, cache):
        """Test source-of-truth failures reach the caller."""
        loader = AsyncMock(side_effect=LookupError("db down"))
        with pytest.raises(LookupError):
            await cache.get_or_load_user_profile("42", loader)

    @pytest.mark.asyncio
    async def test_falls_through_when_backend_down(self, cache, backend_down):
        """Test the loader still serves the profile during an outage."""
        loader = AsyncMock(return_value={"id": "42"})
        assert await cache.get_or_load_user_profile("42", loader) == {"id": "42"}
