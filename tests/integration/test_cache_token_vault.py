"""Integration tests for refresh token storage and revocation."""

import asyncio

import pytest

from taskcache.core.enums import ErrorCode
from taskcache.core.errors import BackendUnavailableError, ValidationError

SEVEN_DAYS = 7 * 24 * 60 * 60


@pytest.mark.integration
class TestTokenVault:
    """store / get / revoke refresh tokens."""

    @pytest.mark.asyncio
    async def test_round_trip(self, cache):
        """Test a token reads back and defaults to a seven-day lifetime."""
        payload = {"user_id": "42", "family": "f1", "version": 3}
        await cache.store_refresh_token("tok_1", payload)

        assert await cache.get_refresh_token("tok_1") == payload
        assert SEVEN_DAYS - 5 <= await cache.ttl("refresh:tok_1") <= SEVEN_DAYS

    @pytest.mark.asyncio
    async def test_eight_day_ttl_rejected(self, cache):
        """Test TTLs above seven days are refused."""
        with pytest.raises(ValidationError) as exc_info:
            await cache.store_refresh_token("tok_1", {"user_id": "42"}, 8 * 24 * 60 * 60)
        assert exc_info.value.code == ErrorCode.INVALID_TTL

    @pytest.mark.asyncio
    async def test_indexed_under_owner(self, cache):
        """Test tokens are listed under their owner."""
        await cache.store_refresh_token("tok_b", {"user_id": "42"})
        await cache.store_refresh_token("tok_a", {"family": "f"}, user_id="42")

        assert await cache.get_user_refresh_tokens("42") == ["tok_a", "tok_b"]

    @pytest.mark.asyncio
    async def test_revoke(self, cache, logger):
        """Test revocation removes the token and its index entry."""
        await cache.store_refresh_token("tok_1", {"user_id": "42"})

        assert await cache.delete_refresh_token("tok_1") is True
        assert await cache.get_refresh_token("tok_1") is None
        assert await cache.get_user_refresh_tokens("42") == []
        logger.info.assert_any_call("Refresh token revoked", token_id="tok_1")

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, cache):
        """Test revoking twice reports False the second time."""
        await cache.store_refresh_token("tok_1", {"user_id": "42"})
        await cache.delete_refresh_token("tok_1")
        assert await cache.delete_refresh_token("tok_1") is False

    @pytest.mark.asyncio
    async def test_expiry(self, cache):
        """Test an expired token can no longer be read."""
        await cache.store_refresh_token("tok_1", {"user_id": "42"}, 1)
        await asyncio.sleep(1.1)
        assert await cache.get_refresh_token("tok_1") is None

    @pytest.mark.asyncio
    async def test_malformed_token_id(self, cache):
        """Test glob characters in ids are rejected on write, empty on read."""
        with pytest.raises(ValidationError):
            await cache.store_refresh_token("tok*", {"user_id": "42"})
        assert await cache.get_refresh_token("tok*") is None
        assert await cache.delete_refresh_token("tok*") is False

    @pytest.mark.asyncio
    async def test_store_raises_when_backend_down(self, cache, backend_down):
        """Test a token that cannot be persisted fails loudly."""
        with pytest.raises(BackendUnavailableError):
            await cache.store_refresh_token("tok_1", {"user_id": "42"})

    @pytest.mark.asyncio
    async def test_reads_degrade_when_backend_down(self, cache, backend_down):
        """Test reads return empty results during an outage."""
        assert await cache.get_refresh_token("tok_1") is None
        assert await cache.get_user_refresh_tokens("42") == []
        assert cache.metrics.get_stats("refresh")["errors"] == 2
