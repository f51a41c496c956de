"""Unit tests for CacheKeys (logical key construction)."""

import fnmatch

import pytest

from taskcache.infrastructure.cache.cache_keys import CacheKeys


@pytest.mark.unit
class TestCacheKeys:
    """Test key builders produce the documented namespaces."""

    def test_entity_keys(self):
        """Test payload keys for sessions, tokens and counters."""
        assert CacheKeys.session("s1") == "session:s1"
        assert CacheKeys.refresh_token("t1") == "refresh:t1"
        assert CacheKeys.rate_limit("general:10.0.0.1") == "ratelimit:general:10.0.0.1"
        assert CacheKeys.login_attempts("a@b.io") == "login_attempts:a@b.io"

    def test_user_scoped_keys(self):
        """Test per-user keys all live under user:{id}:."""
        assert CacheKeys.user_sessions("42") == "user:42:sessions"
        assert CacheKeys.user_refresh_tokens("42") == "user:42:refresh_tokens"
        assert CacheKeys.user_profile("42") == "user:42:profile"

    def test_user_data_pattern_matches_every_user_key(self):
        """Test the bulk-delete pattern covers indexes and profile but not other users."""
        pattern = CacheKeys.user_data_pattern("42")
        assert fnmatch.fnmatchcase(CacheKeys.user_sessions("42"), pattern)
        assert fnmatch.fnmatchcase(CacheKeys.user_refresh_tokens("42"), pattern)
        assert fnmatch.fnmatchcase(CacheKeys.user_profile("42"), pattern)
        assert not fnmatch.fnmatchcase(CacheKeys.user_profile("420"), pattern)

    def test_index_patterns(self):
        """Test SCAN patterns used by maintenance select only index keys."""
        assert fnmatch.fnmatchcase(CacheKeys.user_sessions("7"), CacheKeys.USER_SESSIONS_PATTERN)
        assert not fnmatch.fnmatchcase(
            CacheKeys.user_profile("7"), CacheKeys.USER_SESSIONS_PATTERN
        )
        assert fnmatch.fnmatchcase(
            CacheKeys.user_refresh_tokens("7"), CacheKeys.USER_REFRESH_TOKENS_PATTERN
        )

    def test_health_probe(self):
        assert CacheKeys.health_probe("abc") == "health:probe:abc"
