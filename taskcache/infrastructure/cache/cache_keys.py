"""Cache key construction utilities.

Centralized logical key construction so every component agrees on the
namespace. Keys here are NOT prefixed: RedisAdapter prepends the process-wide
cache_key_prefix, so two services sharing one Redis never collide.

Key Patterns:
    - session:{session_id}              -> JSON session payload
    - user:{user_id}:sessions           -> SET of session ids
    - refresh:{token_id}                -> JSON refresh token payload
    - user:{user_id}:refresh_tokens     -> SET of refresh token ids
    - ratelimit:{identifier}            -> fixed-window counter
    - login_attempts:{email}            -> failed-login counter
    - user:{user_id}:profile            -> JSON profile snapshot
    - health:probe:{uuid}               -> disposable smoke-test key

Usage:
    from taskcache.infrastructure.cache.cache_keys import CacheKeys

    key = CacheKeys.session("sess_1700000000_ab12")  # "session:sess_1700000000_ab12"
"""


class CacheKeys:
    """Logical cache key builders and SCAN patterns."""

    # Metric namespaces
    SESSION = "session"
    REFRESH = "refresh"
    RATE_LIMIT = "ratelimit"
    LOGIN_ATTEMPTS = "login_attempts"
    PROFILE = "profile"

    @staticmethod
    def session(session_id: str) -> str:
        """Session payload key: session:{session_id}."""
        return f"session:{session_id}"

    @staticmethod
    def user_sessions(user_id: str) -> str:
        """Per-user session index: user:{user_id}:sessions."""
        return f"user:{user_id}:sessions"

    @staticmethod
    def refresh_token(token_id: str) -> str:
        """Refresh token payload key: refresh:{token_id}."""
        return f"refresh:{token_id}"

    @staticmethod
    def user_refresh_tokens(user_id: str) -> str:
        """Per-user refresh token index: user:{user_id}:refresh_tokens."""
        return f"user:{user_id}:refresh_tokens"

    @staticmethod
    def rate_limit(identifier: str) -> str:
        """Fixed-window counter: ratelimit:{identifier}."""
        return f"ratelimit:{identifier}"

    @staticmethod
    def login_attempts(email: str) -> str:
        """Failed-login counter keyed by normalized email."""
        return f"login_attempts:{email}"

    @staticmethod
    def user_profile(user_id: str) -> str:
        """Profile snapshot: user:{user_id}:profile."""
        return f"user:{user_id}:profile"

    @staticmethod
    def health_probe(probe_id: str) -> str:
        """Disposable smoke-test key: health:probe:{probe_id}."""
        return f"health:probe:{probe_id}"

    @staticmethod
    def user_data_pattern(user_id: str) -> str:
        """Everything stored under one user: user:{user_id}:*."""
        return f"user:{user_id}:*"

    SESSION_PATTERN = "session:*"
    REFRESH_TOKEN_PATTERN = "refresh:*"
    USER_SESSIONS_PATTERN = "user:*:sessions"
    USER_REFRESH_TOKENS_PATTERN = "user:*:refresh_tokens"
