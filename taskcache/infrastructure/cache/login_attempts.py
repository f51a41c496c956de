"""Failed-login tracker.

Counts failed logins per normalized email (stripped, lower-cased) in a fixed
window, using the same atomic script as the rate limiter. A successful login
clears the counter.

Failure policy:
    - record_login_attempt raises (the caller decides whether to proceed)
    - get_login_attempts returns 0, clear_login_attempts returns False
    - is_login_locked fails open (not locked)
"""

from taskcache.core.constants import LOGIN_ATTEMPT_WINDOW_DEFAULT, MAX_LOGIN_ATTEMPTS_DEFAULT
from taskcache.core.errors import BackendUnavailableError
from taskcache.core.result import Failure
from taskcache.core.validation import normalize_email, require
from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol
from taskcache.infrastructure.cache.cache_keys import CacheKeys
from taskcache.infrastructure.cache.cache_metrics import CacheMetrics
from taskcache.infrastructure.cache.rate_limiter import increment_window_counter


class LoginAttemptTracker:
    """Per-email failed-login counters.

    Args:
        store: Key-value store adapter.
        logger: Structured logger.
        metrics: Shared counters.
        window_seconds: Counting window (default 15 minutes).
        max_attempts: Attempts at which the email counts as locked.
    """

    def __init__(
        self,
        *,
        store: CacheStoreProtocol,
        logger: LoggerProtocol,
        metrics: CacheMetrics,
        window_seconds: int = LOGIN_ATTEMPT_WINDOW_DEFAULT,
        max_attempts: int = MAX_LOGIN_ATTEMPTS_DEFAULT,
    ) -> None:
        self._store = store
        self._logger = logger
        self._metrics = metrics
        self._window_seconds = window_seconds
        self._max_attempts = max_attempts

    @property
    def max_attempts(self) -> int:
        """Attempts at which an email is locked."""
        return self._max_attempts

    async def record_login_attempt(self, email: str) -> int:
        """Count one failed login.

        Returns:
            Attempts in the current window, including this one.

        Raises:
            ValidationError: Malformed email.
            BackendUnavailableError: Backend failure.
        """
        normalized = require(normalize_email(email))
        try:
            result = await increment_window_counter(
                self._store, CacheKeys.login_attempts(normalized), self._window_seconds
            )
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.LOGIN_ATTEMPTS)
            self._logger.error(
                "Login attempt record failed",
                error=e,
                operation="record_login_attempt",
            )
            raise

        if result.count >= self._max_attempts:
            self._logger.warning(
                "Login attempts threshold reached",
                attempts=result.count,
                max_attempts=self._max_attempts,
            )
        return result.count

    async def get_login_attempts(self, email: str) -> int:
        """Failed logins in the current window (0 on any failure)."""
        if isinstance(email_result := normalize_email(email), Failure):
            return 0
        try:
            raw = await self._store.get(CacheKeys.login_attempts(email_result.value))
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.LOGIN_ATTEMPTS)
            self._logger.warning(
                "Login attempt read degraded",
                operation="get_login_attempts",
                error_code=e.code.value,
            )
            return 0
        self._metrics.record_lookup(CacheKeys.LOGIN_ATTEMPTS, raw)
        return int(raw) if raw is not None else 0

    async def clear_login_attempts(self, email: str) -> bool:
        """Reset an email's counter (idempotent).

        Returns:
            True if a counter existed.
        """
        if isinstance(email_result := normalize_email(email), Failure):
            return False
        try:
            deleted = await self._store.delete(CacheKeys.login_attempts(email_result.value))
        except BackendUnavailableError as e:
            self._metrics.record_error(CacheKeys.LOGIN_ATTEMPTS)
            self._logger.warning(
                "Login attempt clear degraded",
                operation="clear_login_attempts",
                error_code=e.code.value,
            )
            return False
        return deleted > 0

    async def is_login_locked(self, email: str) -> bool:
        """Whether the email has reached max_attempts in the current window."""
        return await self.get_login_attempts(email) >= self._max_attempts
