"""Centralized constants for internal implementation details.

This module contains constants that are fixed properties of the cache layer,
NOT environment-specific configuration. For tunable defaults (TTLs, batch
sizes, thresholds), use `taskcache/core/config.py` instead.

Categories:
- Bounds: Hard limits every write is validated against
- Default TTLs: Per-entity fallbacks used when settings are not supplied
- Patterns: Identifier and email formats
- Maintenance: Scan and delete batch sizes
- Health: Probe key lifetime and latency threshold

Example:
    >>> from taskcache.core.constants import MAX_TTL_SECONDS
    >>> ttl = min(requested_ttl, MAX_TTL_SECONDS)
"""

import re

# =============================================================================
# Bounds
# =============================================================================

MAX_KEY_LENGTH: int = 250
"""Maximum length of a fully-qualified (prefixed) cache key."""

MAX_TTL_SECONDS: int = 7 * 24 * 60 * 60
"""Upper bound for any TTL written to the cache (7 days)."""

MAX_RATE_LIMIT_WINDOW_SECONDS: int = 24 * 60 * 60
"""Upper bound for a fixed rate-limit window (24 hours)."""

MAX_IDENTIFIER_LENGTH: int = 200
"""Maximum length of a caller-supplied rate-limit identifier."""

MAX_EMAIL_LENGTH: int = 255
"""Maximum length of an email address used as a login-attempt key."""


# =============================================================================
# Default TTLs (seconds)
# =============================================================================

SESSION_TTL_DEFAULT: int = 30 * 60
"""Session entry lifetime (30 minutes)."""

REFRESH_TOKEN_TTL_DEFAULT: int = 7 * 24 * 60 * 60
"""Refresh token lifetime (7 days)."""

LOGIN_ATTEMPT_WINDOW_DEFAULT: int = 15 * 60
"""Failed-login counting window (15 minutes)."""

PROFILE_TTL_DEFAULT: int = 30 * 60
"""User profile snapshot lifetime (30 minutes)."""

RATE_LIMIT_WINDOW_DEFAULT: int = 15 * 60
"""Generic API rate-limit window (15 minutes)."""

MAX_LOGIN_ATTEMPTS_DEFAULT: int = 5
"""Failed logins tolerated inside one window before lockout."""


# =============================================================================
# Patterns
# =============================================================================

IDENTIFIER_PATTERN: re.Pattern[str] = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]{0,127}$")
"""Session ids, token ids and user ids. No ':' or glob characters."""

EMAIL_PATTERN: re.Pattern[str] = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
"""Loose email shape check (local@domain.tld)."""

GLOB_CHARACTERS: frozenset[str] = frozenset("*?[]")
"""Characters with special meaning in SCAN MATCH patterns."""


# =============================================================================
# Maintenance
# =============================================================================

SCAN_BATCH_SIZE_DEFAULT: int = 100
"""Keys requested per SCAN call and processed per pipeline batch."""

DELETE_BATCH_SIZE: int = 100
"""Keys removed per DEL call during pattern deletion."""


# =============================================================================
# Health
# =============================================================================

HEALTH_PROBE_TTL_SECONDS: int = 30
"""Lifetime of the disposable smoke-test key if the delete step never runs."""

HEALTH_LATENCY_THRESHOLD_MS_DEFAULT: float = 100.0
"""Round-trip latency above which the cache is reported as degraded."""
