"""Unit tests for the validation helpers.

Covers:
- Key, TTL and window bounds
- Identifier formats (session, token, user, rate-limit identifier)
- Email normalization
- require() raising the carried ValidationError
"""

import pytest

from taskcache.core.constants import MAX_KEY_LENGTH, MAX_TTL_SECONDS
from taskcache.core.enums import ErrorCode
from taskcache.core.errors import ValidationError
from taskcache.core.result import Failure, Success
from taskcache.core.validation import (
    normalize_email,
    require,
    validate_key,
    validate_pattern,
    validate_rate_limit_identifier,
    validate_session_id,
    validate_token_id,
    validate_ttl,
    validate_user_id,
    validate_window,
)


@pytest.mark.unit
class TestKeyValidation:
    """Tests for validate_key."""

    def test_accepts_regular_key(self):
        """A normal namespaced key is accepted unchanged."""
        assert validate_key("session:abc") == Success(value="session:abc")

    @pytest.mark.parametrize("key", ["", "   ", None, 42])
    def test_rejects_empty_or_non_string(self, key):
        """Empty, blank and non-string keys are rejected."""
        result = validate_key(key)
        assert isinstance(result, Failure)
        assert result.error.code == ErrorCode.INVALID_KEY

    def test_length_boundary(self):
        """Exactly MAX_KEY_LENGTH passes, one more fails."""
        assert isinstance(validate_key("k" * MAX_KEY_LENGTH), Success)
        assert isinstance(validate_key("k" * (MAX_KEY_LENGTH + 1)), Failure)

    def test_custom_max_length(self):
        """Callers can shrink the bound to leave room for a prefix."""
        assert isinstance(validate_key("k" * 11, max_length=10), Failure)


@pytest.mark.unit
class TestTtlValidation:
    """Tests for validate_ttl and validate_window."""

    def test_seven_days_accepted(self):
        """The 7-day maximum itself is valid."""
        assert validate_ttl(MAX_TTL_SECONDS) == Success(value=MAX_TTL_SECONDS)

    def test_eight_days_rejected(self):
        """Eight days exceeds the bound."""
        result = validate_ttl(8 * 24 * 60 * 60)
        assert isinstance(result, Failure)
        assert result.error.code == ErrorCode.INVALID_TTL

    @pytest.mark.parametrize("ttl", [0, -1, 1.5, "60", True])
    def test_rejects_non_positive_or_non_int(self, ttl):
        """Zero, negatives, floats, strings and bools are not TTLs."""
        assert isinstance(validate_ttl(ttl), Failure)

    def test_field_name_reported(self):
        """The failing argument name is carried on the error."""
        result = validate_ttl(0, field="ttl_seconds")
        assert isinstance(result, Failure)
        assert result.error.field == "ttl_seconds"

    def test_window_bounds(self):
        """Windows run from 1 second to 24 hours."""
        assert isinstance(validate_window(1), Success)
        assert isinstance(validate_window(86400), Success)
        assert isinstance(validate_window(86401), Failure)
        assert isinstance(validate_window(0), Failure)


@pytest.mark.unit
class TestIdentifierValidation:
    """Tests for id and identifier formats."""

    @pytest.mark.parametrize(
        "value",
        ["sess_1700000000_ab12cd", "42", "0b7f6c1e-9a55-4d2a-8f3e-1c2d3e4f5a6b"],
    )
    def test_valid_session_ids(self, value):
        """Generated ids, numeric ids and UUID strings are valid."""
        assert validate_session_id(value) == Success(value=value)

    @pytest.mark.parametrize("value", ["", "a:b", "abc*", "_leading", "has space", None])
    def test_invalid_ids(self, value):
        """Colons, globs, leading separators and whitespace are rejected."""
        result = validate_user_id(value)
        assert isinstance(result, Failure)
        assert result.error.code == ErrorCode.INVALID_USER_ID

    def test_token_id_error_code(self):
        """Token ids report their own error code."""
        result = validate_token_id("bad id")
        assert isinstance(result, Failure)
        assert result.error.code == ErrorCode.INVALID_TOKEN_ID

    def test_rate_limit_identifier_allows_colons(self):
        """Identifiers like 'general:10.0.0.1' and IPv6 addresses are fine."""
        assert isinstance(validate_rate_limit_identifier("general:10.0.0.1"), Success)
        assert isinstance(validate_rate_limit_identifier("::1"), Success)

    @pytest.mark.parametrize("value", ["", "a b", "ip:*", "x" * 201, None])
    def test_rate_limit_identifier_rejections(self, value):
        """Empty, whitespace, glob characters and overlong values are rejected."""
        assert isinstance(validate_rate_limit_identifier(value), Failure)


@pytest.mark.unit
class TestEmailNormalization:
    """Tests for normalize_email."""

    def test_strips_and_lowercases(self):
        """Surrounding whitespace is removed and case folded."""
        assert normalize_email("  Alice@Example.COM ") == Success(value="alice@example.com")

    @pytest.mark.parametrize("value", ["alice", "alice@", "@example.com", "a@b", None])
    def test_rejects_malformed(self, value):
        """Addresses without local part, domain or TLD are rejected."""
        result = normalize_email(value)
        assert isinstance(result, Failure)
        assert result.error.code == ErrorCode.INVALID_EMAIL


@pytest.mark.unit
class TestRequire:
    """Tests for require() and validate_pattern()."""

    def test_returns_value_on_success(self):
        assert require(Success(value=5)) == 5

    def test_raises_carried_error(self):
        """The exact ValidationError instance is raised."""
        error = ValidationError("bad", field="x")
        with pytest.raises(ValidationError) as exc_info:
            require(Failure(error=error))
        assert exc_info.value is error

    def test_pattern_rules(self):
        """Glob patterns are allowed; empty and whitespace patterns are not."""
        assert isinstance(validate_pattern("user:*:sessions"), Success)
        assert isinstance(validate_pattern(""), Failure)
        assert isinstance(validate_pattern("a b*"), Failure)
