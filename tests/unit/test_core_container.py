"""Unit tests for the composition root (logger and cache service factories)."""

from unittest.mock import MagicMock, patch

import pytest

from taskcache.core.config import Settings
from taskcache.core.container import create_cache_service, get_logger
from taskcache.core.enums import ConnectionState, Environment
from taskcache.infrastructure.cache.cache_service import CacheService
from taskcache.infrastructure.cache.redis_adapter import RedisAdapter


@pytest.mark.unit
class TestGetLogger:
    """Test get_logger() adapter selection."""

    @pytest.mark.parametrize(
        ("environment", "use_json"),
        [
            (Environment.DEVELOPMENT, False),
            (Environment.TESTING, True),
            (Environment.PRODUCTION, True),
        ],
    )
    def test_json_outside_development(self, environment, use_json):
        """Test JSON logs everywhere except development."""
        settings = Settings(environment=environment, log_level="DEBUG", app_name="auth")
        get_logger.cache_clear()
        with (
            patch("taskcache.core.container.get_settings", return_value=settings),
            patch(
                "taskcache.infrastructure.logging.console_adapter.ConsoleAdapter"
            ) as mock_adapter,
        ):
            logger = get_logger()

        mock_adapter.assert_called_once_with(use_json=use_json, level="DEBUG")
        mock_adapter.return_value.bind.assert_called_once_with(service="auth")
        assert logger is mock_adapter.return_value.bind.return_value
        get_logger.cache_clear()


@pytest.mark.unit
class TestCreateCacheService:
    """Test create_cache_service() wiring."""

    def test_builds_disconnected_service(self):
        """Test the factory wires an adapter with the configured prefix."""
        settings = Settings(environment=Environment.TESTING, cache_key_prefix="tasks:")
        client = MagicMock()

        service = create_cache_service(settings, redis_client=client, logger=MagicMock())

        assert isinstance(service, CacheService)
        assert isinstance(service.store, RedisAdapter)
        assert service.store.key_prefix == "tasks:"
        assert service.store.state == ConnectionState.DISCONNECTED
