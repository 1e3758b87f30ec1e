"""Tests for settings and logging configuration."""

import pytest
import structlog

from ledgerdash import get_version
from ledgerdash.db import get_async_database_url
from ledgerdash.logging import get_logger, setup_logging
from ledgerdash.settings import Environment, Settings, get_settings, reset_settings


@pytest.mark.unit
class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.revenue.rolling_window_months == 12
        assert settings.revenue.default_currency == "USD"
        assert settings.revenue.serialize_period_writes is True

    def test_nested_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("REVENUE__DEFAULT_CURRENCY", "eur")
        monkeypatch.setenv("REVENUE__ROLLING_WINDOW_MONTHS", "6")

        settings = Settings(_env_file=None)

        assert settings.revenue.default_currency == "EUR"
        assert settings.revenue.rolling_window_months == 6

    def test_environment_flags(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        settings = Settings(_env_file=None)

        assert settings.is_production
        assert not settings.is_development

    def test_singleton_reset(self):
        first = get_settings()
        assert get_settings() is first

        reset_settings()
        try:
            assert get_settings() is not first
        finally:
            reset_settings()

    def test_database_url_from_settings(self):
        assert get_async_database_url().startswith("sqlite+aiosqlite")


@pytest.mark.unit
class TestLogging:
    def test_setup_logging_is_idempotent(self):
        setup_logging()
        setup_logging()

        assert structlog.is_configured()

    def test_get_logger_binds_context(self):
        logger = get_logger("ledgerdash.tests")
        bound = logger.bind(period="2024-03")

        assert bound is not None

    def test_version(self):
        assert get_version() == "1.0.0"
