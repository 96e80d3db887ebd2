"""Tests for service settings and dependency wiring."""

import pytest

from okr.config import Settings
from okr.dependencies import (
    get_progress_cache,
    get_settings,
    init_progress_services,
    reset_progress_services,
)


class TestSettings:
    def test_defaults_are_valid(self):
        settings = Settings(_env_file=None)

        assert settings.PACE_MARGIN == pytest.approx(0.10)
        assert settings.collect_errors() == []

    def test_out_of_range_values_are_reported(self):
        settings = Settings(
            _env_file=None,
            PACE_MARGIN=1.5,
            PROGRESS_CACHE_TTL_SECONDS=-1,
            PROGRESS_CACHE_MAX_ENTRIES=0,
            LOG_LEVEL="LOUD",
        )

        with pytest.raises(ValueError) as exc_info:
            settings.validate_required()

        message = str(exc_info.value)
        assert "PACE_MARGIN" in message
        assert "PROGRESS_CACHE_TTL_SECONDS" in message
        assert "PROGRESS_CACHE_MAX_ENTRIES" in message
        assert "LOG_LEVEL" in message

    def test_production_requires_cors_origins(self):
        settings = Settings(_env_file=None, ENVIRONMENT="production", CORS_ORIGINS="*")

        assert "CORS_ORIGINS must be restricted in production" in settings.collect_errors()


class TestDependencies:
    def teardown_method(self):
        reset_progress_services()

    def test_getters_fail_before_init(self):
        reset_progress_services()

        with pytest.raises(RuntimeError):
            get_progress_cache()
        with pytest.raises(RuntimeError):
            get_settings()

    def test_init_uses_cache_settings(self):
        settings = Settings(_env_file=None, PROGRESS_CACHE_TTL_SECONDS=0)

        init_progress_services(settings)

        assert get_settings() is settings
        assert len(get_progress_cache()) == 0
