"""Tests for application settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from cep_lookup.core.config import EnvironmentMode, Settings


class TestSettings:
    def test_env_mode_is_case_insensitive(self) -> None:
        settings = Settings(env_mode="PRODUCTION")

        assert settings.env_mode == EnvironmentMode.PRODUCTION
        assert settings.use_real_services
        assert not settings.is_development

    def test_invalid_env_mode(self) -> None:
        with pytest.raises(ValidationError):
            Settings(env_mode="qa")

    @pytest.mark.parametrize("field", ["viacep_timeout_ms", "brasilapi_timeout_ms", "postmon_timeout_ms"])
    def test_timeouts_must_be_positive(self, field) -> None:
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_failure_rate_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Settings(mock_failure_rate=1.5)

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("ENV_MODE", "staging")
        monkeypatch.setenv("VIACEP_TIMEOUT_MS", "2500")

        settings = Settings()

        assert settings.env_mode == EnvironmentMode.STAGING
        assert settings.use_real_services
        assert settings.viacep_timeout_ms == 2500

    def test_cors_origins_list(self) -> None:
        settings = Settings(cors_origins="https://loja.example, https://admin.example ,")

        assert settings.cors_origins_list == ["https://loja.example", "https://admin.example"]
