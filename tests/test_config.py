"""Tests for settings loading and validation."""

import pytest

from sms_dispatch.config import FailurePolicy, Settings, get_settings, load_settings
from sms_dispatch.errors import ConfigurationError


class TestDefaults:
    def test_gateway_quota_defaults(self, monkeypatch):
        for key in ("LIMIT_FOR_PERIOD", "REFRESH_PERIOD_MS", "ACQUIRE_TIMEOUT_MS", "RATE_LIMITING_ENABLED"):
            monkeypatch.delenv(key, raising=False)

        settings = Settings()

        assert settings.RATE_LIMITING_ENABLED is True
        assert settings.LIMIT_FOR_PERIOD == 18
        assert settings.refresh_period_seconds == 1.5
        assert settings.acquire_timeout_seconds == 1.5

    def test_continue_policy_by_default(self, monkeypatch):
        monkeypatch.delenv("FAILURE_POLICY", raising=False)
        assert Settings().FAILURE_POLICY is FailurePolicy.CONTINUE


class TestEnvironment:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("LIMIT_FOR_PERIOD", "5")
        monkeypatch.setenv("REFRESH_PERIOD_MS", "250")
        monkeypatch.setenv("FAILURE_POLICY", "fail_fast")
        monkeypatch.setenv("RATE_LIMITING_ENABLED", "false")

        settings = load_settings()

        assert settings.LIMIT_FOR_PERIOD == 5
        assert settings.refresh_period_seconds == 0.25
        assert settings.FAILURE_POLICY is FailurePolicy.FAIL_FAST
        assert settings.RATE_LIMITING_ENABLED is False

    @pytest.mark.parametrize(
        "key, value",
        [
            ("REFRESH_PERIOD_MS", "0"),
            ("ACQUIRE_TIMEOUT_MS", "-1"),
            ("MAX_WORKERS", "0"),
            ("FAILURE_POLICY", "retry_forever"),
            ("LIMIT_FOR_PERIOD", "many"),
        ],
    )
    def test_invalid_values_raise_configuration_error(self, monkeypatch, key, value):
        monkeypatch.setenv(key, value)

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert key in exc_info.value.context["errors"]

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestGatewaySettings:
    def test_missing_gateway_settings(self):
        settings = Settings(GATEWAY_BASE_URL="", GATEWAY_API_KEY="")
        assert settings.missing_gateway_settings() == ["GATEWAY_BASE_URL", "GATEWAY_API_KEY"]

    def test_complete_gateway_settings(self, gateway_env):
        assert Settings(**gateway_env).missing_gateway_settings() == []
