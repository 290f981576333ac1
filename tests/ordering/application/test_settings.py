"""Tests for environment-backed ordering settings."""

import pytest
from ordering.settings import OrderingSettings, get_settings
from pydantic import ValidationError


class TestDefaults:
    def test_defaults(self):
        settings = get_settings()

        assert settings.currency == "VND"
        assert settings.reservation_window_minutes == 20
        assert settings.payment_reference_prefix == "DH"
        assert settings.amount_policy == "at_least"
        assert settings.poll_enabled is True
        assert settings.sweep_enabled is True

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()


class TestEnvironment:
    def test_values_are_read_from_environment(self, settings_env):
        settings_env(BANK_CODE="VCB", ORDERING_RESERVATION_WINDOW_MINUTES=30, ORDERING_POLL_ENABLED="false")

        settings = get_settings()

        assert settings.bank_code == "VCB"
        assert settings.reservation_window_minutes == 30
        assert settings.poll_enabled is False

    def test_invalid_amount_policy(self, monkeypatch):
        monkeypatch.setenv("ORDERING_AMOUNT_POLICY", "roughly")
        with pytest.raises(ValidationError):
            OrderingSettings()


class TestWebhookSecrets:
    def test_per_bank_secret_wins(self, settings_env):
        settings_env(BANKING_WEBHOOK_SECRET="global", BANKING_WEBHOOK_SECRETS='{"MB": "mb-secret"}')

        settings = get_settings()

        assert settings.webhook_secret_for("mb") == "mb-secret"
        assert settings.webhook_secret_for("VCB") == "global"

    def test_no_secret_configured(self):
        assert get_settings().webhook_secret_for("MB") is None
