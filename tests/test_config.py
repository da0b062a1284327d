# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for reporter configuration and providers."""

import logging

import pytest

from copilot_error_tracking import (
    EnvConfigProvider,
    ReporterConfig,
    StaticConfigProvider,
)
from copilot_error_tracking.models import PLATFORMS


class TestReporterConfig:
    """Tests for ReporterConfig."""

    def test_limits_defaults(self):
        """Test the built-in limits."""
        config = ReporterConfig()
        assert config.max_breadcrumbs == 100
        assert config.rate_limit_per_fingerprint == 5
        assert config.rate_limit_window_ms == 60_000
        assert config.retry_max_attempts == 3
        assert config.retry_base_delay_ms == 1000
        assert config.release == ""

    def test_merged_returns_copy(self):
        """Test merged leaves the original untouched."""
        base = ReporterConfig(endpoint="/a")
        merged = base.merged(endpoint="/b", debug=True)

        assert base.endpoint == "/a"
        assert merged.endpoint == "/b"
        assert merged.debug is True

    def test_merged_unknown_field(self):
        with pytest.raises(TypeError):
            ReporterConfig().merged(colour="blue")

    @pytest.mark.parametrize("name", ["max_queue_size", "flush_interval_ms", "max_breadcrumbs"])
    def test_non_positive_rejected(self, name):
        """Test zero and negative sizes are rejected."""
        with pytest.raises(ValueError, match=name):
            ReporterConfig(**{name: 0})

    def test_negative_retry_delay_rejected(self):
        with pytest.raises(ValueError):
            ReporterConfig(retry_base_delay_ms=-1)

    def test_zero_retry_delay_allowed(self):
        assert ReporterConfig(retry_base_delay_ms=0).retry_base_delay_ms == 0

    def test_default_tags_copied(self):
        """Test later changes to the caller's dict do not leak into the config."""
        tags = {"app": "web"}
        config = ReporterConfig(default_tags=tags)
        tags["app"] = "changed"
        assert config.default_tags == {"app": "web"}


class TestFromProvider:
    """Tests for building a config from providers."""

    def test_static_provider_values(self):
        """Test every ERROR_TRACKING_* key is read."""
        provider = StaticConfigProvider(
            {
                "ERROR_TRACKING_ENDPOINT": "https://errors.example.com/api/errors",
                "ERROR_TRACKING_PLATFORM": "server",
                "ERROR_TRACKING_ENVIRONMENT": "staging",
                "ERROR_TRACKING_RELEASE": "2.0.1",
                "ERROR_TRACKING_ENABLED": "false",
                "ERROR_TRACKING_MAX_QUEUE_SIZE": "10",
                "ERROR_TRACKING_FLUSH_INTERVAL_MS": 250,
                "ERROR_TRACKING_MAX_BREADCRUMBS": "20",
                "ERROR_TRACKING_DEBUG": True,
            }
        )
        config = ReporterConfig.from_provider(provider)

        assert config.endpoint == "https://errors.example.com/api/errors"
        assert config.platform == "server"
        assert config.environment == "staging"
        assert config.release == "2.0.1"
        assert config.enabled is False
        assert config.max_queue_size == 10
        assert config.flush_interval_ms == 250
        assert config.max_breadcrumbs == 20
        assert config.debug is True

    def test_missing_values_use_defaults(self):
        config = ReporterConfig.from_provider(StaticConfigProvider())
        assert config == ReporterConfig()

    def test_malformed_values_fall_back(self):
        """Test invalid platform and sizes fall back to defaults."""
        provider = StaticConfigProvider(
            {
                "ERROR_TRACKING_PLATFORM": "desktop",
                "ERROR_TRACKING_MAX_QUEUE_SIZE": "lots",
                "ERROR_TRACKING_FLUSH_INTERVAL_MS": "-5",
            }
        )
        config = ReporterConfig.from_provider(provider)

        assert config.platform == "web"
        assert config.max_queue_size == 50
        assert config.flush_interval_ms == 5000

    def test_overrides_win(self):
        provider = StaticConfigProvider({"ERROR_TRACKING_ENVIRONMENT": "staging"})
        config = ReporterConfig.from_provider(provider, environment="qa")
        assert config.environment == "qa"

    def test_from_env(self, monkeypatch):
        """Test from_env reads os.environ."""
        monkeypatch.setenv("ERROR_TRACKING_ENDPOINT", "/collect")
        monkeypatch.setenv("ERROR_TRACKING_DEBUG", "yes")
        config = ReporterConfig.from_env()

        assert config.endpoint == "/collect"
        assert config.debug is True


class TestEnvConfigProvider:
    """Tests for EnvConfigProvider."""

    def test_prefix_applied(self):
        """Test settings are looked up under the ERROR_TRACKING_ prefix."""
        provider = EnvConfigProvider({"ERROR_TRACKING_ENDPOINT": "/collect", "ENDPOINT": "/wrong"})
        assert provider.key("ENDPOINT") == "ERROR_TRACKING_ENDPOINT"
        assert provider.get_str("ENDPOINT", "/api/errors") == "/collect"

    def test_custom_prefix(self):
        provider = EnvConfigProvider({"MYAPP_ERRORS_ENDPOINT": "/mine"}, prefix="MYAPP_ERRORS_")
        assert provider.get_str("ENDPOINT", "/api/errors") == "/mine"

    def test_blank_value_uses_default(self):
        provider = EnvConfigProvider({"ERROR_TRACKING_ENVIRONMENT": "   "})
        assert provider.get_str("ENVIRONMENT", "production") == "production"

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("1", True), ("ON", True), ("false", False), ("0", False), ("off", False)],
    )
    def test_get_bool(self, raw, expected):
        assert EnvConfigProvider({"ERROR_TRACKING_DEBUG": raw}).get_bool("DEBUG", not expected) is expected

    def test_invalid_bool_logged(self, caplog):
        """Test an unrecognised boolean keeps the default and is logged."""
        provider = EnvConfigProvider({"ERROR_TRACKING_ENABLED": "maybe"})
        with caplog.at_level(logging.WARNING, logger="copilot_error_tracking.providers"):
            assert provider.get_bool("ENABLED", True) is True

        assert "ERROR_TRACKING_ENABLED='maybe'" in caplog.text

    @pytest.mark.parametrize("raw", ["0", "-3", "ten", "2.5"])
    def test_get_positive_int_rejects(self, raw):
        provider = EnvConfigProvider({"ERROR_TRACKING_MAX_QUEUE_SIZE": raw})
        assert provider.get_positive_int("MAX_QUEUE_SIZE", 50) == 50

    def test_get_positive_int(self):
        provider = EnvConfigProvider({"ERROR_TRACKING_MAX_QUEUE_SIZE": " 12 "})
        assert provider.get_positive_int("MAX_QUEUE_SIZE", 50) == 12

    def test_get_choice(self):
        """Test choices are matched case-insensitively."""
        provider = EnvConfigProvider({"ERROR_TRACKING_PLATFORM": "Mobile_IOS"})
        assert provider.get_choice("PLATFORM", PLATFORMS, "web") == "mobile_ios"

    def test_get_choice_unknown(self, caplog):
        provider = EnvConfigProvider({"ERROR_TRACKING_PLATFORM": "desktop"})
        with caplog.at_level(logging.WARNING, logger="copilot_error_tracking.providers"):
            assert provider.get_choice("PLATFORM", PLATFORMS, "web") == "web"

        assert "one of web, mobile_ios, mobile_android, server" in caplog.text


class TestStaticConfigProvider:
    """Tests for StaticConfigProvider."""

    def test_typed_values(self):
        """Test native Python values are accepted as well as strings."""
        provider = StaticConfigProvider(
            {
                "ERROR_TRACKING_DEBUG": True,
                "ERROR_TRACKING_MAX_QUEUE_SIZE": 5,
                "ERROR_TRACKING_FLUSH_INTERVAL_MS": "900",
            }
        )
        assert provider.get_bool("DEBUG", False) is True
        assert provider.get_positive_int("MAX_QUEUE_SIZE", 50) == 5
        assert provider.get_positive_int("FLUSH_INTERVAL_MS", 5000) == 900

    def test_bool_is_not_an_int(self):
        provider = StaticConfigProvider({"ERROR_TRACKING_MAX_QUEUE_SIZE": True})
        assert provider.get_positive_int("MAX_QUEUE_SIZE", 50) == 50

    def test_values_copied(self):
        values = {"ERROR_TRACKING_ENDPOINT": "/a"}
        provider = StaticConfigProvider(values)
        values["ERROR_TRACKING_ENDPOINT"] = "/b"
        assert provider.get_str("ENDPOINT", "/api/errors") == "/a"
