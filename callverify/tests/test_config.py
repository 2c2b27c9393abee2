"""Tests for configuration system."""
import os
import tempfile
from unittest.mock import patch

import pytest

from ..utils import config as config_module
from ..utils.config import AppConfig, ConfigManager, PortalConfig, get_config, reload_config


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the module-level config singletons from leaking between tests."""
    config_module._config_manager = None
    config_module._app_config = None
    yield
    config_module._config_manager = None
    config_module._app_config = None


class TestConfigManager:
    """Test configuration management."""

    def test_default_config_values(self):
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            config = ConfigManager().load_config()

            assert config.twilio.api_base_url == "https://api.twilio.com"
            assert config.polling.initial_call_wait == 20.0
            assert config.polling.status_interval == 5.0
            assert config.polling.status_max_attempts == 24
            assert config.polling.pending_retry_wait == 15.0
            assert config.report.display_timezone == "America/Denver"
            assert config.report.max_retries == 5
            assert config.report.refresh_wait == 15.0
            assert config.report.match_tolerance_seconds == 10.0
            assert config.browser.headless is True

    def test_env_var_override(self):
        """Test environment variable override."""
        test_env = {
            'TWILIO_ACCOUNT_SID': 'AC123',
            'TWILIO_AUTH_TOKEN': 'token',
            'CALL_STATUS_MAX_ATTEMPTS': '10',
            'CALL_STATUS_BACKOFF': '1.5',
            'REPORT_MAX_RETRIES': '3',
            'URL': 'https://portal.example.test'
        }

        with patch.dict(os.environ, test_env, clear=True):
            config = ConfigManager().load_config()

            assert config.twilio.account_sid == "AC123"
            assert config.twilio.auth_token == "token"
            assert config.polling.status_max_attempts == 10
            assert config.polling.status_backoff_factor == 1.5
            assert config.report.max_retries == 3
            assert config.portal.base_url == "https://portal.example.test"

    def test_default_url_fallback(self):
        with patch.dict(os.environ, {'DEFAULT_URL': 'https://fallback.example.test'}, clear=True):
            config = ConfigManager().load_config()
            assert config.portal.base_url == "https://fallback.example.test"

    def test_report_timezone_follows_portal_timezone(self):
        with patch.dict(os.environ, {'PORTAL_TIMEZONE': 'America/Chicago'}, clear=True):
            config = ConfigManager().load_config()
            assert config.report.display_timezone == "America/Chicago"

    def test_env_file_loading(self):
        """Test .env file loading."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.env', delete=False) as f:
            f.write("TWILIO_NUMBER=+15005550006\n")
            f.write("REPORT_REFRESH_WAIT=2.5\n")
            f.write("LOG_LEVEL=DEBUG\n")
            env_file_path = f.name

        try:
            with patch.dict(os.environ, {}, clear=True):
                config = ConfigManager(env_file_path).load_config()

                assert config.twilio.caller_number == "+15005550006"
                assert config.report.refresh_wait == 2.5
                assert config.logging.level == "DEBUG"
        finally:
            os.unlink(env_file_path)

    def test_env_file_does_not_override_environment(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.env', delete=False) as f:
            f.write("LOG_LEVEL=DEBUG\n")
            env_file_path = f.name

        try:
            with patch.dict(os.environ, {'LOG_LEVEL': 'WARNING'}, clear=True):
                config = ConfigManager(env_file_path).load_config()
                assert config.logging.level == "WARNING"
        finally:
            os.unlink(env_file_path)

    def test_invalid_number_falls_back_to_default(self):
        with patch.dict(os.environ, {'REPORT_MAX_RETRIES': 'five'}, clear=True):
            config = ConfigManager().load_config()
            assert config.report.max_retries == 5

    def test_empty_value_treated_as_unset(self):
        with patch.dict(os.environ, {'CALL_STATUS_TIMEOUT': ''}, clear=True):
            config = ConfigManager().load_config()
            assert config.polling.status_timeout is None

    @pytest.mark.parametrize("env_value", ["none", "off", "Disabled"])
    def test_match_tolerance_can_be_switched_off(self, env_value):
        with patch.dict(os.environ, {'REPORT_MATCH_TOLERANCE': env_value, 'CALL_STATUS_TIMEOUT': env_value}, clear=True):
            config = ConfigManager().load_config()
            assert config.report.match_tolerance_seconds is None
            assert config.polling.status_timeout is None

    def test_match_tolerance_override(self):
        with patch.dict(os.environ, {'REPORT_MATCH_TOLERANCE': '30'}, clear=True):
            config = ConfigManager().load_config()
            assert config.report.match_tolerance_seconds == 30.0

    def test_boolean_env_vars(self):
        """Test boolean environment variable parsing."""
        test_cases = [
            ('true', True),
            ('True', True),
            ('1', True),
            ('yes', True),
            ('on', True),
            ('false', False),
            ('False', False),
            ('0', False),
            ('no', False),
            ('off', False),
        ]

        for env_value, expected in test_cases:
            with patch.dict(os.environ, {'DEBUG': env_value}, clear=True):
                config = ConfigManager().load_config()
                assert config.dev.debug == expected

    def test_config_dict_masks_secrets(self):
        config = AppConfig()
        config.twilio.auth_token = "super-secret"
        config.portal.supervisor_password = "hunter2"
        config_dict = config.to_dict()

        assert config_dict["twilio"]["auth_token"] == "***"
        assert config_dict["portal"]["supervisor_password"] == "***"
        assert "super-secret" not in str(config_dict)
        assert set(config_dict) == {"twilio", "portal", "polling", "report", "browser", "logging", "dev"}
        assert set(config_dict["twilio"]) == {"account_sid", "auth_token", "api_base_url", "caller_number"}


class TestPortalConfig:

    def test_build_url(self):
        portal = PortalConfig(base_url="https://portal.example.test/")
        assert portal.build_url() == "https://portal.example.test"
        assert portal.build_url("/ccagent") == "https://portal.example.test/ccagent"
        assert portal.build_url("reports") == "https://portal.example.test/reports"

    def test_build_url_requires_base_url(self):
        with pytest.raises(ValueError, match="base URL"):
            PortalConfig().build_url("/")


class TestConfigIntegration:
    """Test configuration integration."""

    def test_config_reload(self):
        """Test configuration reload functionality."""
        with patch.dict(os.environ, {'REPORT_MAX_RETRIES': '2'}, clear=True):
            config1 = get_config()
            assert config1.report.max_retries == 2

        with patch.dict(os.environ, {'REPORT_MAX_RETRIES': '7'}, clear=True):
            config2 = reload_config()
            assert config2.report.max_retries == 7

    def test_global_config_singleton(self):
        """Test that global config is singleton."""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2
