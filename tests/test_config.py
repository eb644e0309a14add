"""
Tests for centralized configuration.
"""

import os
import pytest


class TestConfigDefaults:
    """Test config default values."""

    def test_api_url_default(self):
        """Test default API endpoint."""
        from config import Config
        assert Config.QRZ_API_URL == "https://logbook.qrz.com/api"

    def test_timeout_default(self):
        """Test default request timeout is 30 seconds."""
        from config import Config
        assert Config.QRZ_TIMEOUT_SECONDS == 30.0

    def test_page_size_default(self):
        """Test default FETCH page size is 250."""
        from config import Config
        assert Config.QRZ_PAGE_SIZE == 250

    def test_user_agent_default_is_identifiable(self):
        """Test the default user agent passes client validation."""
        from config import Config
        from qrz_client import validate_user_agent
        validate_user_agent(Config.QRZ_USER_AGENT)


class TestConfigEnvironmentOverrides:
    """Test config values can be overridden via environment."""

    def _reload_with(self, name, value):
        import importlib
        import config
        original = os.environ.get(name)
        os.environ[name] = value
        try:
            importlib.reload(config)
            return config.Config
        finally:
            if original is not None:
                os.environ[name] = original
            else:
                os.environ.pop(name, None)

    def teardown_method(self):
        import importlib
        import config
        importlib.reload(config)

    def test_page_size_from_env(self):
        """Test QRZ_PAGE_SIZE can be set from environment."""
        assert self._reload_with("QRZ_PAGE_SIZE", "100").QRZ_PAGE_SIZE == 100

    def test_timeout_from_env(self):
        """Test QRZ_TIMEOUT_SECONDS can be set from environment."""
        assert self._reload_with("QRZ_TIMEOUT_SECONDS", "5.5").QRZ_TIMEOUT_SECONDS == 5.5

    def test_api_key_from_env(self):
        """Test QRZ_API_KEY can be set from environment."""
        assert self._reload_with("QRZ_API_KEY", "ABCD-1234-EFGH").require("QRZ_API_KEY") == "ABCD-1234-EFGH"


class TestConfigRequire:
    """Test required settings."""

    def test_require_missing(self):
        """Test an empty setting raises."""
        from config import Config
        with pytest.raises(ValueError) as exc:
            Config.require("DOES_NOT_EXIST")
        assert "DOES_NOT_EXIST" in str(exc.value)


class TestConfigInstance:
    """Test the global config instance."""

    def test_config_instance_exists(self):
        """Test global config instance is available."""
        from config import config
        assert config is not None

    def test_config_instance_has_attributes(self):
        """Test config instance has expected attributes."""
        from config import config
        assert hasattr(config, 'QRZ_API_URL')
        assert hasattr(config, 'QRZ_USER_AGENT')
        assert hasattr(config, 'QRZ_PAGE_DELAY_SECONDS')
        assert hasattr(config, 'TESTING')

    def test_testing_flag_in_test_mode(self):
        """Test TESTING flag is True when TESTING env var is set."""
        from config import config
        # TESTING env var is set by conftest
        assert config.TESTING is True
