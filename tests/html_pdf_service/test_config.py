"""
Unit tests for service configuration.
"""

import pytest
from pydantic import ValidationError

from html_pdf_service.config import ServiceSettings, validate_config_on_startup


class TestServiceSettings:
    """Tests for ServiceSettings validation."""

    def test_defaults(self, monkeypatch):
        for name in ("ENVIRONMENT", "BROWSER_PROVIDER", "PDF_SETTLE_DELAY_MS"):
            monkeypatch.delenv(name, raising=False)

        settings = ServiceSettings()

        assert settings.environment == "development"
        assert settings.port == 3000
        assert settings.browser_provider == "auto"
        assert settings.pdf_load_timeout_ms == 30000
        assert settings.pdf_settle_delay_ms == 1000
        assert settings.pdf_settle_delay_seconds == 1.0
        assert settings.restricted_sandbox is None

    def test_reads_environment_variables(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("ENVIRONMENT", "Production")
        monkeypatch.setenv("CHROME_EXECUTABLE_PATH", "/usr/bin/google-chrome")
        monkeypatch.setenv("RESTRICTED_SANDBOX", "true")

        settings = ServiceSettings()

        assert settings.port == 8080
        assert settings.environment == "production"
        assert settings.is_production
        assert settings.chrome_executable_path == "/usr/bin/google-chrome"
        assert settings.restricted_sandbox is True

    def test_rejects_unknown_environment(self):
        with pytest.raises(ValidationError):
            ServiceSettings(environment="qa")

    def test_rejects_unknown_provider(self):
        with pytest.raises(ValidationError):
            ServiceSettings(browser_provider="firefox")

    def test_rejects_non_http_pack_url(self):
        with pytest.raises(ValidationError):
            ServiceSettings(chromium_pack_url="ftp://example.com/chromium.tar")

    def test_rejects_zero_timeout(self):
        with pytest.raises(ValidationError):
            ServiceSettings(pdf_load_timeout_ms=0)

    @pytest.mark.parametrize("environment,expected", [
        ("development", True),
        ("staging", False),
        ("production", False),
    ])
    def test_stack_traces_only_in_development(self, environment, expected):
        assert ServiceSettings(environment=environment).include_stack_traces is expected


class TestValidateConfigOnStartup:
    """Tests for validate_config_on_startup()."""

    def test_remote_without_url_is_critical(self):
        settings = ServiceSettings(browser_provider="remote", chromium_pack_url=None)
        with pytest.raises(ValueError, match="CHROMIUM_PACK_URL"):
            validate_config_on_startup(settings)

    def test_packaged_without_path_is_critical(self):
        settings = ServiceSettings(browser_provider="packaged", chromium_pack_path=None)
        with pytest.raises(ValueError, match="CHROMIUM_PACK_PATH"):
            validate_config_on_startup(settings)

    def test_valid_settings_returned(self):
        settings = ServiceSettings(browser_provider="bundled")
        assert validate_config_on_startup(settings) is settings
