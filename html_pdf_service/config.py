"""
HTML to PDF Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

PROVIDER_CHOICES = ("auto", "bundled", "packaged", "remote", "system")


class ServiceSettings(BaseSettings):
    """
    PDF service configuration with validation.

    All settings can be overridden via environment variables.
    Validation happens at startup to fail fast on misconfiguration.
    """

    # === Server ===
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Listen port")
    log_level: str = Field(default="INFO", description="Root log level")
    max_request_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Maximum accepted request body size in bytes"
    )

    # === Browser provisioning ===
    browser_provider: str = Field(
        default="auto",
        description="Provisioning strategy: auto, bundled, packaged, remote, system"
    )
    chrome_executable_path: Optional[str] = Field(
        default=None,
        description="Explicit browser executable path (selects the system strategy)"
    )
    chromium_pack_path: Optional[str] = Field(
        default=None,
        description="Local packaged Chromium binary or archive"
    )
    chromium_pack_url: Optional[str] = Field(
        default=None,
        description="URL of a packaged Chromium archive to download at startup"
    )
    chromium_cache_dir: str = Field(
        default="/tmp/chromium",
        description="Where packaged/remote archives are extracted"
    )
    restricted_sandbox: Optional[bool] = Field(
        default=None,
        description="Force sandbox-disabling launch flags (unset = auto-detect)"
    )
    browser_headless: bool = Field(default=True, description="Launch headless")

    # === Render pipeline ===
    pdf_load_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=600000,
        description="Content load timeout in milliseconds"
    )
    pdf_settle_delay_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Grace period after readiness signals, in milliseconds"
    )
    validate_browser_on_startup: bool = Field(
        default=False,
        description="Render a test document at startup and log the result"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("browser_provider")
    @classmethod
    def validate_browser_provider(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in PROVIDER_CHOICES:
            raise ValueError(f"browser_provider must be one of: {', '.join(PROVIDER_CHOICES)}")
        return v_lower

    @field_validator("chromium_pack_url")
    @classmethod
    def validate_url_format(cls, v: Optional[str]) -> Optional[str]:
        """Basic URL format validation."""
        if v is None:
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL format: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v_upper

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def include_stack_traces(self) -> bool:
        """Stack traces are only exposed when explicitly in development."""
        return self.environment == "development"

    @property
    def pdf_settle_delay_seconds(self) -> float:
        return self.pdf_settle_delay_ms / 1000

    def validate_provider_config(self) -> List[str]:
        """
        Validate the browser provisioning settings.

        Returns list of warning/error messages.
        """
        issues = []

        if self.browser_provider == "remote" and not self.chromium_pack_url:
            issues.append("CRITICAL: CHROMIUM_PACK_URL required for the remote browser provider")
        if self.browser_provider == "packaged" and not self.chromium_pack_path:
            issues.append("CRITICAL: CHROMIUM_PACK_PATH required for the packaged browser provider")
        if self.is_production and self.validate_browser_on_startup is False:
            issues.append("WARNING: VALIDATE_BROWSER_ON_STARTUP disabled in production")

        return issues

    class Config:
        env_prefix = ""  # No prefix, use exact env var names
        case_sensitive = False  # PDF_LOAD_TIMEOUT_MS = pdf_load_timeout_ms


@lru_cache()
def get_settings() -> ServiceSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for performance.
    Use this function to access configuration throughout the app.
    """
    return ServiceSettings()


def validate_config_on_startup(settings: Optional[ServiceSettings] = None) -> ServiceSettings:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    if settings is None:
        try:
            settings = get_settings()
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_provider_config():
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        else:
            logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  browser_provider={settings.browser_provider}")
    logger.info(f"  pdf_load_timeout={settings.pdf_load_timeout_ms}ms")
    logger.info(f"  pdf_settle_delay={settings.pdf_settle_delay_ms}ms")
    logger.info(f"  port={settings.port}")

    return settings
