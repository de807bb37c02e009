"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Variable names match the deployment environment (``HOST``, ``PORT``,
``SERVER_HOSTNAME``, ``PLAUSIBLE_URL``, ...), read case-insensitively.
"""

from typing import Optional, List, Union
from pathlib import Path
import json

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="naoTimes Open Graph", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=12460, description="Server port")
    server_hostname: Optional[str] = Field(
        default=None, description="Public address the headless browser uses to reach this server"
    )

    # Telemetry Configuration
    plausible_url: Optional[str] = Field(default=None, description="Plausible endpoint base URL")
    plausible_domain: Optional[str] = Field(default=None, description="Plausible site domain")
    telemetry_timeout: float = Field(default=10.0, description="Telemetry POST timeout in seconds")

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    playwright_timeout: int = Field(default=30000, description="Playwright timeout in milliseconds")
    ready_timeout: int = Field(
        default=10000, description="Wait for the readiness marker, in milliseconds"
    )
    chromium_executable: Optional[Path] = Field(
        default=None, description="Chromium binary to use instead of the bundled one"
    )

    # OG Image Assets
    og_base_image: Optional[Path] = Field(default=None, description="Background image for OG cards")
    og_font_bold: Optional[Path] = Field(default=None, description="Bold TrueType font")
    og_font_light: Optional[Path] = Field(default=None, description="Light TrueType font")

    # Security Configuration
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed origins for CORS")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional rotating log file")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @property
    def telemetry_enabled(self) -> bool:
        """Both the endpoint and the site domain must be set."""
        return bool(self.plausible_url) and bool(self.plausible_domain)

    @property
    def generator_host(self) -> str:
        """Base URL of this server as seen from the headless browser."""
        host = self.server_hostname
        if not host:
            structlog.get_logger(__name__).warning(
                "SERVER_HOSTNAME is not set. Using HOST:PORT instead."
            )
            host = f"{self.host}:{self.port}"
        if "://" not in host:
            host = f"http://{host}"
        return host.rstrip("/")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
