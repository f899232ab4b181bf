"""Settings and configuration management."""

import logging
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Settings
    app_name: str = Field("Automation Builder", description="Application name")
    debug: bool = Field(False, description="Debug mode")
    production: bool = Field(
        False,
        description="Production mode - enables strict configuration validation",
    )
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("text", description="Log format: 'text' or 'json'")
    sanitize_logs: bool = Field(True, description="Sanitize sensitive data from logs")

    # REST backend
    api_base_url: str = Field(
        "http://localhost:3000",
        description="Base URL that /api/* paths are resolved against",
    )
    api_token: Optional[str] = Field(
        None, description="Bearer token sent with every API request"
    )
    request_timeout_seconds: float = Field(
        30.0, description="Timeout for a single API request in seconds"
    )

    # Drafts
    draft_backend: Literal["file", "memory"] = Field(
        "file", description="Where unsaved drafts are kept: 'file' or 'memory'"
    )
    drafts_dir: Path = Field(
        default_factory=lambda: Path.home() / ".automation_builder" / "drafts"
    )

    @property
    def has_secure_transport(self) -> bool:
        """Check that the API is reached over HTTPS unless it is local."""
        parsed = urlparse(self.api_base_url)
        if parsed.scheme == "https":
            return True
        return (parsed.hostname or "") in _LOCAL_HOSTS

    @property
    def auth_headers(self) -> dict[str, str]:
        """Headers carrying the API token, if one is configured."""
        if not self.api_token:
            return {}
        return {"Authorization": f"Bearer {self.api_token}"}

    def model_post_init(self, __context) -> None:
        """Validate production config."""
        self._validate_production_config()

    def _validate_production_config(self) -> None:
        """Validate configuration for production safety."""
        issues = []

        if not self.api_token:
            issues.append(
                "API_TOKEN is not set. Requests to the automation API will be "
                "unauthenticated."
            )

        if not self.has_secure_transport:
            issues.append(
                f"API_BASE_URL ({self.api_base_url}) uses plain HTTP for a "
                "non-local host. Use an https:// URL."
            )

        if self.debug and self.production:
            issues.append("DEBUG mode is enabled in production. Set DEBUG=false.")

        if not issues:
            return

        if self.production:
            raise ValueError(
                "Insecure configuration not allowed (production mode enabled):\n"
                + "\n".join(f"  - {issue}" for issue in issues)
            )

        # Only transport problems are worth shouting about in development
        for issue in issues:
            if issue.startswith("API_BASE_URL"):
                warnings.warn(f"Security: {issue}", stacklevel=3)
                logger.warning("SECURITY WARNING: %s", issue)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
