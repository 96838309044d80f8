"""
Shared configuration management for the access token login service.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ACCESS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # OAuth access token login
    oauth_http_timeout: float = Field(default=10.0, gt=0)
    oauth_legacy_locale_alias: bool = Field(default=False)
    oauth_services_file: Optional[str] = Field(default=None)
    oauth_active_services: Optional[str] = Field(default=None)

    # Security
    master_key: Optional[str] = Field(default=None)

    def active_service_names(self) -> Optional[List[str]]:
        """Parse the comma separated list of active OAuth services."""
        if self.oauth_active_services is None:
            return None
        return [name.strip() for name in self.oauth_active_services.split(",") if name.strip()]


class ServiceSettings(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceSettings:
    """Get configuration for a specific service."""
    return ServiceSettings(service_name=service_name, port=port, **overrides)
