"""
Shared configuration management for the offline access layer.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    dev_debug: bool = Field(default=False)

    # Local storage
    database_path: str = Field(default="offline_access.db")
    cache_backend: str = Field(default="sqlite")
    redis_url: str = Field(default="redis://localhost:6379/0")

    # Cache
    cache_default_ttl: Optional[float] = Field(default=3600.0)

    # Synchronization
    sync_enabled: bool = Field(default=True)
    sync_interval_seconds: Optional[float] = Field(default=600.0)
    log_length: int = Field(default=500, ge=1)
    lang_sync_enabled: bool = Field(default=True)

    # Connectivity
    force_offline: bool = Field(default=False)
    probe_host: Optional[str] = Field(default=None)
    probe_port: int = Field(default=443)
    probe_interval_seconds: float = Field(default=15.0, gt=0)

    # Remote transport
    ws_path: str = Field(default="/webservice/rest/server.php")
    upload_path: str = Field(default="/webservice/upload.php")
    request_timeout_seconds: float = Field(default=30.0)
    retry_max_attempts: int = Field(default=2, ge=1)
    retry_base_delay: float = Field(default=0.5)
    circuit_failure_threshold: int = Field(default=5)
    circuit_recovery_timeout: float = Field(default=30.0)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "127.0.0.1"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
