"""
Configuration module for the Byte Savings Backend
Centralizes all environment variable access and configuration settings
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Service settings loaded from environment variables

    All settings can be overridden via environment variables.
    Default values are provided for development.
    """

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "human"
    log_file: Optional[str] = None
    log_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    log_backup_count: int = 5

    # Environment
    env: str = "development"  # "development" or "production"
    debug: bool = False

    # CORS configuration
    allowed_origins: str = "*"  # Comma-separated list of origins

    # Request limits
    max_request_size: int = 5 * 1024 * 1024  # 5 MB, artifacts can be large

    # Audit execution
    audit_timeout: int = 60  # seconds, fails the whole audit

    # Result store configuration
    result_store_max_size: int = 1000
    result_store_ttl_hours: int = 24

    # Computed artifact cache
    cache_max_size: int = 50

    # Default throttling profile (simulated mobile 4G)
    default_rtt_ms: float = 150.0
    default_throughput_kbps: float = 1.6 * 1024
    default_cpu_slowdown_multiplier: float = 4.0

    # Message formatting
    default_locale: str = "en-US"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def log_format_json(self) -> bool:
        """Check if logging should use JSON format"""
        return self.log_format.lower() == "json"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.env.lower() == "production"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list"""
        origins = [origin.strip() for origin in self.allowed_origins.split(",")]
        if "*" in origins:
            return ["*"]
        return origins

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Production always logs JSON
        if self.is_production and not self.log_format_json:
            self.log_format = "json"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton pattern)

    Returns:
        Settings instance with current configuration
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
