"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SOLAROPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./solarops.db",
        description="Database connection URL",
    )

    # Sync Configuration
    sync_batch_size: int = Field(
        default=100,
        gt=0,
        description="Number of plants written per batch upsert",
    )
    max_report_errors: int = Field(
        default=10,
        ge=0,
        description="Maximum number of per-plant error messages kept in a sync report",
    )
    error_message_max_length: int = Field(
        default=200,
        gt=0,
        description="Maximum length of a single per-plant error message",
    )
    sync_timezone: str = Field(
        default="Asia/Kolkata",
        description="Timezone used to match organization sync intervals to clock time",
    )
    default_sync_interval_minutes: int = Field(
        default=15,
        gt=0,
        description="Sync interval for organizations without one configured",
    )

    # Alert Sync Configuration
    alert_lookback_days: int = Field(
        default=365,
        gt=0,
        description="Maximum age of alerts fetched from vendors",
    )
    alert_page_size: int = Field(
        default=100,
        gt=0,
        description="Alerts requested per vendor API page",
    )

    # Vendor API Configuration
    solarman_api_base_url: str = Field(
        default="https://globalapi.solarmanpv.com",
        description="Solarman API base URL (used for authentication)",
    )
    solarman_pro_api_base_url: str | None = Field(
        default=None,
        description="Solarman PRO API base URL (derived from the API base URL if not set)",
    )
    solardm_api_base_url: str = Field(
        default="http://global.solar-dm.com:8010",
        description="SolarDM API base URL",
    )
    vendor_timeout: int = Field(default=30, description="Vendor API request timeout in seconds")
    token_refresh_buffer_minutes: int = Field(
        default=5,
        description="Stored vendor tokens expiring within this window are refreshed",
    )

    # Error Handling Configuration
    max_retries: int = Field(
        default=3,
        description="Maximum number of retries for failed vendor API requests",
    )
    retry_delay: float = Field(
        default=2.0,
        description="Base delay in seconds between retries (uses exponential backoff)",
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (logs to console if not set)",
    )
    log_max_bytes: int = Field(
        default=10 * 1024 * 1024,  # 10 MB
        description="Maximum log file size before rotation",
    )
    log_backup_count: int = Field(
        default=5,
        description="Number of backup log files to keep",
    )

    def get_solarman_pro_api_base_url(self) -> str:
        """Resolve the Solarman PRO API base URL.

        Uses the explicit setting when present, otherwise swaps the
        ``globalapi`` host for ``globalpro``.
        """
        if self.solarman_pro_api_base_url:
            return self.solarman_pro_api_base_url.rstrip("/")

        base = self.solarman_api_base_url.rstrip("/")
        if "globalapi" in base:
            return base.replace("globalapi", "globalpro")
        if "globalpro" in base:
            return base
        return "https://globalpro.solarmanpv.com"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
