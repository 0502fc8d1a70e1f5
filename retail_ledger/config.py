"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class LedgerConfig(BaseSettings):
    """Retail ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="RETAIL_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence configuration
    data_file_path: str = "bankdata.json"
    backup_directory: str = "backups"
    max_backups: int = Field(10, ge=1)

    # Auto-save configuration
    auto_save_enabled: bool = True
    auto_save_interval_seconds: float = Field(300.0, gt=0)  # 5 minutes

    # Business rules configuration
    interest_precision: int = Field(4, ge=0)

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
