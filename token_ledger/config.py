"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class LedgerConfig(BaseSettings):
    """Token ledger configuration"""

    # Token configuration
    token_name: str = "Fixed Supply Token"
    token_symbol: str = "FST"
    token_decimals: int = Field(default=18, ge=0, le=255)
    initial_holder: str = ""  # Must be set; the null account is rejected
    total_supply: int = 1_000_000_000 * 10 ** 18  # smallest units

    # Storage configuration
    database_url: str = ""  # "" or memory:// for in-memory, sqlite:///path for SQLite

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    caller_header: str = "X-Caller"

    # Security configuration
    auth_enabled: bool = False
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Feature flags
    enable_journal: bool = True
    enable_ownership: bool = False

    class Config:
        env_prefix = "TOKEN_LEDGER_"
        env_file = ".env"
        case_sensitive = False


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
