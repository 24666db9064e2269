"""
Configuration loader: reads config.yaml, validates it against a JSON Schema,
resolves data locations from environment variables.
"""

from config.loader import (
    AppConfig,
    ConfigError,
    DataConfig,
    ExchangeConfig,
    JournalConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "DataConfig",
    "ExchangeConfig",
    "JournalConfig",
    "LoggingConfig",
    "load_config",
]
