"""
Configuration package for the order book trading client.

This package provides configuration management with support for YAML/JSON files,
environment variable overrides, and Pydantic-based validation.
"""

from .config_manager import (
    ConfigManager,
    TradingClientConfig,
    NetworkSettings,
    ContractSettings,
    AccountSettings,
    OrderSettings,
    LoggingSettings,
    OrderTypeName,
    LogLevel,
    load_config,
)

__all__ = [
    'ConfigManager',
    'TradingClientConfig',
    'NetworkSettings',
    'ContractSettings',
    'AccountSettings',
    'OrderSettings',
    'LoggingSettings',
    'OrderTypeName',
    'LogLevel',
    'load_config',
]
