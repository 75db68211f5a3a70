"""
Configuration Manager for the order book trading client.

This module provides centralized configuration management with support for:
- YAML and JSON configuration files
- Environment variable overrides (and a ``.env`` file for the private key)
- Pydantic-based validation
- Default values for optional parameters
"""

import os
import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, Field, ValidationError, field_validator


DEFAULT_MULTICALL_ADDRESS = '0xcA11bde05977b3631167028862bE2a173976CA11'


class OrderTypeName(str, Enum):
    """Limit order types accepted in configuration."""
    GTC = "GTC"
    GTCE = "GTCE"
    PO = "PO"
    IOC = "IOC"
    FOK = "FOK"


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _checksum(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not is_address(value):
        raise ValueError(f"invalid address: {value}")
    return to_checksum_address(value)


class ContractSettings(BaseModel):
    """Deployed contract addresses."""
    exchange_address: str = Field(description="Core order book contract")
    order_router_address: str = Field(description="Limit order (resting order) contract")
    reader_address: Optional[str] = Field(default=None, description="Book reader contract")
    router_proxy_factory_address: Optional[str] = Field(
        default=None, description="Factory deploying per-user router proxies"
    )
    smart_router_address: Optional[str] = Field(
        default=None, description="Router implementation behind the user proxies"
    )
    multicall_address: str = Field(
        default=DEFAULT_MULTICALL_ADDRESS, description="Multicall3 deployment"
    )

    @field_validator(
        'exchange_address', 'order_router_address', 'reader_address',
        'router_proxy_factory_address', 'smart_router_address', 'multicall_address'
    )
    @classmethod
    def validate_address(cls, v):
        return _checksum(v)


class NetworkSettings(BaseModel):
    """Node connection settings."""
    rpc_url: str = Field(description="HTTP JSON-RPC endpoint with the realtime extension")
    chain_id: Optional[int] = Field(default=None, ge=1, description="Fetched from the node when absent")
    request_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-request HTTP timeout")
    realtime_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Wait bound for a realtime submission receipt"
    )

    @field_validator('rpc_url')
    @classmethod
    def validate_rpc_url(cls, v):
        if not v.startswith(('http://', 'https://')):
            raise ValueError("rpc_url must be an http(s) URL")
        return v


class AccountSettings(BaseModel):
    """Signing account. The private key is never serialised."""
    private_key: Optional[str] = Field(default=None, repr=False, exclude=True)
    address: Optional[str] = Field(default=None, description="Expected account address")

    @field_validator('private_key')
    @classmethod
    def validate_private_key(cls, v):
        if v is None:
            return v
        raw = v[2:] if v.startswith('0x') else v
        if len(raw) != 64:
            raise ValueError("private_key must be 32 bytes of hex")
        try:
            int(raw, 16)
        except ValueError:
            raise ValueError("private_key must be hex encoded")
        return '0x' + raw

    @field_validator('address')
    @classmethod
    def validate_address(cls, v):
        return _checksum(v)


class OrderSettings(BaseModel):
    """Order execution settings."""
    resting_order_gasreq: int = Field(
        default=1_000_000, ge=0, description="Gas reserved for the resting offer's execution"
    )
    default_order_type: OrderTypeName = Field(default=OrderTypeName.GTC)
    approval_threshold: int = Field(
        default=2**128 - 1, ge=0, description="Allowance below which an approval is sent"
    )
    skip_approval_check: bool = Field(default=False)
    book_depth: int = Field(default=1, ge=1, description="Depth requested when fetching the book")
    gas_limit_multiplier: float = Field(default=1.2, ge=1.0, le=5.0)


class LoggingSettings(BaseModel):
    """Logging settings."""
    level: LogLevel = Field(default=LogLevel.INFO)
    console: bool = Field(default=True)
    colors: bool = Field(default=True)
    file: bool = Field(default=False)
    file_path: str = Field(default="logs/trading_client.log")
    json_file: bool = Field(default=True, description="JSON lines instead of plain text")
    categories: Optional[List[str]] = Field(default=None, description="Console category filter")


class TradingClientConfig(BaseModel):
    """Complete trading client configuration."""
    network: NetworkSettings
    contracts: ContractSettings
    account: AccountSettings = Field(default_factory=AccountSettings)
    order: OrderSettings = Field(default_factory=OrderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigManager:
    """
    Configuration manager for the trading client.

    Handles loading configuration from YAML/JSON files with support for:
    - Environment variable overrides
    - Validation using Pydantic models
    - Default values for optional parameters
    - Saving configuration back to file (private key excluded)

    Environment Variables:
        MGV_PRIVATE_KEY: Signing key (also read from a ``.env`` file)
        MGV_RPC_URL: Override RPC endpoint
        MGV_CHAIN_ID: Override chain id
        MGV_EXCHANGE_ADDRESS: Override core exchange address
        MGV_ORDER_ROUTER_ADDRESS: Override order router address
        MGV_READER_ADDRESS: Override reader address
        MGV_ROUTER_PROXY_FACTORY_ADDRESS: Override router proxy factory
        MGV_SMART_ROUTER_ADDRESS: Override router implementation
        MGV_REALTIME_TIMEOUT: Override realtime submission timeout (seconds)
        MGV_SKIP_APPROVAL_CHECK: Override approval check skipping (true/false)
        MGV_LOG_LEVEL: Override log level
    """

    ENV_MAPPINGS = {
        'MGV_PRIVATE_KEY': ('account', 'private_key'),
        'MGV_ACCOUNT_ADDRESS': ('account', 'address'),
        'MGV_RPC_URL': ('network', 'rpc_url'),
        'MGV_CHAIN_ID': ('network', 'chain_id'),
        'MGV_REALTIME_TIMEOUT': ('network', 'realtime_timeout_seconds'),
        'MGV_REQUEST_TIMEOUT': ('network', 'request_timeout_seconds'),
        'MGV_EXCHANGE_ADDRESS': ('contracts', 'exchange_address'),
        'MGV_ORDER_ROUTER_ADDRESS': ('contracts', 'order_router_address'),
        'MGV_READER_ADDRESS': ('contracts', 'reader_address'),
        'MGV_ROUTER_PROXY_FACTORY_ADDRESS': ('contracts', 'router_proxy_factory_address'),
        'MGV_SMART_ROUTER_ADDRESS': ('contracts', 'smart_router_address'),
        'MGV_MULTICALL_ADDRESS': ('contracts', 'multicall_address'),
        'MGV_RESTING_ORDER_GASREQ': ('order', 'resting_order_gasreq'),
        'MGV_SKIP_APPROVAL_CHECK': ('order', 'skip_approval_check'),
        'MGV_LOG_LEVEL': ('logging', 'level'),
        'MGV_LOG_FILE': ('logging', 'file_path'),
    }

    BOOL_FIELDS = {
        ('order', 'skip_approval_check'),
        ('logging', 'console'),
        ('logging', 'file'),
    }

    INT_FIELDS = {
        ('network', 'chain_id'),
        ('order', 'resting_order_gasreq'),
        ('order', 'approval_threshold'),
        ('order', 'book_depth'),
    }

    FLOAT_FIELDS = {
        ('network', 'realtime_timeout_seconds'),
        ('network', 'request_timeout_seconds'),
        ('order', 'gas_limit_multiplier'),
    }

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        env_file: Optional[Union[str, Path]] = None
    ):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to configuration file (YAML or JSON)
            env_file: ``.env`` file to load before applying overrides.
                      Defaults to python-dotenv's lookup from the working directory.
        """
        self._config_path: Optional[Path] = Path(config_path) if config_path else None
        self._env_file = env_file
        self._config: Optional[TradingClientConfig] = None
        self._raw_config: Dict[str, Any] = {}

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> TradingClientConfig:
        """
        Load configuration from file.

        Args:
            config_path: Path to configuration file. If not provided, uses the path
                        specified during initialization.

        Returns:
            TradingClientConfig: Validated configuration object

        Raises:
            FileNotFoundError: If configuration file does not exist
            ValueError: If configuration format is invalid or fails validation
        """
        if config_path:
            self._config_path = Path(config_path)

        if not self._config_path:
            raise ValueError("No configuration path specified")

        if not self._config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self._config_path}"
            )

        self._raw_config = self._load_file(self._config_path)
        return self._build()

    def from_env(self) -> TradingClientConfig:
        """
        Build the configuration from environment variables only.

        Returns:
            TradingClientConfig: Validated configuration object
        """
        self._raw_config = {}
        return self._build()

    def _build(self) -> TradingClientConfig:
        load_dotenv(self._env_file, override=False)
        self._apply_env_overrides()

        try:
            self._config = TradingClientConfig(**self._raw_config)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return self._config

    def _load_file(self, path: Path) -> Dict[str, Any]:
        suffix = path.suffix.lower()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if suffix in ['.yaml', '.yml']:
                    return yaml.safe_load(f) or {}
                elif suffix == '.json':
                    return json.load(f)
                else:
                    raise ValueError(
                        f"Unsupported configuration format: {suffix}. "
                        "Use .yaml, .yml, or .json"
                    )
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML format: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON format: {e}") from e

    def _apply_env_overrides(self) -> None:
        """Environment variables take precedence over file configuration."""
        for env_var, (section, key) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is not None and value != '':
                converted_value = self._convert_env_value(value, section, key, env_var)
                self._raw_config.setdefault(section, {})
                self._raw_config[section][key] = converted_value

    def _convert_env_value(
        self, value: str, section: str, key: str, env_var: str
    ) -> Union[str, bool, int, float]:
        if (section, key) in self.BOOL_FIELDS:
            return value.lower() in ('true', '1', 'yes', 'on')

        if (section, key) in self.INT_FIELDS:
            try:
                return int(value, 0)
            except ValueError:
                raise ValueError(f"Environment variable {env_var} must be an integer, got: {value}")

        if (section, key) in self.FLOAT_FIELDS:
            try:
                return float(value)
            except ValueError:
                raise ValueError(f"Environment variable {env_var} must be a number, got: {value}")

        return value

    def save_config(
        self, config_path: Optional[Union[str, Path]] = None, format: str = 'yaml'
    ) -> None:
        """
        Save current configuration to file.

        The private key is excluded from the output.

        Args:
            config_path: Path to save configuration. If not provided, uses the
                        path specified during initialization.
            format: Output format ('yaml' or 'json')

        Raises:
            ValueError: If no configuration is loaded or format is invalid
        """
        if not self._config:
            raise ValueError("No configuration loaded to save")

        save_path = Path(config_path) if config_path else self._config_path
        if not save_path:
            raise ValueError("No save path specified")

        save_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self._config.model_dump(mode='json', exclude_none=True)

        with open(save_path, 'w', encoding='utf-8') as f:
            if format.lower() in ['yaml', 'yml']:
                yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)
            elif format.lower() == 'json':
                json.dump(config_dict, f, indent=2)
            else:
                raise ValueError(f"Unsupported format: {format}. Use 'yaml' or 'json'")

    def get_config(self) -> TradingClientConfig:
        """
        Get the current configuration.

        Raises:
            ValueError: If no configuration is loaded
        """
        if not self._config:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def reload(self) -> TradingClientConfig:
        """Reload configuration from file."""
        return self.load_config(self._config_path)

    @property
    def is_loaded(self) -> bool:
        """Check if configuration is loaded."""
        return self._config is not None


def load_config(config_path: Union[str, Path]) -> TradingClientConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to configuration file

    Returns:
        TradingClientConfig: Validated configuration object
    """
    manager = ConfigManager(config_path)
    return manager.load_config()
