"""
Logging system for the trading client.

This module provides structured, category-based logging with a colored
console handler and an optional size-rotating file handler.

Example Usage:
    from utils import get_logger, setup_logging
    from config import load_config

    # Setup logging
    config = load_config('config/config.yaml')
    setup_logging(config)

    # Get logger
    logger = get_logger('execution.order_executor')

    # Log with context
    logger.info("Limit order submitted", extra={
        'category': 'ORDERS',
        'market': 'WETH/USDC',
        'tick': -69082
    })

    # Log an order event
    logger.log_order_event({
        'operation': 'limit_order',
        'direction': 'buy',
        'market': 'WETH/USDC',
        'tick': -69082
    })
"""

import logging
import sys
import threading
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .log_formatter import CategoryFilter, ColoredFormatter, JsonFormatter
from .log_handlers import ColoredConsoleHandler, SizeRotatingFileHandler


class LogCategory(Enum):
    """Log categories for organizing log output."""
    ORDERS = "ORDERS"
    APPROVALS = "APPROVALS"
    TRANSACTIONS = "TRANSACTIONS"
    SYSTEM = "SYSTEM"
    GENERAL = "GENERAL"


class LoggerAdapter(logging.LoggerAdapter):
    """
    Custom logger adapter that adds correlation ID and category support.

    Provides convenient methods for logging with context and
    category-specific logging methods.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})
        self._correlation_id = None

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if 'extra' not in kwargs:
            kwargs['extra'] = {}

        if self._correlation_id and 'correlation_id' not in kwargs['extra']:
            kwargs['extra']['correlation_id'] = self._correlation_id

        for key, value in self.extra.items():
            if key not in kwargs['extra']:
                kwargs['extra'][key] = value

        return msg, kwargs

    @property
    def correlation_id(self) -> Optional[str]:
        return self._correlation_id

    def set_correlation_id(self, correlation_id: Optional[str]) -> None:
        """
        Set correlation ID for this logger.

        Args:
            correlation_id: Correlation ID string
        """
        self._correlation_id = correlation_id

    def clear_correlation_id(self) -> None:
        """Clear the current correlation ID."""
        self._correlation_id = None

    @contextmanager
    def correlation_context(self, correlation_id: Optional[str] = None):
        """
        Context manager for correlation ID scope.

        Args:
            correlation_id: Correlation ID (generates UUID if None)

        Example:
            with logger.correlation_context():
                logger.info("Submitting order")
                # All logs in this block have the same correlation ID
        """
        old_id = self._correlation_id
        self._correlation_id = correlation_id or str(uuid.uuid4())
        try:
            yield self._correlation_id
        finally:
            self._correlation_id = old_id

    # Category-specific logging methods
    def log_order_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """
        Log an order lifecycle event (built, submitted, decoded).

        Args:
            event_data: Order event data dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = (
                f"Order: {event_data.get('operation', 'unknown')} "
                f"{event_data.get('direction', '')} {event_data.get('market', 'unknown')}"
            )

        self.log(level, msg, extra={
            'category': LogCategory.ORDERS.value,
            'order_data': event_data
        })

    def log_trade(self, trade_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """
        Log settled amounts of a filled order.

        Args:
            trade_data: Trade data dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = (
                f"Trade: {trade_data.get('direction', 'unknown')} {trade_data.get('market', 'unknown')} "
                f"received={trade_data.get('amount_received', 0)} given={trade_data.get('amount_given', 0)}"
            )

        self.log(level, msg, extra={
            'category': LogCategory.ORDERS.value,
            'trade_data': trade_data
        })

    def log_approval_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """
        Log a token allowance check or approval.

        Args:
            event_data: Approval event data dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = f"Approval: {event_data.get('token', 'unknown')} -> {event_data.get('spender', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.APPROVALS.value,
            'approval_data': event_data
        })

    def log_transaction_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.DEBUG) -> None:
        """
        Log a transaction state change.

        Args:
            event_data: Transaction event data dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = f"Transaction: {event_data.get('function', 'unknown')} {event_data.get('state', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.TRANSACTIONS.value,
            'transaction_data': event_data
        })

    def log_system_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """
        Log a system event.

        Args:
            event_data: System event data dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = f"System: {event_data.get('event_type', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.SYSTEM.value,
            'system_data': event_data
        })


def _logging_options(config: Any) -> Dict[str, Any]:
    """Normalise a config object, a logging section or a plain dict."""
    if config is None:
        return {}
    if hasattr(config, 'logging'):
        config = config.logging
    if hasattr(config, 'model_dump'):
        return config.model_dump(mode='json')
    if isinstance(config, dict):
        return dict(config.get('logging', config))
    raise TypeError(f"Unsupported logging configuration: {type(config).__name__}")


class LoggerManager:
    """
    Manager for the logging system.

    Handles initialization, configuration, and lifecycle of loggers.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Singleton pattern for LoggerManager."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._initialized = True
        self._loggers: Dict[str, LoggerAdapter] = {}
        self._config: Dict[str, Any] = {}
        self._handlers: List[logging.Handler] = []
        self._setup_done = False

    @property
    def handlers(self) -> List[logging.Handler]:
        return list(self._handlers)

    def setup_logging(self, config: Any = None, force: bool = False) -> None:
        """
        Setup the logging system with configuration.

        Args:
            config: Client config, its ``logging`` section, or a dictionary
            force: Reconfigure even if logging was already set up
        """
        if self._setup_done and not force:
            return
        if self._setup_done:
            self._close_handlers()

        log_config = _logging_options(config)
        self._config = log_config

        root = logging.getLogger()
        root.setLevel(self._get_log_level(log_config.get('level', 'INFO')))
        for handler in list(root.handlers):
            root.removeHandler(handler)

        if log_config.get('console', True):
            self._setup_console_handler(log_config)

        if log_config.get('file', False):
            self._setup_file_handler(log_config)

        self._setup_done = True

        self.get_logger('system').log_system_event({
            'event_type': 'logging_initialized',
            'level': log_config.get('level', 'INFO'),
            'console': log_config.get('console', True),
            'file': log_config.get('file', False)
        }, msg="Logging system initialized", level=logging.DEBUG)

    def _get_log_level(self, level: Union[str, int]) -> int:
        if isinstance(level, int):
            return level

        levels = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL
        }
        return levels.get(str(level).upper(), logging.INFO)

    def _setup_console_handler(self, config: Dict[str, Any]) -> None:
        handler = ColoredConsoleHandler(sys.stdout)
        handler.setLevel(self._get_log_level(config.get('console_level', 'DEBUG')))
        handler.setFormatter(ColoredFormatter(use_colors=config.get('colors', True)))

        categories = config.get('categories')
        if categories:
            handler.addFilter(CategoryFilter(include_categories=categories))

        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def _setup_file_handler(self, config: Dict[str, Any]) -> None:
        handler = SizeRotatingFileHandler(
            filename=str(config.get('file_path', 'logs/trading_client.log')),
            maxBytes=config.get('max_bytes', 10*1024*1024),
            backupCount=config.get('backup_count', 10)
        )
        handler.setLevel(self._get_log_level(config.get('file_level', 'INFO')))

        if config.get('json_file', True):
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(ColoredFormatter(use_colors=False))

        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def get_logger(self, name: str) -> LoggerAdapter:
        """
        Get a logger instance.

        Args:
            name: Logger name

        Returns:
            LoggerAdapter instance
        """
        if name not in self._loggers:
            self._loggers[name] = LoggerAdapter(logging.getLogger(name))

        return self._loggers[name]

    def loggers(self) -> List[LoggerAdapter]:
        return list(self._loggers.values())

    def _close_handlers(self) -> None:
        root = logging.getLogger()
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()
        self._handlers = []

    def shutdown(self) -> None:
        """Shutdown the logging system."""
        self._close_handlers()
        self._setup_done = False


# Global logger manager instance
_logger_manager = LoggerManager()


def setup_logging(config: Any = None, force: bool = False) -> None:
    """
    Setup the logging system.

    Args:
        config: Client config, its ``logging`` section, or a dictionary
        force: Reconfigure even if logging was already set up

    Example:
        setup_logging({
            'logging': {
                'level': 'INFO',
                'console': True,
                'file': True,
                'file_path': 'logs/trading_client.log'
            }
        })
    """
    _logger_manager.setup_logging(config, force=force)


def get_logger(name: str) -> LoggerAdapter:
    """
    Get a logger instance.

    Example:
        logger = get_logger('execution.approval_gate')
        logger.info("Allowance sufficient")
    """
    return _logger_manager.get_logger(name)


def shutdown_logging() -> None:
    """Shutdown the logging system."""
    _logger_manager.shutdown()


@contextmanager
def log_context(correlation_id: Optional[str] = None):
    """
    Tag every managed logger with one correlation ID for the duration of the block.

    Args:
        correlation_id: Correlation ID (generates UUID if None)

    Example:
        with log_context() as cid:
            await executor.limit_order(intent)
            # Approval, submission and decoding logs share ``cid``
    """
    cid = correlation_id or str(uuid.uuid4())
    previous = {}
    for adapter in _logger_manager.loggers():
        previous[adapter] = adapter.correlation_id
        adapter.set_correlation_id(cid)
    try:
        yield cid
    finally:
        for adapter in _logger_manager.loggers():
            adapter.set_correlation_id(previous.get(adapter))
