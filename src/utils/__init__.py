"""
Utilities package for the trading client.

This package provides:
- Logging system with structured, category-based logging
- Log formatters (JSON, colored)
- Custom log handlers (rotating files, console)

Example Usage:
    from utils import get_logger, setup_logging, log_context
    from config import load_config

    config = load_config('config/config.yaml')
    setup_logging(config)

    logger = get_logger('execution.order_executor')

    with log_context(correlation_id='order-123'):
        logger.log_order_event({'operation': 'market_order', 'direction': 'buy'})
"""

from .logger import (
    setup_logging,
    get_logger,
    shutdown_logging,
    log_context,

    LoggerAdapter,
    LoggerManager,
    LogCategory,
)

from .log_formatter import (
    JsonFormatter,
    ColoredFormatter,
    CategoryFilter,
)

from .log_handlers import (
    SizeRotatingFileHandler,
    ColoredConsoleHandler,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'shutdown_logging',
    'log_context',

    'LoggerAdapter',
    'LoggerManager',
    'LogCategory',

    'JsonFormatter',
    'ColoredFormatter',
    'CategoryFilter',

    'SizeRotatingFileHandler',
    'ColoredConsoleHandler',
]
