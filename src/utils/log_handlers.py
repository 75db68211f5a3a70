"""
Custom log handlers for the trading client.

This module provides:
- Size-based rotating file handler that creates its directory
- Colored console handler
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

import colorama


class SizeRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """
    Size-based rotating file handler.

    Rotates log files when they reach a specified size.

    Example:
        handler = SizeRotatingFileHandler(
            'logs/trading_client.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=10
        )
    """

    def __init__(
        self,
        filename: str,
        mode: str = 'a',
        maxBytes: int = 10*1024*1024,  # 10MB default
        backupCount: int = 10,
        encoding: Optional[str] = 'utf-8',
        delay: bool = False
    ):
        directory = os.path.dirname(filename)
        if directory:
            Path(directory).mkdir(parents=True, exist_ok=True)

        super().__init__(
            filename=filename,
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
            delay=delay
        )


class ColoredConsoleHandler(logging.StreamHandler):
    """
    Console handler with colored output.

    colorama is initialised once so ANSI sequences render on every platform
    and are stripped when the stream is not a terminal.

    Example:
        handler = ColoredConsoleHandler()
        handler.setFormatter(ColoredFormatter())
        logger.addHandler(handler)
    """

    _colorama_ready = False

    def __init__(self, stream=None):
        if not ColoredConsoleHandler._colorama_ready:
            colorama.just_fix_windows_console()
            ColoredConsoleHandler._colorama_ready = True
        super().__init__(stream)
        self.is_tty = hasattr(self.stream, 'isatty') and self.stream.isatty()
