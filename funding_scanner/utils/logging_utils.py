"""
Logging configuration: console output plus an optional rotating log file.
"""

import logging
import logging.handlers
import os
from typing import Optional

from funding_scanner.models.config import LoggingConfig

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("aiohttp", "asyncio", "httpx", "uvicorn.access")


def setup_logging(config: Optional[LoggingConfig] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        config: Logging configuration (defaults when None)
        verbose: Force DEBUG level

    Returns:
        The root logger
    """
    config = config or LoggingConfig()
    level_name = "DEBUG" if verbose else getattr(config.level, 'value', config.level)
    level = getattr(logging, level_name.upper(), logging.INFO)

    formatter = logging.Formatter(config.format, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if config.file:
        directory = os.path.dirname(config.file)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            config.file,
            maxBytes=config.max_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root_logger.debug(f"Logging initialized at {level_name}"
                      + (f", file {config.file}" if config.file else ""))
    return root_logger
