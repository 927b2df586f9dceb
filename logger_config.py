"""
Logging configuration for the AGCOD client.

Loggers are configured lazily, one handler per named logger, so the library
logs sensibly without the caller having to call logging.basicConfig().
Every logger configured here is remembered so set_log_level() can retune
them all once AGCODConfig has been read.
"""
import logging
import os
import sys
from typing import Dict, Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_configured: Dict[str, logging.Logger] = {}


def _resolve_level(level: Union[str, int, None]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, (level or 'INFO').upper(), logging.INFO)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (defaults to this module's name if not provided)

    Returns:
        Logger writing to stderr at the LOG_LEVEL level
    """
    logger = logging.getLogger(name or __name__)

    if logger.handlers:
        return logger

    logger.setLevel(_resolve_level(os.environ.get('LOG_LEVEL')))

    # Async calls log from executor threads, so the thread name is in the format
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    _configured[logger.name] = logger
    return logger


def set_log_level(level: Union[str, int]) -> None:
    """Apply a level name such as 'DEBUG' (or a logging constant) to every AGCOD logger."""
    resolved = _resolve_level(level)
    for logger in _configured.values():
        logger.setLevel(resolved)
