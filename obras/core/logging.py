"""
Stdout loggers shared by every obras module.

Loggers are named after their module (``obras.billing.milestones``); the
threshold comes from ``logging.level`` in config.yaml so backend request
tracing can be switched on without code changes.
"""

import logging
import sys
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_loggers: Dict[str, logging.Logger] = {}


def _configured_level() -> int:
    """Level from config.yaml ``logging.level``; INFO when unset or unreadable."""
    from obras.core.config import get_config_value

    try:
        name = get_config_value("logging", "level", default="INFO")
    except FileNotFoundError:
        return logging.INFO
    return getattr(logging, str(name).upper(), logging.INFO)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Logger ``name`` with a single stdout handler attached.

    Repeat calls return the cached logger, so importing a module twice
    never duplicates output. ``level`` overrides the configured threshold.
    """
    if name in _loggers:
        return _loggers[name]

    if level is None:
        level = _configured_level()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    _loggers[name] = logger
    return logger
