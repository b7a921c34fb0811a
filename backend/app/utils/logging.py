"""
Logging setup for the KisanMitr backend.

Modules log through ``logging.getLogger(__name__)``; services that need a
swappable sink take a ``logging.Logger`` in their constructor instead.
"""

import logging
import sys
from typing import Optional


def setup_logging(level: str = "INFO", include_timestamp: bool = True) -> None:
    """
    Configure the root logger once for the process.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        include_timestamp: Whether to prefix records with a timestamp
    """
    if include_timestamp:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        formatter = logging.Formatter('%(name)s - %(levelname)s - %(message)s')

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a named logger (``kisanmitr`` when no name is given)."""
    return logging.getLogger(name or "kisanmitr")
