"""Configure loguru output for applications embedding the resource layer.

The library itself only emits records through ``loguru.logger``; hosts call
:func:`configure_logging` once at start-up to pick the level and format.
"""

from __future__ import annotations

import sys
from typing import Any

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{line}</cyan>\n"
    "{message}"
)


def configure_logging(level: str = "INFO", *, sink: Any = None) -> int:
    """Configure loguru logger with the specified level.

    Args:
        level: Minimum level name (case-insensitive).
        sink: Optional sink; defaults to ``sys.stderr``.

    Returns:
        The handler id returned by ``logger.add``.
    """
    logger.remove()
    return logger.add(
        sink if sink is not None else sys.stderr,
        level=str(level or "INFO").upper(),
        format=LOG_FORMAT,
    )
