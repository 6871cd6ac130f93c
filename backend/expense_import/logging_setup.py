"""
Logging configuration for the expense_import package.

Library modules only call ``logging.getLogger(__name__)``; the app calls
``configure_logging`` once at startup to attach a single stream handler to
the package logger.
"""

import logging
import sys
from typing import IO, Union

PACKAGE_LOGGER = "expense_import"
_configured = False


def _parse_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    level = level.strip().upper()
    if level.isdigit():
        return int(level)
    numeric = getattr(logging, level, None)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(level: Union[int, str] = "INFO", stream: IO[str] = sys.stderr) -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
    )
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    logger.propagate = False
    _configured = True
