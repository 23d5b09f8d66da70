"""Logging setup. Modules simply use `from loguru import logger`; this only decides where the records go."""

import sys
from typing import Any, Optional

from loguru import logger

from chessdriver.core.config import settings

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "{extra[session]!s: <4} | {message}"
)


def configure_logging(level: Optional[str] = None, sink: Any = sys.stderr) -> int:
    """Replace loguru's default handler. Returns the handler id (so callers/tests can remove it again)."""
    logger.remove()
    logger.configure(extra={"session": "-"})
    return logger.add(sink, level=level or settings.log_level, format=LOG_FORMAT)
