"""Logging configuration for the runtime core.

The runtime logs through loguru. httpx and httpcore log through the standard
library, so their records are routed into loguru as well and share one level.
"""

import logging
import sys

from loguru import logger

COMPACT_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"
DETAILED_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)

TRANSPORT_LOGGERS = ("httpcore", "httpx", "asyncio")


class InterceptHandler(logging.Handler):
    """Forward standard logging records to loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the original caller, not the logging module
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_level: str, *, compact: bool = False) -> None:
    """Configure loguru for the runtime and its HTTP transport.

    Args:
        log_level: Level name, e.g. from ``Settings.log_level``
        compact: Level and message only (used by the CLI); otherwise timestamps and call sites are included
    """
    log_level = log_level.upper()

    logger.remove()
    logger.add(
        sys.stderr,
        format=COMPACT_FORMAT if compact else DETAILED_FORMAT,
        level=log_level,
        colorize=True,
    )
    logger.enable("runtime_core")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in TRANSPORT_LOGGERS:
        transport_logger = logging.getLogger(name)
        transport_logger.handlers = [InterceptHandler()]
        transport_logger.propagate = False
        transport_logger.setLevel(log_level)

    logger.debug(f"Log level set to: {log_level}")
