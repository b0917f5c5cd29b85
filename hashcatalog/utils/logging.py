"""
Logging configuration for the hash catalog.

Everything goes through loguru. SQLAlchemy logs through the standard
library, so its statement log can be routed into loguru as well.
"""

import logging
import os
import sys
from pathlib import Path

from loguru import logger

from hashcatalog.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    level: str | None = None,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
    sql: bool = False,
) -> None:
    """
    Configure logging for the catalog and its command line.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR), defaults to LOG_LEVEL
        log_file: File that also receives the log, defaults to LOG_FILE
        rotation: Log rotation setting (e.g., "10 MB", "1 day")
        retention: Log retention setting (e.g., "1 week", "10 files")
        sql: Also log every SQL statement SQLAlchemy emits
    """
    level = (level or settings.pipeline.log_level).upper()
    log_file = log_file or settings.pipeline.log_file

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
        )

    if sql:
        sql_logger = logging.getLogger("sqlalchemy.engine")
        sql_logger.handlers = [InterceptHandler()]
        sql_logger.setLevel(logging.INFO)
        sql_logger.propagate = False

    logger.debug(f"Logging configured: level={level}, file={log_file}, sql={sql}")


if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
