"""
Core Module - Logging Setup.

Configures the root logger once per process: a console
handler plus optional rotating files under LOGGING_DIR.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingConfig


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def setup_logging(config: LoggingConfig, sql_echo: bool = False) -> None:
    """
    Configure process-wide logging.

    Args:
        config: Logging configuration
        sql_echo: Keep SQLAlchemy engine logging at INFO
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Replace handlers from a previous setup (e.g. CLI re-entry)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    console.setFormatter(formatter)
    root.addHandler(console)

    if config.directory:
        log_dir = Path(config.directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        combined = RotatingFileHandler(
            log_dir / "combined.log",
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
        )
        combined.setLevel(logging.DEBUG)
        combined.setFormatter(formatter)
        root.addHandler(combined)

        errors = RotatingFileHandler(
            log_dir / "error.log",
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
        )
        errors.setLevel(logging.ERROR)
        errors.setFormatter(formatter)
        root.addHandler(errors)

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if sql_echo else logging.WARNING
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
