"""
Tests for logging setup.
"""

import logging

import pytest

from core.config import LoggingConfig
from core.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    sql_level = logging.getLogger("sqlalchemy.engine").level
    yield root
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_console_and_rotating_files(tmp_path, restore_root_logger):
    setup_logging(LoggingConfig(level="WARNING", directory=str(tmp_path / "logs")))

    logging.getLogger("labsync.test").error("disk full")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert len(restore_root_logger.handlers) == 3
    assert "disk full" in (tmp_path / "logs" / "combined.log").read_text()
    assert "disk full" in (tmp_path / "logs" / "error.log").read_text()


def test_console_only(restore_root_logger):
    setup_logging(LoggingConfig(level="DEBUG", directory=None), sql_echo=True)

    assert len(restore_root_logger.handlers) == 1
    assert restore_root_logger.handlers[0].level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
