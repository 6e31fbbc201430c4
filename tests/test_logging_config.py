"""Tests for logging setup."""
import logging
import sys

import pytest

from portgrid.logging_config import SecretRedactingFilter, configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg, *args):
    return logging.LogRecord("portgrid", logging.INFO, __file__, 1, msg, args, None)


class TestSecretRedactingFilter:
    def test_redacts_in_args(self):
        record = _record("calling with token %s", "s3cr3t")
        assert SecretRedactingFilter(["s3cr3t"]).filter(record)
        assert record.getMessage() == "calling with token ***"

    def test_untouched_without_secret(self):
        record = _record("hello %s", "world")
        SecretRedactingFilter(["s3cr3t", None]).filter(record)
        assert record.args == ("world",)
        assert record.getMessage() == "hello world"


class TestConfigureLogging:
    def test_console_handler_and_level(self, restore_root_logger):
        configure_logging("warning", secrets=["x"])
        root = restore_root_logger
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_file_handler(self, restore_root_logger, tmp_path):
        configure_logging("INFO", log_dir=tmp_path / "logs")
        root = restore_root_logger
        assert len(root.handlers) == 2
        assert list((tmp_path / "logs").glob("portgrid_*.log"))
        for handler in root.handlers:
            handler.close()
