import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

# Chatty HTTP libraries stay at WARNING unless we run at DEBUG.
_QUIET_LOGGERS = ("urllib3", "requests")


class SecretRedactingFilter(logging.Filter):
    """Replace known credential values in log messages with '***'."""

    def __init__(self, secrets: Iterable[Optional[str]]):
        super().__init__()
        self.secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self.secrets:
            redacted = redacted.replace(secret, "***")
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    secrets: Iterable[Optional[str]] = (),
) -> None:
    """Configure root logger with console and optional file handlers.

    Args:
        level: Log level (INFO, DEBUG, etc.)
        log_dir: If provided, create a timestamped log file in this directory.
        secrets: Credential values that must never appear in log output.
    """
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    redactor = SecretRedactingFilter(secrets)

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    # Console handler (always present). stderr: stdout carries the inventory JSON.
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(redactor)
    root.addHandler(console_handler)

    if level.upper() != "DEBUG":
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # File handler (optional)
    if log_dir:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y-%m-%d__%H_%M_%S")
            log_file = log_dir / f"portgrid_{timestamp}.log"
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
            file_handler.setFormatter(formatter)
            file_handler.addFilter(redactor)
            root.addHandler(file_handler)
            root.info("Logging to file: %s", log_file)
        except OSError as exc:
            root.error(
                "File logging disabled (cannot create log file under %s as uid=%s): %s",
                str(log_dir),
                os.getuid() if hasattr(os, "getuid") else "?",
                exc,
            )
