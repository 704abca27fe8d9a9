"""Logging configuration for toilet-tracker.

Provides structured logging to console and file with configurable levels.
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toilet_tracker.config import Config

# Module logger
logger = logging.getLogger("toilet_tracker")

REDACTED = "***"

_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[^\s'\",}]+", re.IGNORECASE),
    re.compile(r"""(['"]?(?:token|password)['"]?\s*[:=]\s*['"]?)[^\s'\",}&]+""", re.IGNORECASE),
)


def redact_secrets(text: str) -> str:
    """Mask bearer tokens and token/password values in a log line.

    Args:
        text: Formatted log message.

    Returns:
        Text with secret values replaced by ``***``.
    """
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(rf"\g<1>{REDACTED}", text)
    return text


class RedactSecretsFilter(logging.Filter):
    """Handler filter that keeps session tokens and passwords out of logs.

    urllib3 and http debugging can echo request headers and bodies, which
    carry the bearer token and login credentials.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    config: "Config | None" = None,
    log_dir: Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    quiet: bool = False,
) -> logging.Logger:
    """Set up logging for toilet-tracker.

    Creates handlers for:
    - Console output at INFO level (or WARNING if quiet)
    - File output at DEBUG level in logs/ directory

    Args:
        config: Application config (for log_dir from data directory).
        log_dir: Explicit log directory path.
        console_level: Log level for console output.
        file_level: Log level for file output.
        quiet: If True, console only shows warnings and errors.

    Returns:
        Configured logger.
    """
    # Clear existing handlers
    urllib3_logger = logging.getLogger("urllib3")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        urllib3_logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.WARNING if quiet else console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.addFilter(RedactSecretsFilter())
    logger.addHandler(console_handler)

    if log_dir is None:
        if config is not None:
            log_dir = config.data.directory.expanduser() / "logs"
        else:
            log_dir = Path("logs")

    log_dir.mkdir(parents=True, exist_ok=True)

    # ISO 8601 basic format keeps file names sortable
    timestamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    log_file = log_dir / f"toilet-tracker-{timestamp}.log"

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    file_handler.addFilter(RedactSecretsFilter())
    logger.addHandler(file_handler)

    # Request-level details from urllib3 go to the file only
    urllib3_logger.setLevel(logging.DEBUG)
    urllib3_logger.addHandler(file_handler)

    logger.debug("Logging initialized. Log file: %s", log_file)

    return logger
