"""
Logging setup for host applications.

The library only creates module loggers; handlers are attached here when a
host application asks for them.
"""

import json
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from lv2catalog.config import Settings, settings as default_settings

LOGGER_NAME = "lv2catalog"

STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter()
    return logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(config: Optional[Settings] = None) -> logging.Logger:
    """
    Attach handlers to the package logger.

    Calling this more than once replaces the handlers installed by the
    previous call.

    Args:
        config: Settings to use (defaults to the global settings)

    Returns:
        The configured package logger
    """
    config = config or default_settings
    package_logger = logging.getLogger(LOGGER_NAME)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = _build_formatter(config.log_format)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    package_logger.addHandler(console)

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.setLevel(config.log_level)
    package_logger.propagate = False  # Don't duplicate into the root logger

    return package_logger
