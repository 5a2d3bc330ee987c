"""
Logging Management Module.

Provides a single application logger that accepts both plain strings and
structured dictionaries as messages, e.g.::

    logger.info({"message": "Repository mined", "repository": "ethereum/EIPs"})

Features:
- JSON lines log file with size based rotation
- Console output (human readable in development mode, JSON otherwise)
- Idempotent setup, safe to instantiate more than once per process
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            payload["message"] = record.getMessage()
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line formatter used in development mode."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            fields = dict(record.msg)
            message = fields.pop("message", "")
            extras = " ".join(f"{key}={value}" for key, value in fields.items())
            record = logging.makeLogRecord(
                {**record.__dict__, "msg": f"{message} {extras}".strip(), "args": None}
            )
        return super().format(record)


class LogManager:
    """
    Configure and expose the application logger.

    Attributes:
        logger (logging.Logger): Configured application logger
    """

    def __init__(
        self,
        app_name: str,
        log_dir: str = "logs",
        development: bool = False,
        level: int = logging.INFO,
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
    ):
        """
        Initialize logging handlers for the application.

        Args:
            app_name (str): Logger name, also used as the log file name
            log_dir (str): Directory where log files are written
            development (bool): Use the readable console format when True
            level (int): Logging level
            max_bytes (int): Maximum size of a log file before rotation
            backup_count (int): Number of rotated files to keep
        """
        self.logger = logging.getLogger(app_name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        if self.logger.handlers:
            return

        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, f"{app_name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(JsonFormatter())
        self.logger.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        if development:
            console_handler.setFormatter(
                ConsoleFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
            )
        else:
            console_handler.setFormatter(JsonFormatter())
        self.logger.addHandler(console_handler)
