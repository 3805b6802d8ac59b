# crm_app/utils/logging_config.py

"""
Logging setup for the application.

Configures console and rotating file handlers on ``app.logger`` using the
LOG_* settings from ``config.monitoring``. JSON output carries any ``extra=``
fields passed by callers (for example the importer's tenant and counts).
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from flask.logging import default_handler

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line"""

    def __init__(self, app_name=None):
        super().__init__()
        self.app_name = app_name

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.app_name:
            payload["app"] = self.app_name
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(app):
    if app.config.get("LOG_FORMAT", "json") == "json":
        return JSONFormatter(app_name=app.config.get("APP_NAME"))
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app):
    """Attach handlers to ``app.logger``; safe to call more than once"""
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(app)

    app.logger.removeHandler(default_handler)
    for handler in list(app.logger.handlers):
        if getattr(handler, "_crm_app_handler", False):
            app.logger.removeHandler(handler)
            handler.close()

    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)
        console_handler._crm_app_handler = True
        app.logger.addHandler(console_handler)

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(log_dir, "app.log"),
                maxBytes=app.config.get("LOG_FILE_MAX_BYTES", 10485760),
                backupCount=app.config.get("LOG_FILE_BACKUP_COUNT", 10),
            )
        except OSError as exc:
            app.logger.warning("File logging disabled; could not open log directory %s: %s", log_dir, exc)
        else:
            file_handler.setFormatter(formatter)
            file_handler.setLevel(level)
            file_handler._crm_app_handler = True
            app.logger.addHandler(file_handler)

    app.logger.setLevel(level)
    return app.logger
