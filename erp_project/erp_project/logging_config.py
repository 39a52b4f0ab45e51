"""
Structured logging configuration.

JSON lines to stdout in production, human-readable console output
when DEBUG is on.

Environment variables:
- LOG_FORMAT: "json" or "console" (default: json in production)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
"""
import json
import logging
import os
from datetime import datetime, timezone

# LogRecord attributes that are not caller-supplied extras
_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
}


def get_logging_config(debug: bool = False) -> dict:
    """Build the Django LOGGING dict."""
    log_level = os.environ.get("LOG_LEVEL", "INFO" if not debug else "DEBUG")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    config = {
        "version": 1,
        "disable_existing_loggers": False,
    }

    if log_format == "json":
        config["formatters"] = {
            "json": {"()": "erp_project.logging_config.JsonFormatter"},
        }
        handler_formatter = "json"
    else:
        config["formatters"] = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        handler_formatter = "verbose"

    config["handlers"] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": handler_formatter,
            "stream": "ext://sys.stdout",
        },
        "null": {"class": "logging.NullHandler"},
    }

    config["loggers"] = {
        "": {"handlers": ["console"], "level": log_level},
        "django": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "ERROR" if not debug else log_level,
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["null"],
            "level": "INFO",
            "propagate": False,
        },
        # Application loggers
        "ledger_core": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
        "celery": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
    }
    return config


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter.

    Outputs one JSON object per line with timestamp, level, logger,
    message, location and any ``extra={...}`` fields the caller passed.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_entry["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                extras[key] = str(value)
        if extras:
            log_entry["extra"] = extras

        return json.dumps(log_entry, default=str)
