"""
Structured logging configuration.

Production writes one JSON object per line to stdout; development gets a
readable console format. LOG_FORMAT ("json" or "console") and LOG_LEVEL
override the defaults picked from DEBUG.

Commands log with extra={...}. The keys in CONTEXT_KEYS (company, entry
number, document number, ...) are lifted to the top level of the JSON
record so log search can filter on them; any other extras land under
"extra".
"""
import json
import logging
import os
from datetime import datetime, timezone


APP_LOGGERS = (
    "accounts",
    "accounting",
    "events",
    "projections",
    "trade",
    "pos",
    "inventory",
    "assets",
    "ops",
    "celery",
)

CONTEXT_KEYS = (
    "company",
    "user",
    "event_type",
    "entry_number",
    "reference_type",
    "reference_id",
    "number",
)

_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def get_logging_config(debug: bool = False) -> dict:
    """Django LOGGING dict for the current environment."""
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    if log_format == "json":
        formatter = {"()": "ops.logging_config.JsonFormatter"}
    else:
        formatter = {"format": "[{asctime}] {levelname} {name} {message}", "style": "{"}

    def app_logger(level=log_level):
        return {"handlers": ["console"], "level": level, "propagate": False}

    loggers = {name: app_logger() for name in APP_LOGGERS}
    loggers.update({
        "": {"handlers": ["console"], "level": log_level},
        "django": app_logger(),
        "django.request": app_logger(log_level if debug else "ERROR"),
        # SQL echo only while debugging
        "django.db.backends": {
            "handlers": ["console"] if debug else ["null"],
            "level": "DEBUG" if debug else "INFO",
            "propagate": False,
        },
    })

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": loggers,
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        extras = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        for key in CONTEXT_KEYS:
            if key in extras:
                entry[key] = extras.pop(key)
        if extras:
            entry["extra"] = extras

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
