"""
Logging setup for models, storage backends and the CLI.

Modules log through ``get_logger(__name__)`` and attach statement details
(table, cache key, SQL) with ``extra=``. ``configure_logging`` installs one
stderr handler on the root logger, either as readable lines or as one JSON
object per record with those ``extra`` attributes as top-level keys.

    configure_logging(level="DEBUG", json_logs=True)
    log = get_logger(__name__)
    log.debug("Executing statement", extra={"table": "user", "kind": "select"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Iterator, Optional, Tuple

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
CONSOLE_DATEFMT = "%H:%M:%S"

# Attributes present on every LogRecord; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def _extra_items(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    for key, value in vars(record).items():
        if key not in _RECORD_ATTRS:
            yield key, value


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` values are promoted to keys."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_items(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _logging_config(level: str, json_logs: bool) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": CONSOLE_FORMAT, "datefmt": CONSOLE_DATEFMT},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "json" if json_logs else "console",
                "level": level,
            }
        },
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Replace the root logger's handlers with a single stderr handler.

    Parameters
    ----------
    level : str
        Level name applied to the root logger and its handler.
    json_logs : bool
        Emit ``JsonFormatter`` output instead of ``CONSOLE_FORMAT`` lines.
    """
    logging.config.dictConfig(_logging_config(level.upper(), json_logs))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["CONSOLE_FORMAT", "JsonFormatter", "configure_logging", "get_logger"]
