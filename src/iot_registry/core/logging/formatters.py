"""
Record formatters used by the logging builder.

JsonFormatter writes one object per line for log collectors; ColorFormatter
writes aligned, level-colored lines for a terminal. Both carry the operation id
bound by the transaction scopes and every `extra={...}` key of the call, so a
device or configuration id logged by a service survives either format.
"""

import json
import logging
from typing import Any
from logging import LogRecord
from iot_registry.utils.project_info import get_project_info

PROJECT_NAME = get_project_info().name
PROJECT_VERSION = get_project_info().version

NO_OPERATION = "-"

# Attributes every LogRecord carries; anything else on the record came from `extra={...}`
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "operation_id"}


def extra_fields(record: LogRecord) -> dict[str, Any]:
    """Keys attached to the record through `extra=`, in insertion order."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Fixed keys: timestamp, level, logger, message, pathname, lineno,
    operation_id, service, env, version. Exception and stack text are added when
    present. Extras never overwrite a fixed key, and values json cannot encode
    are written as their str().
    """

    def __init__(self, *, env: str | None = None, service: str = PROJECT_NAME, datefmt: str | None = None):
        super().__init__(datefmt=datefmt)
        self.env = env
        self.service = service

    def _base_fields(self, record: LogRecord) -> dict[str, Any]:
        return {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "operation_id": getattr(record, "operation_id", NO_OPERATION),
            "service": self.service,
            "env": self.env,
            "version": PROJECT_VERSION,
        }

    def format(self, record: LogRecord) -> str:
        payload = self._base_fields(record)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        for key, value in extra_fields(record).items():
            payload.setdefault(key, _json_safe(value))

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColorFormatter(logging.Formatter):
    """
    Terminal formatter: TIMESTAMP | LEVEL | LOGGER | OPERATION_ID | MESSAGE key=value...

    Only the level name is colored.
    """

    COLOR_CODES = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;41m",
        "RESET": "\033[0m",
    }

    def format(self, record: LogRecord) -> str:
        level = f"{self.COLOR_CODES.get(record.levelname, '')}{record.levelname:<8}{self.COLOR_CODES['RESET']}"
        columns = [
            self.formatTime(record, self.datefmt),
            level,
            f"{record.name:<28}",
            f"{getattr(record, 'operation_id', NO_OPERATION):<12}",
            record.getMessage(),
        ]
        line = " | ".join(columns)

        extras = extra_fields(record)
        if extras:
            line += " " + " ".join(f"{key}={value!r}" for key, value in extras.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line
