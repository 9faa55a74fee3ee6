"""
Turns `Settings` into a logging.dictConfig mapping and applies it.

Two layouts exist. With LOG_TO_STDOUT everything goes to the console and errors
are repeated as JSON on stderr. Otherwise the console is kept and LOG_DIR gets
a rotating app.log plus a JSON errors.log. SQLAlchemy's engine logger is quiet
unless ENABLE_SQL_LOGGING is set, and never reaches the file handlers.
"""

from pathlib import Path
import logging
import logging.config

from iot_registry.config.settings import Settings
from iot_registry.utils.project_info import get_project_info

from .formatters import JsonFormatter, ColorFormatter
from .filters import OperationIdFilter, RedactFilter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
    get_error_console_handler,
)

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(operation_id)s | %(message)s"
SQL_LOGGER = "sqlalchemy.engine"


def _writes_files(settings: Settings) -> bool:
    return not settings.LOG_TO_STDOUT and bool(settings.LOG_DIR)


def _formatters(settings: Settings) -> dict:
    text_class = ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter
    return {
        "standard": {"()": text_class, "format": TEXT_FORMAT},
        "json": {"()": JsonFormatter, "env": settings.ENV, "service": get_project_info().name},
    }


def _handlers(settings: Settings) -> dict[str, dict]:
    handlers = {"console": get_console_handler(settings)}
    if _writes_files(settings):
        handlers.update(file=get_file_handler(settings), error_file=get_error_file_handler(settings))
    else:
        handlers["error_console"] = get_error_console_handler(settings)
    return handlers


def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping for `settings`.

    Formatters are "standard" and "json"; every handler references the
    "operation_id" and "redact" filters declared here.
    """
    handlers = _handlers(settings)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": _formatters(settings),
        "filters": {
            "operation_id": {"()": OperationIdFilter},
            "redact": {"()": RedactFilter},
        },
        "handlers": handlers,
        "loggers": {
            "": {"handlers": list(handlers), "level": settings.LOG_LEVEL, "propagate": True},
            SQL_LOGGER: {
                "level": "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Settings) -> None:
    """Create LOG_DIR if needed, apply the mapping and attach an OperationIdFilter to the root logger."""
    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))
    # Handlers added after configuration still see operation_id
    logging.getLogger().addFilter(OperationIdFilter())

    logging.getLogger(__name__).debug(
        "logging.configured",
        extra={"log_format": settings.LOG_FORMAT, "log_level": settings.LOG_LEVEL, "to_stdout": settings.LOG_TO_STDOUT},
    )
