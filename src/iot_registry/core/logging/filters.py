"""
Logging filters

Operation ID filter and helpers for logging.

Every service call (insert, delete, find_by_serial, ...) runs inside one
transaction scope. The scope binds a short random `operation_id` to the current
context so that all log lines emitted during that call, from the service down to
the repositories and the fault mapper, can be correlated.

How it is intended to be used
------------------------------
1. Install the filter into the logging configuration (see builder.py):

     "filters": {
         "operation_id": {"()": OperationIdFilter}
     },
     "handlers": {
         "console": {"class": "logging.StreamHandler", "filters": ["operation_id"], ...}
     }

2. `database.transaction` calls `bind_operation_id()` when a scope opens and
   `reset_operation_id(token)` when it closes.

3. Any record logged in between has `record.operation_id` set; records outside
   an operation get the sentinel "-".

A `contextvars.ContextVar` is used so the id follows the logical flow across
`await` points and does not leak between concurrently running tasks.
"""

import logging
import uuid
from logging import LogRecord
import contextvars

# Id of the service operation running in the current context, None outside one
_operation_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation_id", default=None
)


def new_operation_id() -> str:
    return uuid.uuid4().hex[:12]


def set_operation_id(operation_id: str | None):
    """
    Set the operation id in the current context and return the token to allow reset.
    """
    return _operation_id_ctx.set(operation_id)


def bind_operation_id() -> tuple[str, contextvars.Token]:
    """
    Bind the current operation id, generating one if none is active.

    Nested scopes (a service method calling another one) keep the outer id.

    Returns:
        (operation_id, token): pass the token to reset_operation_id() on exit.
    """
    current = _operation_id_ctx.get()
    operation_id = current or new_operation_id()
    return operation_id, _operation_id_ctx.set(operation_id)


def reset_operation_id(token):
    _operation_id_ctx.reset(token)


def get_operation_id() -> str | None:
    return _operation_id_ctx.get()


class OperationIdFilter(logging.Filter):
    """
    Logging filter that guarantees every LogRecord has an `operation_id` attribute.

    Precedence: an explicit `extra={"operation_id": ...}`, then the contextvar,
    then "-". Always returns True; it only annotates records.
    """

    def filter(self, record: LogRecord) -> bool:
        record.operation_id = (
            getattr(record, "operation_id", None) or get_operation_id() or "-"
        )
        return True


# Redact sensitive information
class RedactFilter(logging.Filter):
    """
    Mask record attributes whose name is sensitive.

    The registry itself logs no secrets, but SQL logging (`sqlalchemy.engine`) and
    settings dumps can carry the database password.
    """
    SENSITIVE = {"password", "secret", "token", "postgres_password", "database_url", "authorization"}

    def filter(self, record: LogRecord) -> bool:
        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE:
                record.__dict__[key] = "***REDACTED***"
        return True


__all__ = [
    "OperationIdFilter",
    "RedactFilter",
    "bind_operation_id",
    "get_operation_id",
    "new_operation_id",
    "reset_operation_id",
    "set_operation_id",
]
