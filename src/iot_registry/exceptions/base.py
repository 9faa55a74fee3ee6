"""
Business-level error type raised by the service layer.

Every failure that leaves a service method is a `ServiceError`. The concrete
situation is carried by its `kind` tag instead of a subclass per error, so
callers branch on `err.kind` and the store-fault mapper stays a pure function
from fault to kind.
"""

from enum import Enum
from typing import Iterable


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    DUPLICATE_ENTITY = "duplicate_entity"
    ENTITY_NOT_FOUND = "entity_not_found"
    CONCURRENCY = "concurrency"
    DATA_ACCESS = "data_access"


class ServiceError(Exception):
    """
    Canonical error raised by DeviceService / ConfigService.

    - kind: one of ErrorKind (what went wrong, in business terms)
    - message: human-friendly message (safe to show to the menu user)
    - fields: optional list of field names related to the error (e.g., ['serial'])
    - constraint: optional DB constraint name or identifier (for logs only)

    The low-level fault, when there is one, is chained with `raise ... from exc`
    and exposed as `.cause`.
    """

    def __init__(self, kind: ErrorKind, message: str, *, fields: Iterable[str] | None = None,
                 constraint: str | None = None):
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.fields = list(fields) if fields else None
        self.constraint = constraint

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    @property
    def retryable(self) -> bool:
        # Only store contention may succeed when the whole operation is repeated.
        return self.kind is ErrorKind.CONCURRENCY

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.fields:
            parts.append(f"fields: {', '.join(self.fields)}")
        if self.constraint:
            parts.append(f"constraint: {self.constraint}")
        parts.append(f"kind: {self.kind.value}")
        return f"{base} ({'; '.join(parts)})"

    def __repr__(self) -> str:
        return f"ServiceError(kind={self.kind.value!r}, message={self.message!r})"

    def to_payload(self) -> dict:
        """
        Return a plain dict the menu layer can render.
        Standard shape:
            {
                "detail": "A human-friendly message",
                "kind": "duplicate_entity",
                "fields": ["serial"],          # optional
                "retryable": false,
            }
        The constraint name and raw DB message are intentionally left out.
        """
        payload = {"detail": self.message, "kind": self.kind.value, "retryable": self.retryable}
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload


__all__ = [
    "ErrorKind",
    "ServiceError",
]
