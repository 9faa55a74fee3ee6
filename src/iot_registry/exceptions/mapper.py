import re
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .integrity_classifier import classify_store_fault, StoreFaultType
from .base import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

# Columns whose unique index identifies a business key
DUPLICATE_KEY_LABELS = {
    "serial": "serial",
    "ip": "IP address",
}
LINK_KEY = "device_id"

# -----------------------
# Column extraction helpers
# -----------------------

def _extract_columns_postgres(msg: str) -> list[str] | None:
    """
    Try to extract involved column names from common Postgres messages:
      - 'null value in column "serial" of relation "devices" violates not-null constraint'
      - 'DETAIL:  Key (serial)=(ABC-1234) already exists.'
    """
    if not msg:
        return None

    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r'key \((?P<cols>[^)]+)\)=', msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    return None


def _extract_columns_sqlite(msg: str) -> list[str] | None:
    # SQLite: 'UNIQUE constraint failed: devices.serial'
    #         'NOT NULL constraint failed: devices.model'
    m = re.search(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$', msg, flags=re.IGNORECASE)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols"))]
    return None


def _extract_columns_mysql(msg: str) -> list[str] | None:
    # MySQL: "Duplicate entry 'ABC-1234' for key 'devices.uq_devices_serial'"
    #        "Column 'model' cannot be null"
    m = re.search(r"for key '(?P<key>[^']+)'", msg, flags=re.IGNORECASE)
    if m:
        return [m.group("key").split('.')[-1]]
    m = re.search(r"Column '(?P<col>[^']+)' cannot be null", msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]
    return None


def extract_columns_from_fault(exc: DBAPIError) -> list[str] | None:
    """
    Best-effort extraction of column names from the DB message (Postgres, SQLite, MySQL).
    """
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)

    for extractor in (_extract_columns_postgres, _extract_columns_sqlite, _extract_columns_mysql):
        cols = extractor(msg)
        if cols:
            return cols
    return None


def extract_constraint_from_message(exc: DBAPIError) -> str | None:
    # SQLite: 'CHECK constraint failed: ck_network_configs_static_ip_not_placeholder'
    msg = str(exc.orig) if exc.orig is not None else str(exc)
    m = re.search(r'CHECK constraint failed: (?P<name>\S+)', msg, flags=re.IGNORECASE)
    if m:
        return m.group("name")
    m = re.search(r"Check constraint '(?P<name>[^']+)' is violated", msg, flags=re.IGNORECASE)
    if m:
        return m.group("name")
    return None


def _resolve_key_column(columns: list[str] | None, constraint_name: str | None) -> str | None:
    """
    Pick the business key behind a unique violation, from the reported columns first
    and the index / constraint name second (MySQL and Postgres report the index name).
    """
    known = (LINK_KEY, *DUPLICATE_KEY_LABELS)
    for col in columns or ():
        if col in known:
            return col
    candidates = [name for name in (constraint_name, *(columns or ())) if name]
    for name in candidates:
        lowered = name.lower()
        for key in known:
            if re.search(rf'(^|_){key}(_|$)', lowered):
                return key
    return None


# -----------------------
# Mapper
# -----------------------

def map_store_fault(exc: SQLAlchemyError, entity_name: str | None = None) -> ServiceError:
    """
    Translate a store fault raised by a repository call into a ServiceError.

    Pure: returns the error instead of raising it, so callers chain it with
    `raise map_store_fault(exc, "Device") from exc`.

    Args:
        exc: The SQLAlchemy exception caught at the transaction boundary.
        entity_name: Name used in user-facing messages ("Device", "NetworkConfig").

    Returns:
        ServiceError: The business-level error, with `fields` / `constraint` set where known.
    """
    entity = entity_name or "Record"

    if not isinstance(exc, DBAPIError):
        return ServiceError(ErrorKind.DATA_ACCESS, f"Failed to operate on {entity}")

    fault = classify_store_fault(exc)
    columns = extract_columns_from_fault(exc)
    constraint_name = fault.constraint_name

    if fault.fault_type is StoreFaultType.UNIQUE:
        key = _resolve_key_column(columns, constraint_name)
        if key == LINK_KEY:
            return ServiceError(
                ErrorKind.VALIDATION,
                "Configuration is already linked to a device",
                fields=[LINK_KEY],
                constraint=constraint_name,
            )
        if key in DUPLICATE_KEY_LABELS:
            return ServiceError(
                ErrorKind.DUPLICATE_ENTITY,
                f"{entity} with this {DUPLICATE_KEY_LABELS[key]} already exists",
                fields=[key],
                constraint=constraint_name,
            )
        return ServiceError(
            ErrorKind.DUPLICATE_ENTITY,
            f"{entity} duplicate value",
            fields=columns,
            constraint=constraint_name,
        )

    if fault.fault_type is StoreFaultType.NOT_NULL:
        if columns:
            return ServiceError(
                ErrorKind.VALIDATION,
                f"Missing required field(s): {', '.join(columns)} for {entity}",
                fields=columns,
                constraint=constraint_name,
            )
        return ServiceError(ErrorKind.VALIDATION, f"Missing required field for {entity}", constraint=constraint_name)

    if fault.fault_type is StoreFaultType.FOREIGN_KEY:
        return ServiceError(
            ErrorKind.ENTITY_NOT_FOUND,
            f"{entity} references an entity that does not exist",
            fields=columns,
            constraint=constraint_name,
        )

    if fault.fault_type is StoreFaultType.CHECK:
        constraint_name = constraint_name or extract_constraint_from_message(exc)
        # The raw DB text stays out of the message
        return ServiceError(
            ErrorKind.VALIDATION,
            f"{entity} rejected by a store rule (check constraint)",
            constraint=constraint_name,
        )

    if fault.fault_type is StoreFaultType.CONTENTION:
        return ServiceError(
            ErrorKind.CONCURRENCY,
            f"{entity} operation failed due to concurrent access; retry the operation",
            constraint=constraint_name,
        )

    return ServiceError(ErrorKind.DATA_ACCESS, f"Failed to operate on {entity}", constraint=constraint_name)


# -----------------------
# Async context manager to DRY fault handling in transaction scopes
# -----------------------

async def _safe_rollback(session: AsyncSession, entity_name: str | None, reason: str) -> None:
    try:
        await session.rollback()
    except Exception:
        # A failed rollback must not hide the original error
        logger.exception("db.rollback.failed", extra={"entity": entity_name, "reason": reason})


@asynccontextmanager
async def db_error_handler(session: AsyncSession, entity_name: str | None = None):
    """
    Usage:
        async with db_error_handler(session, "Device"):
            ... repository calls + commit ...

    On any failure the session is rolled back, then:
      - ServiceError (pre-check failures) propagates unchanged,
      - store faults are classified and re-raised as ServiceError from the fault,
      - anything else is wrapped as DATA_ACCESS.
    """
    try:
        yield
    except ServiceError as err:
        await _safe_rollback(session, entity_name, "service_error")
        logger.info(
            "db.operation.rejected",
            extra={"entity": entity_name, "kind": err.kind.value, "fields": err.fields},
        )
        raise
    except SQLAlchemyError as exc:
        await _safe_rollback(session, entity_name, "store_fault")
        mapped = map_store_fault(exc, entity_name)
        if mapped.kind is ErrorKind.DATA_ACCESS:
            logger.error(
                "db.operation.store_fault",
                exc_info=exc,
                extra={"entity": entity_name, "kind": mapped.kind.value},
            )
        else:
            # Constraint and contention faults are expected outcomes; keep raw text at DEBUG
            logger.info(
                "db.operation.store_fault",
                extra={
                    "entity": entity_name,
                    "kind": mapped.kind.value,
                    "fields": mapped.fields,
                    "constraint": mapped.constraint,
                },
            )
            logger.debug("db.operation.store_fault_raw", extra={"entity": entity_name, "raw": str(exc)})
        raise mapped from exc
    except Exception as exc:
        await _safe_rollback(session, entity_name, "unexpected_error")
        logger.exception("db.operation.unexpected_error", extra={"entity": entity_name})
        raise ServiceError(ErrorKind.DATA_ACCESS, f"Failed to operate on {entity_name or 'database'}") from exc
