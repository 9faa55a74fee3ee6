import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

logger = logging.getLogger(__name__)

# =================================================================================================================
# Store-level fault types
# =================================================================================================================


class StoreFaultType(str, Enum):
    """What failed inside the database, independent of business meaning."""
    UNIQUE = "unique"
    NOT_NULL = "not_null"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"
    CONTENTION = "contention"       # deadlock / serialization failure / lock timeout
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class StoreFault:
    fault_type: StoreFaultType
    code: str | None = None
    constraint_name: str | None = None


# =================================================================================================================
# Fault code tables
# =================================================================================================================

# https://www.postgresql.org/docs/current/errcodes-appendix.html
class PostgresErrorCodes(str, Enum):
    UNIQUE_VIOLATION = "23505"
    NOT_NULL_VIOLATION = "23502"
    FOREIGN_KEY_VIOLATION = "23503"
    CHECK_VIOLATION = "23514"
    SERIALIZATION_FAILURE = "40001"
    DEADLOCK_DETECTED = "40P01"
    LOCK_NOT_AVAILABLE = "55P03"


PGCODE_FAULT_MAP = {
    PostgresErrorCodes.UNIQUE_VIOLATION: StoreFaultType.UNIQUE,
    PostgresErrorCodes.NOT_NULL_VIOLATION: StoreFaultType.NOT_NULL,
    PostgresErrorCodes.FOREIGN_KEY_VIOLATION: StoreFaultType.FOREIGN_KEY,
    PostgresErrorCodes.CHECK_VIOLATION: StoreFaultType.CHECK,
    PostgresErrorCodes.SERIALIZATION_FAILURE: StoreFaultType.CONTENTION,
    PostgresErrorCodes.DEADLOCK_DETECTED: StoreFaultType.CONTENTION,
    PostgresErrorCodes.LOCK_NOT_AVAILABLE: StoreFaultType.CONTENTION,
}

# MySQL / MariaDB server error numbers
MYSQL_FAULT_MAP = {
    1062: StoreFaultType.UNIQUE,        # ER_DUP_ENTRY
    1048: StoreFaultType.NOT_NULL,      # ER_BAD_NULL_ERROR
    1452: StoreFaultType.FOREIGN_KEY,   # ER_NO_REFERENCED_ROW_2
    3819: StoreFaultType.CHECK,         # ER_CHECK_CONSTRAINT_VIOLATED
    1213: StoreFaultType.CONTENTION,    # ER_LOCK_DEADLOCK
    1205: StoreFaultType.CONTENTION,    # ER_LOCK_WAIT_TIMEOUT
}

# sqlite3 exposes extended result code names on its exceptions
SQLITE_FAULT_MAP = {
    "SQLITE_CONSTRAINT_UNIQUE": StoreFaultType.UNIQUE,
    "SQLITE_CONSTRAINT_PRIMARYKEY": StoreFaultType.UNIQUE,
    "SQLITE_CONSTRAINT_NOTNULL": StoreFaultType.NOT_NULL,
    "SQLITE_CONSTRAINT_FOREIGNKEY": StoreFaultType.FOREIGN_KEY,
    "SQLITE_CONSTRAINT_CHECK": StoreFaultType.CHECK,
    "SQLITE_BUSY": StoreFaultType.CONTENTION,
    "SQLITE_LOCKED": StoreFaultType.CONTENTION,
}


# =================================================================================================================
# Classifiers
# =================================================================================================================

def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _classify_from_postgres_diag(orig) -> StoreFault | None:
    """
    Classify a Postgres fault from its SQLSTATE (psycopg2 exposes `pgcode`,
    psycopg 3 and asyncpg expose `sqlstate`).
    """
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if not pgcode:
        return None

    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None) if diag else None
    if constraint_name is None:
        constraint_name = getattr(orig, "constraint_name", None)

    fault_type = PGCODE_FAULT_MAP.get(pgcode)
    if fault_type:
        logger.debug("Postgres fault diagnostic", extra={"pgcode": pgcode, "constraint_name": constraint_name})
        return StoreFault(fault_type, pgcode, constraint_name)

    logger.warning(
        "Unknown Postgres error code encountered",
        extra={"pgcode": pgcode, "constraint_name": constraint_name}
    )
    return StoreFault(StoreFaultType.UNKNOWN, pgcode, constraint_name)


def _classify_from_mysql_errno(orig) -> StoreFault | None:
    args = getattr(orig, "args", None) or ()
    errno = args[0] if args and isinstance(args[0], int) else None
    if errno is None:
        return None
    fault_type = MYSQL_FAULT_MAP.get(errno)
    if fault_type is None:
        return None
    return StoreFault(fault_type, str(errno), None)


def _classify_from_sqlite_errorname(orig) -> StoreFault | None:
    errorname = getattr(orig, "sqlite_errorname", None)
    fault_type = SQLITE_FAULT_MAP.get(errorname) if errorname else None
    if fault_type is None:
        return None
    return StoreFault(fault_type, errorname, None)


def _classify_from_generic_message(msg: str) -> StoreFault:
    """
    Classify based on message content (fallback for drivers without codes).
    """
    normalized = (msg or "").lower()

    if _match_any(normalized, ["unique constraint", "unique failed", "unique violation", "duplicate"]):
        return StoreFault(StoreFaultType.UNIQUE)

    if _match_any(normalized, ["not null constraint", "not null", "null value in column"]):
        return StoreFault(StoreFaultType.NOT_NULL)

    if _match_any(normalized, ["foreign key constraint", "foreign key", "is not present in table"]):
        return StoreFault(StoreFaultType.FOREIGN_KEY)

    if _match_any(normalized, ["check constraint", "check failed"]):
        return StoreFault(StoreFaultType.CHECK)

    if _match_any(normalized, ["deadlock", "could not serialize", "serialization failure",
                               "database is locked", "lock wait timeout"]):
        return StoreFault(StoreFaultType.CONTENTION)

    logger.warning("Unknown store fault message encountered", extra={"message_snippet": normalized[:200]})
    logger.debug("Unknown store fault raw message", extra={"raw": msg})
    return StoreFault(StoreFaultType.UNKNOWN)


def classify_store_fault(exc: SQLAlchemyError) -> StoreFault:
    """
    Classify a SQLAlchemy error raised by a repository call into a StoreFault.

    Order: Postgres SQLSTATE, MySQL errno, SQLite extended error name, then the
    message text. Non-DBAPI errors (ORM usage errors, etc.) are UNKNOWN.
    """
    if not isinstance(exc, DBAPIError):
        return StoreFault(StoreFaultType.UNKNOWN)

    orig = exc.orig
    for classifier in (_classify_from_postgres_diag, _classify_from_mysql_errno, _classify_from_sqlite_errorname):
        fault = classifier(orig)
        if fault is not None:
            return fault

    return _classify_from_generic_message(str(orig) if orig is not None else str(exc))
