"""
Transaction scopes used by the service layer.

A scope opens one `AsyncSession`, binds an operation id for log correlation and
guarantees the session is released on every exit path:

    async with transaction_scope(session_factory, "device.insert", "Device") as session:
        await devices.create(session, device)
    # committed here; on any error: rolled back, classified, re-raised as ServiceError

`read_scope` is the same without the commit, for lookups.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iot_registry.core.logging.filters import bind_operation_id, reset_operation_id
from iot_registry.exceptions.mapper import db_error_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transaction_scope(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str,
    entity_name: str | None = None,
) -> AsyncIterator[AsyncSession]:
    """
    Unit of work that fully commits or fully rolls back.

    Args:
        session_factory: Factory built by `build_session_factory`
        operation: Dotted operation name used in logs ("device.insert")
        entity_name: Entity named in user-facing error messages ("Device")

    Yields:
        AsyncSession: The session to pass to every repository call of the operation

    Raises:
        ServiceError: Pre-check failures unchanged, store faults classified
    """
    _, token = bind_operation_id()
    start = time.perf_counter()
    logger.debug("tx.begin", extra={"operation": operation})
    try:
        async with session_factory() as session:
            async with db_error_handler(session, entity_name):
                yield session
                await session.commit()
        logger.debug(
            "tx.commit",
            extra={"operation": operation, "duration_ms": int((time.perf_counter() - start) * 1000)},
        )
    finally:
        reset_operation_id(token)

    # Notes:
    #   - The commit runs inside db_error_handler, so a fault raised at commit time
    #     (deferred constraint, serialization failure) is classified like any other.
    #   - Leaving `async with session_factory()` closes the session whether the
    #     body succeeded or not.


@asynccontextmanager
async def read_scope(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str,
    entity_name: str | None = None,
) -> AsyncIterator[AsyncSession]:
    """Read-only scope: no commit, session always closed, faults classified."""
    _, token = bind_operation_id()
    logger.debug("tx.read", extra={"operation": operation})
    try:
        async with session_factory() as session:
            async with db_error_handler(session, entity_name):
                yield session
    finally:
        reset_operation_id(token)
