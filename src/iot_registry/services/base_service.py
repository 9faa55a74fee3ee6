"""
Shared plumbing for the device and configuration services.

A service owns no session. It receives a session factory at construction and
opens one transaction scope per public method; validation runs before the scope
so invalid input never touches the database.
"""

import logging
from typing import Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iot_registry.database.transaction import read_scope, transaction_scope
from iot_registry.exceptions.base import ServiceError

logger = logging.getLogger(__name__)

EntityType = TypeVar("EntityType")


class BaseService:
    """
    Base class holding the session factory and the entity name used in errors.

    Subclasses set ENTITY_NAME ("Device", "NetworkConfig").
    """

    ENTITY_NAME: str = "Record"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _transaction(self, operation: str):
        return transaction_scope(self._session_factory, operation, self.ENTITY_NAME)

    def _read(self, operation: str):
        return read_scope(self._session_factory, operation, self.ENTITY_NAME)

    def _validate(self, operation: str, check: Callable[..., EntityType], *args) -> EntityType:
        """
        Run a validation step, logging the rejection at INFO before re-raising it.
        """
        try:
            return check(*args)
        except ServiceError as err:
            logger.info(
                f"{operation}.invalid",
                extra={"entity": self.ENTITY_NAME, "fields": err.fields, "reason": err.message},
            )
            raise
