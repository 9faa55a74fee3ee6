"""
Base repository class providing the CRUD primitives shared by both entities.

Repositories never open, commit or roll back a transaction. Every method takes
the caller's `AsyncSession` as its first argument, so a service can run calls on
both repositories inside one transaction scope and decide when it ends.

Store faults (`sqlalchemy.exc.DBAPIError` subclasses) are not caught here: they
propagate to the transaction scope, which rolls back and classifies them.
"""

import logging
from typing import TypeVar, Generic, Type, ClassVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from iot_registry.database.base import Base

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

# Setup logging
logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository over a soft-deletable model.

    The model must expose an integer `id` and a boolean `deleted` column. Every
    read filters out soft-deleted rows.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    # Columns written by `update()`; `id`, `deleted` and foreign keys are never updated
    UPDATABLE_FIELDS: ClassVar[tuple[str, ...]] = ()

    def __init__(self, model: Type[ModelType]):
        """
        Initialize the repository.

        Args:
            model: The SQLAlchemy model class (e.g. Device, not Device()), used to
                build queries dynamically: select(self.model), update(self.model), etc.
        """
        self.model = model

    def _active(self):
        return self.model.deleted.is_(False)

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def create(self, session: AsyncSession, entity: ModelType) -> int:
        """
        Insert an entity and return its store-assigned id.

        The INSERT is flushed (not committed) so the id is available to the rest of
        the transaction, e.g. to stamp it on a dependent row.

        Args:
            session: The caller's transaction scope
            entity: A transient model instance

        Returns:
            int: The new primary key, also set on `entity.id`
        """
        # New rows always start active
        entity.deleted = False
        session.add(entity)
        await session.flush()

        logger.debug(
            "repo.create.flushed",
            extra={"model": self.model.__name__, "operation": "create", "id": entity.id},
        )
        return entity.id

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def read_by_id(self, session: AsyncSession, entity_id: int) -> ModelType | None:
        """
        Return the active entity with this id, or None when it does not exist or is soft-deleted.
        """
        result = await session.execute(
            select(self.model).where(self.model.id == entity_id, self._active())
        )
        return result.scalar_one_or_none()

    async def read_all_active(self, session: AsyncSession) -> list[ModelType]:
        result = await session.execute(
            select(self.model).where(self._active()).order_by(self.model.id)
        )
        return list(result.scalars().all())

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def update(self, session: AsyncSession, entity: ModelType) -> int:
        """
        Write the updatable fields of `entity` onto its active row.

        Args:
            session: The caller's transaction scope
            entity: An instance carrying the target `id` and the new values

        Returns:
            int: Affected rows (0 when the row is missing or soft-deleted, else 1)
        """
        values = {field: getattr(entity, field) for field in self.UPDATABLE_FIELDS}
        stmt = (
            update(self.model)
            .where(self.model.id == entity.id, self._active())
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)

        logger.debug(
            "repo.update.executed",
            extra={"model": self.model.__name__, "operation": "update", "id": entity.id, "rowcount": result.rowcount},
        )
        return result.rowcount

        # Notes:
        #   - Only UPDATABLE_FIELDS are written, so callers cannot move a configuration
        #     to another device or resurrect a soft-deleted row through update().
        #   - `synchronize_session=False`: instances of this row already loaded in the
        #     session keep their old attribute values. Services re-query after writing
        #     instead of reading those instances.

    # =================================================================================================================
    # Delete Operations
    # =================================================================================================================

    async def soft_delete(self, session: AsyncSession, entity_id: int) -> int:
        """
        Flag the active row as deleted.

        Returns:
            int: Affected rows (0 when already deleted or missing)
        """
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id, self._active())
            .values(deleted=True)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)

        logger.debug(
            "repo.soft_delete.executed",
            extra={"model": self.model.__name__, "operation": "soft_delete", "id": entity_id, "rowcount": result.rowcount},
        )
        return result.rowcount

        # Notes:
        #   - Rows are never physically removed; the partial unique indexes only cover
        #     active rows, so a serial or IP becomes reusable once its holder is deleted.
