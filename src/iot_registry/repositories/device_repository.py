import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from iot_registry.models.device import Device
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class DeviceRepository(BaseRepository[Device]):
    """
    Repository for Device operations.

    Inherits the generic soft-delete aware CRUD from `BaseRepository` and adds the
    lookups the device service needs (by serial, by location).
    """

    UPDATABLE_FIELDS = ("serial", "model", "location", "firmware_version")

    def __init__(self):
        super().__init__(Device)

    # =================================================================================================================
    # Lookups
    # =================================================================================================================

    async def find_by_serial(self, session: AsyncSession, serial: str) -> Device | None:
        """
        Get the active device holding this serial.

        Args:
            session: The caller's transaction scope
            serial: An already normalized serial (uppercase, trimmed)

        Returns:
            The Device if found, None otherwise
        """
        result = await session.execute(
            select(Device).where(Device.serial == serial, Device.deleted.is_(False))
        )
        device = result.scalar_one_or_none()
        logger.debug("repo.device.find_by_serial", extra={"serial": serial, "found": device is not None})
        return device

        # Notes:
        #   - scalar_one_or_none() is safe here: the partial unique index allows at
        #     most one active row per serial.

    async def find_by_location(self, session: AsyncSession, fragment: str) -> list[Device]:
        """
        Active devices whose location contains `fragment`, case-insensitively.

        `%` and `_` in the fragment match literally (autoescape).
        """
        result = await session.execute(
            select(Device)
            .where(
                Device.location.icontains(fragment, autoescape=True),
                Device.deleted.is_(False),
            )
            .order_by(Device.id)
        )
        return list(result.scalars().all())
