import logging
from typing import Iterable

from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession

from iot_registry.models.device import Device
from iot_registry.models.network_config import NetworkConfig
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConfigRepository(BaseRepository[NetworkConfig]):
    """
    Repository for NetworkConfig operations.

    Besides the base CRUD it answers the questions the services ask about the
    device link: which configuration belongs to a device, and whether a
    configuration is still held by an active device.
    """

    # device_id is set once at creation and never rewritten by update()
    UPDATABLE_FIELDS = ("ip", "subnet_mask", "gateway", "primary_dns", "dhcp_enabled")

    def __init__(self):
        super().__init__(NetworkConfig)

    # =================================================================================================================
    # Lookups by address
    # =================================================================================================================

    async def find_by_ip(self, session: AsyncSession, ip: str) -> NetworkConfig | None:
        """
        Get an active configuration using this address.

        Several DHCP configurations share the placeholder address, so the lowest id
        wins when more than one row matches.
        """
        result = await session.execute(
            select(NetworkConfig)
            .where(NetworkConfig.ip == ip, NetworkConfig.deleted.is_(False))
            .order_by(NetworkConfig.id)
        )
        return result.scalars().first()

    async def exists_static_ip(self, session: AsyncSession, ip: str, exclude_id: int | None = None) -> bool:
        """
        Whether another active static configuration already uses `ip`.

        Args:
            session: The caller's transaction scope
            ip: The address to check
            exclude_id: Id of the configuration being updated, ignored in the check

        Returns:
            bool: True when the address is taken
        """
        conditions = [
            NetworkConfig.ip == ip,
            NetworkConfig.deleted.is_(False),
            NetworkConfig.dhcp_enabled.is_(False),
        ]
        if exclude_id is not None:
            conditions.append(NetworkConfig.id != exclude_id)

        taken = await session.scalar(select(exists().where(*conditions)))
        logger.debug("repo.config.exists_static_ip", extra={"ip": ip, "exclude_id": exclude_id, "taken": bool(taken)})
        return bool(taken)

    async def find_by_dhcp_state(self, session: AsyncSession, dhcp_enabled: bool) -> list[NetworkConfig]:
        result = await session.execute(
            select(NetworkConfig)
            .where(NetworkConfig.dhcp_enabled.is_(dhcp_enabled), NetworkConfig.deleted.is_(False))
            .order_by(NetworkConfig.id)
        )
        return list(result.scalars().all())

    # =================================================================================================================
    # Device link
    # =================================================================================================================

    async def find_by_device_id(self, session: AsyncSession, device_id: int) -> NetworkConfig | None:
        result = await session.execute(
            select(NetworkConfig).where(NetworkConfig.device_id == device_id, NetworkConfig.deleted.is_(False))
        )
        return result.scalar_one_or_none()

    async def find_by_device_ids(self, session: AsyncSession, device_ids: Iterable[int]) -> dict[int, NetworkConfig]:
        """
        Batch variant of `find_by_device_id` for list reads.

        Returns:
            dict: device id -> active configuration, only for devices that have one
        """
        ids = list(device_ids)
        if not ids:
            return {}
        result = await session.execute(
            select(NetworkConfig).where(NetworkConfig.device_id.in_(ids), NetworkConfig.deleted.is_(False))
        )
        return {config.device_id: config for config in result.scalars().all()}

        # Notes:
        #   - One query per list read instead of one per device.

    async def exists_association(self, session: AsyncSession, config_id: int) -> bool:
        """
        Whether the configuration is linked to a device that is still active.
        """
        stmt = select(
            exists()
            .where(
                NetworkConfig.id == config_id,
                NetworkConfig.device_id == Device.id,
                Device.deleted.is_(False),
            )
        )
        return bool(await session.scalar(stmt))
