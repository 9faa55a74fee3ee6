import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iot_registry.exceptions.base import ErrorKind, ServiceError
from iot_registry.models import NetworkConfig
from iot_registry.repositories import ConfigRepository
from iot_registry.validators.entity_validators import prepare_configuration
from iot_registry.validators.field_validators import require_non_empty, require_non_null, validate_id
from .base_service import BaseService

logger = logging.getLogger(__name__)


def _config_not_found(config_id: int) -> ServiceError:
    return ServiceError(ErrorKind.ENTITY_NOT_FOUND, f"No active configuration with id {config_id}", fields=["id"])


def _ip_taken(ip: str) -> ServiceError:
    return ServiceError(ErrorKind.DUPLICATE_ENTITY, f"A configuration with IP {ip} already exists", fields=["ip"])


class ConfigService(BaseService):
    """
    Public operations on network configurations.

    Configurations created here are standalone (no device). A configuration held
    by an active device can only go away through that device's delete cascade.
    """

    ENTITY_NAME = "NetworkConfig"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], configs: ConfigRepository):
        super().__init__(session_factory)
        self._configs = configs

    # =================================================================================================================
    # Create / Update
    # =================================================================================================================

    async def insert(self, config: NetworkConfig) -> NetworkConfig:
        """
        Persist a standalone configuration.

        Any `device_id` on the instance is discarded, and so is a preset `deleted` flag.

        Raises:
            ServiceError: VALIDATION (DHCP coherence, address formats), DUPLICATE_ENTITY
                when another active static configuration uses the IP
        """
        self._validate("config.insert", prepare_configuration, config)
        # The device link is only written by DeviceService.insert_with_configuration
        config.device_id = None

        try:
            async with self._transaction("config.insert") as session:
                if not config.dhcp_enabled and await self._configs.exists_static_ip(session, config.ip):
                    raise _ip_taken(config.ip)
                await self._configs.create(session, config)
        except ServiceError:
            config.id = None
            raise

        logger.info("config.insert.success", extra={"config_id": config.id, "dhcp_enabled": config.dhcp_enabled})
        return config

    async def update(self, config: NetworkConfig) -> NetworkConfig:
        """
        Overwrite the addresses and DHCP flag of an active configuration.

        `device_id` is never changed here: the instance passed in gets the stored
        value back.
        """
        self._validate("config.update", validate_id, getattr(config, "id", None))
        self._validate("config.update", prepare_configuration, config)

        async with self._transaction("config.update") as session:
            existing = await self._configs.read_by_id(session, config.id)
            if existing is None:
                raise _config_not_found(config.id)

            if not config.dhcp_enabled and await self._configs.exists_static_ip(
                session, config.ip, exclude_id=config.id
            ):
                raise _ip_taken(config.ip)

            if await self._configs.update(session, config) == 0:
                raise _config_not_found(config.id)
            config.device_id = existing.device_id
            config.deleted = False

        logger.info("config.update.success", extra={"config_id": config.id, "dhcp_enabled": config.dhcp_enabled})
        return config

    # =================================================================================================================
    # Delete
    # =================================================================================================================

    async def delete(self, config_id: int) -> None:
        """
        Soft-delete a standalone (or orphaned) configuration.

        Raises:
            ServiceError: ENTITY_NOT_FOUND when absent, VALIDATION when an active
                device still holds it
        """
        self._validate("config.delete", validate_id, config_id)

        async with self._transaction("config.delete") as session:
            if await self._configs.read_by_id(session, config_id) is None:
                raise _config_not_found(config_id)
            if await self._configs.exists_association(session, config_id):
                raise ServiceError(
                    ErrorKind.VALIDATION,
                    "Configuration is linked to an active device; delete the device instead",
                    fields=["device_id"],
                )
            await self._configs.soft_delete(session, config_id)

        logger.info("config.delete.success", extra={"config_id": config_id})

    # =================================================================================================================
    # Reads
    # =================================================================================================================

    async def get_by_id(self, config_id: int) -> NetworkConfig:
        self._validate("config.get_by_id", validate_id, config_id)

        async with self._read("config.get_by_id") as session:
            config = await self._configs.read_by_id(session, config_id)
        if config is None:
            raise _config_not_found(config_id)
        return config

    async def get_all(self) -> list[NetworkConfig]:
        async with self._read("config.get_all") as session:
            return await self._configs.read_all_active(session)

    async def find_by_ip(self, ip: str) -> NetworkConfig:
        self._validate("config.find_by_ip", require_non_empty, ip, "ip")
        ip = ip.strip()

        async with self._read("config.find_by_ip") as session:
            config = await self._configs.find_by_ip(session, ip)
        if config is None:
            raise ServiceError(ErrorKind.ENTITY_NOT_FOUND, f"No active configuration with IP {ip}", fields=["ip"])
        return config

    async def find_by_dhcp_state(self, dhcp_enabled: bool) -> list[NetworkConfig]:
        self._validate("config.find_by_dhcp_state", require_non_null, dhcp_enabled, "dhcp_enabled")

        async with self._read("config.find_by_dhcp_state") as session:
            return await self._configs.find_by_dhcp_state(session, bool(dhcp_enabled))
