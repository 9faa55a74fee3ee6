"""
Device service: validation, uniqueness checks and transaction boundaries for devices.

Every read returns devices with `configuration` resolved from the configuration
table, and every write runs in a single transaction scope.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iot_registry.exceptions.base import ErrorKind, ServiceError
from iot_registry.models import Device, NetworkConfig
from iot_registry.repositories import ConfigRepository, DeviceRepository
from iot_registry.validators.entity_validators import prepare_configuration, prepare_device
from iot_registry.validators.field_validators import normalize, require_non_empty, require_non_null, validate_id
from .base_service import BaseService

logger = logging.getLogger(__name__)


def _device_not_found(device_id: int) -> ServiceError:
    return ServiceError(ErrorKind.ENTITY_NOT_FOUND, f"No active device with id {device_id}", fields=["id"])


def _serial_taken(serial: str) -> ServiceError:
    return ServiceError(ErrorKind.DUPLICATE_ENTITY, f"A device with serial {serial} already exists", fields=["serial"])


def _ip_taken(ip: str) -> ServiceError:
    return ServiceError(ErrorKind.DUPLICATE_ENTITY, f"A configuration with IP {ip} already exists", fields=["ip"])


class DeviceService(BaseService):
    """
    Public operations on devices, including the composite device + configuration insert.

    Args (constructor):
        session_factory: Factory producing one AsyncSession per operation
        devices: Device repository
        configs: Configuration repository, for the link lookups and the delete cascade
    """

    ENTITY_NAME = "Device"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        devices: DeviceRepository,
        configs: ConfigRepository,
    ):
        super().__init__(session_factory)
        self._devices = devices
        self._configs = configs

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def insert(self, device: Device) -> Device:
        """
        Persist a new device.

        Returns:
            Device: The same instance, normalized and carrying its new id

        Raises:
            ServiceError: VALIDATION for invalid fields, DUPLICATE_ENTITY when an
                active device already holds the serial, or a classified store fault
        """
        self._validate("device.insert", prepare_device, device)

        try:
            async with self._transaction("device.insert") as session:
                if await self._devices.find_by_serial(session, device.serial) is not None:
                    raise _serial_taken(device.serial)
                await self._devices.create(session, device)
        except ServiceError:
            device.id = None
            raise

        logger.info("device.insert.success", extra={"device_id": device.id, "serial": device.serial})
        return device

    async def insert_with_configuration(self, device: Device, config: NetworkConfig) -> Device:
        """
        Persist a device and its configuration in one transaction.

        The device is inserted first so its id can be stamped on `config.device_id`.
        If anything fails after that, including the configuration INSERT itself, the
        whole transaction is rolled back: either both rows exist afterwards or neither.

        Returns:
            Device: The device, with `configuration` set to the persisted config

        Raises:
            ServiceError: VALIDATION, DUPLICATE_ENTITY on serial or (static) IP, or a
                classified store fault
        """
        self._validate("device.insert_with_configuration", prepare_device, device)
        self._validate("device.insert_with_configuration", prepare_configuration, config)

        try:
            async with self._transaction("device.insert_with_configuration") as session:
                if await self._devices.find_by_serial(session, device.serial) is not None:
                    raise _serial_taken(device.serial)
                if not config.dhcp_enabled and await self._configs.exists_static_ip(session, config.ip):
                    raise _ip_taken(config.ip)

                device_id = await self._devices.create(session, device)
                config.device_id = device_id
                await self._configs.create(session, config)
                device.configuration = config
        except ServiceError:
            # Nothing was committed; do not hand back ids of rolled-back rows
            device.id = None
            device.configuration = None
            config.id = None
            config.device_id = None
            raise

        logger.info(
            "device.insert_with_configuration.success",
            extra={"device_id": device.id, "config_id": config.id, "serial": device.serial},
        )
        return device

        # Notes:
        #   - The ip pre-check only applies in static mode; DHCP configurations all
        #     share the placeholder address.
        #   - The partial unique indexes back both pre-checks, so a concurrent insert
        #     that slips past them still ends in DUPLICATE_ENTITY, with full rollback.

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def update(self, device: Device) -> Device:
        """
        Overwrite serial, model, location and firmware of an active device.

        Raises:
            ServiceError: VALIDATION for a bad id or fields, ENTITY_NOT_FOUND when no
                active device has this id, DUPLICATE_ENTITY when another device holds
                the serial
        """
        self._validate("device.update", validate_id, getattr(device, "id", None))
        self._validate("device.update", prepare_device, device)

        async with self._transaction("device.update") as session:
            if await self._devices.read_by_id(session, device.id) is None:
                raise _device_not_found(device.id)

            holder = await self._devices.find_by_serial(session, device.serial)
            if holder is not None and holder.id != device.id:
                raise _serial_taken(device.serial)

            if await self._devices.update(session, device) == 0:
                raise _device_not_found(device.id)
            device.deleted = False
            device.configuration = await self._configs.find_by_device_id(session, device.id)

        logger.info("device.update.success", extra={"device_id": device.id})
        return device

    # =================================================================================================================
    # Delete Operations
    # =================================================================================================================

    async def delete(self, device_id: int) -> None:
        """
        Soft-delete a device and, in the same transaction, its active configuration.

        Raises:
            ServiceError: VALIDATION for a bad id, ENTITY_NOT_FOUND when absent
        """
        self._validate("device.delete", validate_id, device_id)

        async with self._transaction("device.delete") as session:
            if await self._devices.read_by_id(session, device_id) is None:
                raise _device_not_found(device_id)

            await self._devices.soft_delete(session, device_id)

            config = await self._configs.find_by_device_id(session, device_id)
            cascaded_config_id = None
            if config is not None:
                await self._configs.soft_delete(session, config.id)
                cascaded_config_id = config.id

        logger.info("device.delete.success", extra={"device_id": device_id, "cascaded_config_id": cascaded_config_id})

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def _attach_configurations(self, session: AsyncSession, devices: list[Device]) -> list[Device]:
        by_device = await self._configs.find_by_device_ids(session, [d.id for d in devices])
        for device in devices:
            device.configuration = by_device.get(device.id)
        return devices

    async def get_by_id(self, device_id: int) -> Device:
        self._validate("device.get_by_id", validate_id, device_id)

        async with self._read("device.get_by_id") as session:
            device = await self._devices.read_by_id(session, device_id)
            if device is None:
                raise _device_not_found(device_id)
            device.configuration = await self._configs.find_by_device_id(session, device_id)
        return device

    async def get_all(self) -> list[Device]:
        async with self._read("device.get_all") as session:
            devices = await self._devices.read_all_active(session)
            return await self._attach_configurations(session, devices)

    async def find_by_serial(self, serial: str) -> Device:
        """
        Look up an active device by serial. The input is normalized first, so
        " abc-1234 " finds ABC-1234.

        Raises:
            ServiceError: VALIDATION for a blank serial, ENTITY_NOT_FOUND when no active device matches
        """
        self._validate("device.find_by_serial", require_non_empty, serial, "serial")
        serial = normalize(serial)

        async with self._read("device.find_by_serial") as session:
            device = await self._devices.find_by_serial(session, serial)
            if device is None:
                raise ServiceError(
                    ErrorKind.ENTITY_NOT_FOUND, f"No active device with serial {serial}", fields=["serial"]
                )
            device.configuration = await self._configs.find_by_device_id(session, device.id)
        return device

    async def find_by_location(self, fragment: str) -> list[Device]:
        """Case-insensitive substring match on location; possibly empty."""
        self._validate("device.find_by_location", require_non_null, fragment, "location")

        async with self._read("device.find_by_location") as session:
            devices = await self._devices.find_by_location(session, fragment.strip())
            return await self._attach_configurations(session, devices)
