"""Fixtures for service tests. Services commit, so every row here is really persisted."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iot_registry.models import Device, NetworkConfig
from iot_registry.repositories import ConfigRepository, DeviceRepository
from iot_registry.services import ConfigService, DeviceService


@pytest.fixture
def device_service(
    session_factory: async_sessionmaker[AsyncSession],
    device_repository: DeviceRepository,
    config_repository: ConfigRepository,
) -> DeviceService:
    return DeviceService(session_factory, device_repository, config_repository)


@pytest.fixture
def config_service(
    session_factory: async_sessionmaker[AsyncSession],
    config_repository: ConfigRepository,
) -> ConfigService:
    return ConfigService(session_factory, config_repository)


@pytest.fixture
async def inserted_device(device_service: DeviceService, make_device) -> Device:
    """Device ABC-1234 committed through DeviceService.insert."""
    return await device_service.insert(make_device(serial="ABC-1234"))


@pytest.fixture
async def inserted_config(config_service: ConfigService, make_config) -> NetworkConfig:
    """Standalone static configuration 192.168.1.10 committed through ConfigService.insert."""
    return await config_service.insert(make_config(ip="192.168.1.10"))


@pytest.fixture
async def inserted_device_with_config(device_service: DeviceService, make_device, make_config) -> Device:
    """Device XYZ-0001 committed together with static configuration 172.16.0.5."""
    return await device_service.insert_with_configuration(
        make_device(serial="XYZ-0001"),
        make_config(ip="172.16.0.5"),
    )
