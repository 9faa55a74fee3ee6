"""
Composition root: builds every collaborator from a Settings value.

    settings = get_settings()
    setup_logging(settings)
    container = build_container(settings)
    if not await container.check_connection():
        ...
    await container.init_schema()
    device = await container.device_service.insert(Device(...))
    ...
    await container.dispose()
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from iot_registry.config.settings import Settings
from iot_registry.database.session import build_engine, build_session_factory, check_connection, init_schema
from iot_registry.repositories import ConfigRepository, DeviceRepository
from iot_registry.services import ConfigService, DeviceService, InventoryStatistics, collect_statistics

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    device_service: DeviceService
    config_service: ConfigService

    async def init_schema(self) -> None:
        await init_schema(self.engine)

    async def check_connection(self) -> bool:
        return await check_connection(self.engine)

    async def statistics(self) -> InventoryStatistics:
        return await collect_statistics(self.device_service, self.config_service)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.debug("container.disposed")


def build_container(settings: Settings) -> ServiceContainer:
    """
    Wire engine -> session factory -> repositories -> services.

    The repositories are stateless and shared by both services.
    """
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    devices = DeviceRepository()
    configs = ConfigRepository()

    container = ServiceContainer(
        engine=engine,
        session_factory=session_factory,
        device_service=DeviceService(session_factory, devices, configs),
        config_service=ConfigService(session_factory, configs),
    )
    logger.info("container.built", extra={"env": settings.ENV})
    return container
