import logging
from dataclasses import dataclass, asdict

from .config_service import ConfigService
from .device_service import DeviceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryStatistics:
    """Counts over active records, as shown on the statistics screen."""
    total_devices: int
    total_configurations: int
    devices_with_configuration: int
    devices_without_configuration: int
    dhcp_configurations: int
    static_configurations: int

    def to_dict(self) -> dict:
        return asdict(self)


async def collect_statistics(device_service: DeviceService, config_service: ConfigService) -> InventoryStatistics:
    """
    Aggregate the inventory through the public service reads.

    Soft-deleted rows are excluded because both `get_all` calls only return
    active records. The two reads run in separate scopes, so the snapshot is not
    transactional.
    """
    devices = await device_service.get_all()
    configs = await config_service.get_all()

    with_config = sum(1 for device in devices if device.configuration is not None)
    dhcp = sum(1 for config in configs if config.dhcp_enabled)

    stats = InventoryStatistics(
        total_devices=len(devices),
        total_configurations=len(configs),
        devices_with_configuration=with_config,
        devices_without_configuration=len(devices) - with_config,
        dhcp_configurations=dhcp,
        static_configurations=len(configs) - dhcp,
    )
    logger.info("statistics.collected", extra=stats.to_dict())
    return stats
