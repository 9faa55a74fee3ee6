from .device_service import DeviceService
from .config_service import ConfigService
from .statistics import InventoryStatistics, collect_statistics

__all__ = [
    "DeviceService",
    "ConfigService",
    "InventoryStatistics",
    "collect_statistics",
]
