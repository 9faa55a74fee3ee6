from .base_repository import BaseRepository
from .device_repository import DeviceRepository
from .config_repository import ConfigRepository

__all__ = [
    "BaseRepository",
    "DeviceRepository",
    "ConfigRepository",
]
