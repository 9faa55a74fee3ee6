r"""
Centralized access to all database models of the device registry.

Importing the models from one place also guarantees both tables (and their
partial indexes) are registered on `Base.metadata` before `create_all` runs.

Example:

from iot_registry.models import Device, NetworkConfig
"""

from .device import Device
from .network_config import NetworkConfig, DHCP_PLACEHOLDER_IP

__all__ = [
    "Device",
    "NetworkConfig",
    "DHCP_PLACEHOLDER_IP",
]
