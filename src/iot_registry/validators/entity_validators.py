"""
Entity-level preparation: normalization plus the ordered chain of field checks.

Both functions mutate the instance they receive and return it, so a service can
write `device = prepare_device(device)` before opening a transaction.
"""

from iot_registry.models import Device, NetworkConfig, DHCP_PLACEHOLDER_IP
from .field_validators import (
    normalize,
    require_non_empty,
    require_non_null,
    validate_dhcp_coherence,
    validate_firmware_format,
    validate_ipv4_format,
    validate_length,
    validate_serial_format,
)

SERIAL_MAX_LENGTH = 50
MODEL_MAX_LENGTH = 50
LOCATION_MAX_LENGTH = 120


def prepare_device(device: Device | None) -> Device:
    """
    Validate and normalize a device in place.

    Order: presence of serial / model / location, uppercase normalization of
    serial and model, serial pattern, firmware pattern (blank firmware is stored
    as NULL), then length bounds.

    Raises:
        ServiceError: VALIDATION on the first violated rule.
    """
    require_non_null(device, "Device")
    require_non_empty(device.serial, "serial")
    require_non_empty(device.model, "model")
    require_non_empty(device.location, "location")

    device.serial = normalize(device.serial)
    device.model = normalize(device.model)
    device.location = device.location.strip()

    validate_serial_format(device.serial)

    if device.firmware_version is not None and not device.firmware_version.strip():
        device.firmware_version = None
    if device.firmware_version is not None:
        device.firmware_version = device.firmware_version.strip()
        validate_firmware_format(device.firmware_version)

    validate_length(device.serial, "serial", 1, SERIAL_MAX_LENGTH)
    validate_length(device.model, "model", 1, MODEL_MAX_LENGTH)
    validate_length(device.location, "location", 1, LOCATION_MAX_LENGTH)
    return device


def _is_set(address: str | None) -> bool:
    return address is not None and address.strip() != "" and address.strip() != DHCP_PLACEHOLDER_IP


def prepare_configuration(config: NetworkConfig | None) -> NetworkConfig:
    """
    Validate a configuration in place.

    Static mode: the ip must be a valid non-placeholder address; mask, gateway and
    DNS are optional and only checked when given. DHCP mode: all four address
    fields are rewritten to the placeholder.
    """
    require_non_null(config, "NetworkConfig")
    require_non_null(config.dhcp_enabled, "dhcp_enabled")

    validate_dhcp_coherence(config.dhcp_enabled, config.ip)

    if config.dhcp_enabled:
        config.ip = DHCP_PLACEHOLDER_IP
        config.subnet_mask = DHCP_PLACEHOLDER_IP
        config.gateway = DHCP_PLACEHOLDER_IP
        config.primary_dns = DHCP_PLACEHOLDER_IP
        return config

    config.ip = config.ip.strip()
    validate_ipv4_format(config.ip, "ip")
    for field_name in ("subnet_mask", "gateway", "primary_dns"):
        address = getattr(config, field_name)
        if _is_set(address):
            setattr(config, field_name, address.strip())
            validate_ipv4_format(getattr(config, field_name), field_name)
    return config


__all__ = [
    "prepare_device",
    "prepare_configuration",
]
