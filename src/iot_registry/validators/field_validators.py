"""
Field-level validation rules shared by the device and configuration services.

Every check is a plain function that returns nothing on success and raises
`ServiceError(kind=VALIDATION)` on the first violated rule. Nothing here
touches the database, so a failing check never opens a session.
"""

import re
from typing import Any

from iot_registry.exceptions.base import ErrorKind, ServiceError
from iot_registry.models.network_config import DHCP_PLACEHOLDER_IP

# =================================================================================================================
# Patterns
# =================================================================================================================

# Octet 0-255 without leading zeros ("0" is fine, "01" is not)
_OCTET = r"(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]\d|\d)"
IPV4_PATTERN = re.compile(rf"^{_OCTET}(?:\.{_OCTET}){{3}}$", re.ASCII)

# Three uppercase letters, a dash, four uppercase letters or digits (e.g. ABC-1234)
SERIAL_PATTERN = re.compile(r"^[A-Z]{3}-[A-Z0-9]{4}$")

# v + MAJOR.MINOR.PATCH (e.g. v1.2.10)
FIRMWARE_PATTERN = re.compile(r"^v\d+\.\d+\.\d+$", re.ASCII)


def _invalid(message: str, field_name: str | None = None) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, message, fields=[field_name] if field_name else None)


# =================================================================================================================
# Presence
# =================================================================================================================

def require_non_empty(value: str | None, field_name: str) -> None:
    """
    Reject `None`, empty and whitespace-only strings.

    Raises:
        ServiceError: VALIDATION, naming `field_name`.
    """
    if value is None or not str(value).strip():
        raise _invalid(f"{field_name} is required and cannot be empty", field_name)


def require_non_null(value: Any, field_name: str) -> None:
    if value is None:
        raise _invalid(f"{field_name} is required", field_name)


# =================================================================================================================
# Formats
# =================================================================================================================

def validate_ipv4_format(value: str | None, field_name: str = "ip") -> None:
    """
    Check a dotted-quad IPv4 address.

    Each of the four octets must be a decimal number in [0, 255] written without
    leading zeros. Empty input, missing octets and surrounding whitespace all fail.
    """
    if not isinstance(value, str) or not IPV4_PATTERN.fullmatch(value):
        raise _invalid(f"Invalid IPv4 address for {field_name}: {value!r}", field_name)


def validate_serial_format(value: str | None) -> None:
    if not isinstance(value, str) or not SERIAL_PATTERN.fullmatch(value):
        raise _invalid(
            f"Invalid serial {value!r}: expected 3 letters, a dash and 4 letters or digits (e.g. ABC-1234)",
            "serial",
        )


def validate_firmware_format(value: str | None) -> None:
    """Firmware is optional: only a non-empty value is checked against vX.Y.Z."""
    if value is None or not value.strip():
        return
    if not FIRMWARE_PATTERN.fullmatch(value):
        raise _invalid(f"Invalid firmware version {value!r}: expected vX.Y.Z", "firmware_version")


# =================================================================================================================
# Bounds
# =================================================================================================================

def validate_length(value: str | None, field_name: str, min_length: int, max_length: int) -> None:
    if value is None:
        raise _invalid(f"{field_name} is required", field_name)
    if not min_length <= len(value) <= max_length:
        raise _invalid(
            f"{field_name} must be between {min_length} and {max_length} characters (got {len(value)})",
            field_name,
        )


def validate_positive(value: int | None, field_name: str) -> None:
    # bool is an int subclass; True must not pass as 1
    if value is None or isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise _invalid(f"{field_name} must be a positive integer", field_name)


def validate_id(entity_id: int | None) -> None:
    """
    Identifiers handed to update / delete / get must be positive integers.

    Raises:
        ServiceError: VALIDATION when the id is missing, not an int, a bool, or <= 0.
    """
    validate_positive(entity_id, "id")


# =================================================================================================================
# Cross-field rules
# =================================================================================================================

def validate_dhcp_coherence(dhcp_enabled: bool, ip: str | None) -> None:
    """
    A static configuration (DHCP off) needs a real address: empty input and the
    DHCP placeholder 0.0.0.0 are both rejected.
    """
    if dhcp_enabled:
        return
    if ip is None or not ip.strip() or ip.strip() == DHCP_PLACEHOLDER_IP:
        raise _invalid("A static configuration requires a non-placeholder IP address", "ip")


# =================================================================================================================
# Normalization
# =================================================================================================================

def normalize(value: str | None) -> str | None:
    """Trim and uppercase; `None` stays `None`. Applying it twice changes nothing."""
    if value is None:
        return None
    return value.strip().upper()


__all__ = [
    "DHCP_PLACEHOLDER_IP",
    "require_non_empty",
    "require_non_null",
    "validate_ipv4_format",
    "validate_serial_format",
    "validate_firmware_format",
    "validate_length",
    "validate_positive",
    "validate_id",
    "validate_dhcp_coherence",
    "normalize",
]
