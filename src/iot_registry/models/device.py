from sqlalchemy import String, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column
from iot_registry.database.base import Base, SoftDeleteMixin
from typing import TYPE_CHECKING

# Avoid circular import issues when using type hints for related models
if TYPE_CHECKING:
    from .network_config import NetworkConfig


class Device(SoftDeleteMixin, Base):
    """
    SQLAlchemy model for an IoT Device.

    A device optionally owns one network configuration. The link is not an ORM
    relationship: the configuration row stores `device_id`, and the service layer
    resolves it into the non-persisted `configuration` attribute after each read.
    """
    __tablename__ = "devices"

    # Surrogate key assigned by the store on insert
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # Serial number, pattern LLL-AAAA (normalized to uppercase before persisting)
    serial: Mapped[str] = mapped_column(
        String(50),
        nullable=False
    )

    # Hardware model (normalized to uppercase)
    model: Mapped[str] = mapped_column(
        String(50),
        nullable=False
    )

    # Free-text physical location
    location: Mapped[str] = mapped_column(
        String(120),
        nullable=False
    )

    # Optional firmware version, vX.Y.Z
    firmware_version: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True
    )

    # In-memory link to the active configuration, populated by DeviceService.
    # Plain class attribute (no Mapped annotation) so the mapper ignores it.
    configuration = None

    @property
    def configuration_id(self) -> int | None:
        config: "NetworkConfig | None" = self.configuration
        return config.id if config is not None else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "serial": self.serial,
            "model": self.model,
            "location": self.location,
            "firmware_version": self.firmware_version,
            "deleted": self.deleted,
            "configuration_id": self.configuration_id,
        }

    def __repr__(self) -> str:
        # Only the configuration id, never the configuration itself
        return (
            f"<Device(id={self.id!r}, serial={self.serial!r}, model={self.model!r}, "
            f"configuration_id={self.configuration_id!r})>"
        )


# Serial is unique among non-deleted devices only
Index(
    "uq_devices_serial_active",
    Device.serial,
    unique=True,
    sqlite_where=Device.deleted.is_(False),
    postgresql_where=Device.deleted.is_(False),
)
