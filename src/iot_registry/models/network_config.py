from sqlalchemy import String, Boolean, Integer, ForeignKey, Index, CheckConstraint, and_
from sqlalchemy.orm import Mapped, mapped_column
from iot_registry.database.base import Base, SoftDeleteMixin

# Address used for every network field while DHCP is on
DHCP_PLACEHOLDER_IP = "0.0.0.0"


class NetworkConfig(SoftDeleteMixin, Base):
    """
    SQLAlchemy model for a device network configuration.

    Holds only the owning device's id; the device side of the one-to-one link
    lives in memory (see `Device.configuration`).
    """
    __tablename__ = "network_configs"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # IPv4 addresses as dotted-quad strings
    ip: Mapped[str] = mapped_column(String(15), nullable=False)
    subnet_mask: Mapped[str | None] = mapped_column(String(15), nullable=True)
    gateway: Mapped[str | None] = mapped_column(String(15), nullable=True)
    primary_dns: Mapped[str | None] = mapped_column(String(15), nullable=True)

    dhcp_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    # Owning device; set only by the composite device + configuration insert
    device_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("devices.id"),
        nullable=True,
        index=True
    )

    __table_args__ = (
        # A static configuration cannot use the DHCP placeholder address
        CheckConstraint(
            f"dhcp_enabled OR ip <> '{DHCP_PLACEHOLDER_IP}'",
            name="static_ip_not_placeholder",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ip": self.ip,
            "subnet_mask": self.subnet_mask,
            "gateway": self.gateway,
            "primary_dns": self.primary_dns,
            "dhcp_enabled": self.dhcp_enabled,
            "deleted": self.deleted,
            "device_id": self.device_id,
        }

    def __repr__(self) -> str:
        return (
            f"<NetworkConfig(id={self.id!r}, ip={self.ip!r}, dhcp_enabled={self.dhcp_enabled!r}, "
            f"device_id={self.device_id!r})>"
        )


# Static IPs are unique among active configurations; DHCP rows all share the placeholder
Index(
    "uq_network_configs_ip_static_active",
    NetworkConfig.ip,
    unique=True,
    sqlite_where=and_(NetworkConfig.deleted.is_(False), NetworkConfig.dhcp_enabled.is_(False)),
    postgresql_where=and_(NetworkConfig.deleted.is_(False), NetworkConfig.dhcp_enabled.is_(False)),
)

# One active configuration per device
Index(
    "uq_network_configs_device_id_active",
    NetworkConfig.device_id,
    unique=True,
    sqlite_where=NetworkConfig.deleted.is_(False),
    postgresql_where=NetworkConfig.deleted.is_(False),
)
