"""
Declarative base shared by the registry models.

Constraint and index names follow a fixed convention: Postgres and MySQL report
them on violations, and the fault mapper reads the business key (serial, ip,
device_id) out of them.
"""

from sqlalchemy import Boolean, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

REGISTRY_NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=REGISTRY_NAMING_CONVENTION)


class SoftDeleteMixin:
    """
    Adds the `deleted` flag. Rows are never removed; every repository read
    filters on `deleted IS false`, and the partial unique indexes only cover
    active rows.
    """

    deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )
