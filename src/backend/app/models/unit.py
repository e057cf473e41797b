"""District and maintenance unit reference models."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.building import Building
    from app.models.user import User


class District(Base):
    """City district grouping maintenance units and buildings."""

    __tablename__ = "districts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)

    units: Mapped[list["MaintenanceUnit"]] = relationship("MaintenanceUnit", back_populates="district")
    buildings: Mapped[list["Building"]] = relationship("Building", back_populates="district")

    def __repr__(self) -> str:
        return f"<District(id={self.id}, name={self.name})>"


class MaintenanceUnit(Base):
    """Housing maintenance unit that owns buildings and grants inspectors access."""

    __tablename__ = "maintenance_units"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    district_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("districts.id"),
        nullable=False,
        index=True,
    )

    district: Mapped["District"] = relationship("District", back_populates="units")
    buildings: Mapped[list["Building"]] = relationship("Building", back_populates="unit")
    inspector_grants: Mapped[list["InspectorUnit"]] = relationship(
        "InspectorUnit",
        back_populates="unit",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<MaintenanceUnit(id={self.id}, name={self.name})>"


class InspectorUnit(Base):
    """Grant allowing an inspector to work on a unit's buildings."""

    __tablename__ = "inspector_units"
    __table_args__ = (
        UniqueConstraint("user_id", "unit_id", name="uq_inspector_units_user_unit"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("maintenance_units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    inspector: Mapped["User"] = relationship("User", back_populates="unit_grants")
    unit: Mapped["MaintenanceUnit"] = relationship("MaintenanceUnit", back_populates="inspector_grants")
