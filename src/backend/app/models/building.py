"""Building model for inspected residential buildings."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String, Text, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.task import Task
    from app.models.unit import District, MaintenanceUnit


class Building(Base, TimestampMixin):
    """Building owned by a maintenance unit within a district."""

    __tablename__ = "buildings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    address: Mapped[str] = mapped_column(String(500), unique=True, nullable=False, index=True)
    construction_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    district_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("districts.id"),
        nullable=False,
        index=True,
    )
    # Nullable: a building without a unit cannot receive tasks
    unit_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("maintenance_units.id"),
        nullable=True,
        index=True,
    )

    # Relationships
    district: Mapped["District"] = relationship("District", back_populates="buildings")
    unit: Mapped["MaintenanceUnit | None"] = relationship("MaintenanceUnit", back_populates="buildings")
    tasks: Mapped[list["Task"]] = relationship("Task", back_populates="building")

    def __repr__(self) -> str:
        return f"<Building(id={self.id}, address={self.address})>"
