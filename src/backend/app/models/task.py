"""Inspection task model."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import String, Text, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.building import Building
    from app.models.checklist import Checklist
    from app.models.inspection import InspectionAct, InspectionResult
    from app.models.user import User


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    NEW = "New"
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    ON_REVIEW = "OnReview"
    FOR_REVISION = "ForRevision"
    APPROVED = "Approved"  # Terminal
    CANCELED = "Canceled"  # Terminal


class TaskPriority(str, Enum):
    """Task priority."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class Task(Base, TimestampMixin):
    """A building inspection assignment."""

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    building_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("buildings.id"),
        nullable=False,
        index=True,
    )
    checklist_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("checklists.id"),
        nullable=False,
        index=True,
    )
    inspector_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[TaskPriority] = mapped_column(
        SQLEnum(TaskPriority, values_callable=lambda x: [e.value for e in x]),
        default=TaskPriority.NORMAL,
        nullable=False,
    )
    status: Mapped[TaskStatus] = mapped_column(
        SQLEnum(TaskStatus, values_callable=lambda x: [e.value for e in x]),
        default=TaskStatus.NEW,
        nullable=False,
        index=True,
    )
    scheduled_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    building: Mapped["Building"] = relationship("Building", back_populates="tasks")
    checklist: Mapped["Checklist"] = relationship("Checklist", back_populates="tasks")
    inspector: Mapped["User"] = relationship("User")
    results: Mapped[list["InspectionResult"]] = relationship(
        "InspectionResult",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    act: Mapped["InspectionAct | None"] = relationship(
        "InspectionAct",
        back_populates="task",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, status={self.status.value})>"
