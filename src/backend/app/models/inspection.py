"""Inspection result and inspection act models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from app.models.checklist import ChecklistElement
    from app.models.task import Task


class ConditionStatus(str, Enum):
    """Condition assessed for a checklist element."""

    SOUND = "sound"
    SATISFACTORY = "satisfactory"
    UNSATISFACTORY = "unsatisfactory"
    EMERGENCY = "emergency"

    @property
    def label(self) -> str:
        return self.value.title()


class ActStatus(str, Enum):
    """Inspection act lifecycle label."""

    DRAFTED = "drafted"
    APPROVED = "approved"


class InspectionResult(Base, TimestampMixin):
    """Inspector's assessment of one checklist element within one task."""

    __tablename__ = "inspection_results"
    __table_args__ = (
        UniqueConstraint("task_id", "checklist_element_id", name="uq_inspection_results_task_element"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    checklist_element_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("checklist_elements.id", ondelete="CASCADE"),
        nullable=False,
    )
    condition_status: Mapped[ConditionStatus] = mapped_column(
        SQLEnum(ConditionStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    task: Mapped["Task"] = relationship("Task", back_populates="results")
    checklist_element: Mapped["ChecklistElement"] = relationship("ChecklistElement")

    def __repr__(self) -> str:
        return (
            f"<InspectionResult(task_id={self.task_id}, "
            f"element_id={self.checklist_element_id}, status={self.condition_status.value})>"
        )


class InspectionAct(Base):
    """Durable record of a task's inspection outcome and its rendered document.

    ``generation`` is bumped whenever the conclusion or approval fields change;
    ``document_generation`` records which generation the stored document was
    rendered from. The document is current only when both match.
    """

    __tablename__ = "inspection_acts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    act_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default=ActStatus.DRAFTED.value, nullable=False)
    conclusion: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Render cache
    document_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    generation: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    document_generation: Mapped[int | None] = mapped_column(Integer, nullable=True)

    task: Mapped["Task"] = relationship("Task", back_populates="act")

    @property
    def is_approved(self) -> bool:
        return self.status == ActStatus.APPROVED.value

    @property
    def document_is_current(self) -> bool:
        return self.document_path is not None and self.document_generation == self.generation

    def __repr__(self) -> str:
        return f"<InspectionAct(task_id={self.task_id}, status={self.status})>"
