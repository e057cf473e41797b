"""Checklist templates and the catalog of inspectable elements."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import String, Text, Integer, ForeignKey, UniqueConstraint, DateTime, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, utcnow

if TYPE_CHECKING:
    from app.models.task import Task


class InspectionType(str, Enum):
    """Seasonal inspection type of a checklist."""

    SPRING = "spring"
    WINTER = "winter"
    PARTIAL = "partial"

    @property
    def label(self) -> str:
        return f"{self.value.title()} inspection"


class ElementCatalog(Base):
    """Inspectable building element (roof, foundation, ...)."""

    __tablename__ = "element_catalog"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<ElementCatalog(id={self.id}, name={self.name})>"


class Checklist(Base):
    """Named checklist template with an ordered list of elements."""

    __tablename__ = "checklists"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    inspection_type: Mapped[InspectionType] = mapped_column(
        SQLEnum(InspectionType, values_callable=lambda x: [e.value for e in x]),
        default=InspectionType.PARTIAL,
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    elements: Mapped[list["ChecklistElement"]] = relationship(
        "ChecklistElement",
        back_populates="checklist",
        cascade="all, delete-orphan",
    )
    tasks: Mapped[list["Task"]] = relationship("Task", back_populates="checklist")

    def __repr__(self) -> str:
        return f"<Checklist(id={self.id}, title={self.title})>"


class ChecklistElement(Base):
    """Catalog element linked into a checklist at a position."""

    __tablename__ = "checklist_elements"
    __table_args__ = (
        UniqueConstraint("checklist_id", "element_id", name="uq_checklist_elements_checklist_element"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    checklist_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("checklists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    element_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("element_catalog.id"),
        nullable=False,
    )
    order_index: Mapped[int | None] = mapped_column(Integer, nullable=True)

    checklist: Mapped["Checklist"] = relationship("Checklist", back_populates="elements")
    element: Mapped["ElementCatalog"] = relationship("ElementCatalog")

    @property
    def name(self) -> str:
        return self.element.name

    @property
    def category(self) -> str | None:
        return self.element.category
