"""User model for inspectors, coordinators and specialists."""

import uuid
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import String, Boolean, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.unit import InspectorUnit


class UserRole(str, Enum):
    """User role enumeration, ordered from most to least privileged."""

    SPECIALIST = "specialist"
    COORDINATOR = "coordinator"
    INSPECTOR = "inspector"

    @property
    def rank(self) -> int:
        """Lower rank means broader access."""
        return _ROLE_RANKS[self]


_ROLE_RANKS: dict[UserRole, int] = {
    UserRole.SPECIALIST: 1,
    UserRole.COORDINATOR: 2,
    UserRole.INSPECTOR: 3,
}


class User(Base, TimestampMixin):
    """User model for authentication and task assignment."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile information
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, values_callable=lambda x: [e.value for e in x]),
        default=UserRole.INSPECTOR,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    unit_grants: Mapped[list["InspectorUnit"]] = relationship(
        "InspectorUnit",
        back_populates="inspector",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"
