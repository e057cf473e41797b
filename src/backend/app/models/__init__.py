"""Building Inspections Database Models."""

from app.models.base import Base, TimestampMixin
from app.models.user import User, UserRole
from app.models.unit import District, MaintenanceUnit, InspectorUnit
from app.models.building import Building
from app.models.checklist import Checklist, ChecklistElement, ElementCatalog, InspectionType
from app.models.task import Task, TaskStatus, TaskPriority
from app.models.inspection import InspectionResult, InspectionAct, ConditionStatus, ActStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "UserRole",
    "District",
    "MaintenanceUnit",
    "InspectorUnit",
    "Building",
    "Checklist",
    "ChecklistElement",
    "ElementCatalog",
    "InspectionType",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "InspectionResult",
    "InspectionAct",
    "ConditionStatus",
    "ActStatus",
]
