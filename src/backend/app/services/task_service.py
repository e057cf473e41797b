"""Task service for inspection assignment management."""

from datetime import datetime
import uuid

import structlog
from sqlalchemy import select, and_, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.building import Building
from app.models.checklist import Checklist
from app.models.inspection import InspectionResult
from app.models.task import Task, TaskStatus, TaskPriority
from app.models.unit import InspectorUnit
from app.models.user import User
from app.services.act_storage import ActStorageError, get_act_storage

logger = structlog.get_logger()

# Relationships read when presenting a task
TASK_LOAD_OPTIONS = (
    selectinload(Task.building).selectinload(Building.district),
    selectinload(Task.building).selectinload(Building.unit),
    selectinload(Task.checklist),
    selectinload(Task.inspector),
    selectinload(Task.act),
)


class TaskError(Exception):
    """Task related errors."""
    pass


class TaskNotFoundError(TaskError):
    """Task does not exist."""
    pass


class InvalidReferenceError(TaskError):
    """A referenced building, checklist or inspector does not exist."""
    pass


class InspectorNotAssignedError(TaskError):
    """Inspector has no access to the building's maintenance unit."""
    pass


class TaskService:
    """Service for task management operations."""

    def __init__(self, db: AsyncSession):
        """Initialize task service with database session."""
        self.db = db

    async def create_task(
        self,
        building_id: uuid.UUID,
        checklist_id: uuid.UUID,
        inspector_id: uuid.UUID,
        title: str,
        scheduled_date: datetime,
        priority: TaskPriority = TaskPriority.NORMAL,
        description: str | None = None,
    ) -> Task:
        """Create a new task in status New.

        Raises:
            InvalidReferenceError: If the building, checklist or inspector is missing
            InspectorNotAssignedError: If the building has no unit or the
                inspector is not granted access to it
        """
        building = await self.db.get(Building, building_id)
        if building is None:
            raise InvalidReferenceError(f"Building {building_id} not found")
        if await self.db.get(Checklist, checklist_id) is None:
            raise InvalidReferenceError(f"Checklist {checklist_id} not found")
        if await self.db.get(User, inspector_id) is None:
            raise InvalidReferenceError(f"Inspector {inspector_id} not found")

        if building.unit_id is None:
            raise InspectorNotAssignedError("Building has no maintenance unit assigned")
        if not await self._has_unit_grant(inspector_id, building.unit_id):
            raise InspectorNotAssignedError("Inspector is not assigned to the building's maintenance unit")

        task = Task(
            id=uuid.uuid4(),
            building_id=building_id,
            checklist_id=checklist_id,
            inspector_id=inspector_id,
            title=title,
            description=description,
            priority=priority,
            status=TaskStatus.NEW,
            scheduled_date=scheduled_date,
        )
        self.db.add(task)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Task create rejected by constraints", error=str(e.orig))
            raise InvalidReferenceError("Referenced building, checklist or inspector does not exist")

        logger.info(
            "Task created",
            task_id=str(task.id),
            building_id=str(building_id),
            inspector_id=str(inspector_id),
        )
        return await self.require_task(task.id)

    async def _has_unit_grant(self, inspector_id: uuid.UUID, unit_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(InspectorUnit.id).where(
                and_(
                    InspectorUnit.user_id == inspector_id,
                    InspectorUnit.unit_id == unit_id,
                )
            )
        )
        return result.first() is not None

    async def get_task(self, task_id: uuid.UUID) -> Task | None:
        """Get task by ID with building, checklist, inspector and act loaded."""
        result = await self.db.execute(
            select(Task)
            .where(Task.id == task_id)
            .options(*TASK_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_task(self, task_id: uuid.UUID) -> Task:
        task = await self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task

    async def list_tasks(
        self,
        inspector_id: uuid.UUID | None = None,
        status: TaskStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Task]:
        """List tasks, newest first, with optional filters."""
        query = select(Task).options(*TASK_LOAD_OPTIONS)

        conditions = []
        if inspector_id:
            conditions.append(Task.inspector_id == inspector_id)
        if status:
            conditions.append(Task.status == status)
        if conditions:
            query = query.where(and_(*conditions))

        query = query.order_by(Task.created_at.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def reassign_inspector(self, task_id: uuid.UUID, inspector_id: uuid.UUID) -> Task:
        """Assign another inspector without changing the task status."""
        task = await self.db.get(Task, task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        if await self.db.get(User, inspector_id) is None:
            raise InvalidReferenceError(f"Inspector {inspector_id} not found")

        previous = task.inspector_id
        task.inspector_id = inspector_id
        await self.db.commit()

        logger.info(
            "Task inspector reassigned",
            task_id=str(task_id),
            from_inspector=str(previous),
            to_inspector=str(inspector_id),
        )
        return await self.require_task(task_id)

    async def delete_task(self, task_id: uuid.UUID) -> None:
        """Hard delete a task with its results and act."""
        task = await self.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")

        document_path = task.act.document_path if task.act else None

        await self.db.execute(delete(InspectionResult).where(InspectionResult.task_id == task_id))
        await self.db.delete(task)
        await self.db.commit()
        logger.info("Task deleted", task_id=str(task_id))

        if document_path:
            try:
                get_act_storage().delete_act(document_path)
            except (ActStorageError, OSError) as e:
                logger.warning("Failed to remove act document", task_id=str(task_id), error=str(e))
