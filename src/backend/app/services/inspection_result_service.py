"""Inspection result recording.

Results may be written only while their task is in progress, and only for
elements of the task's own checklist. One result exists per element per
task; recording an element again overwrites it.
"""

from dataclasses import dataclass
import uuid

import structlog
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.checklist import ChecklistElement
from app.models.inspection import InspectionResult, ConditionStatus
from app.models.task import Task, TaskStatus
from app.services.checklist_catalog import ChecklistCatalog
from app.services.task_service import TaskNotFoundError

logger = structlog.get_logger()

RESULT_LOAD_OPTIONS = (
    selectinload(InspectionResult.checklist_element).selectinload(ChecklistElement.element),
)


class InspectionResultError(Exception):
    """Inspection result related errors."""
    pass


class ResultNotFoundError(InspectionResultError):
    pass


class TaskNotInProgressError(InspectionResultError):
    pass


class ElementNotInChecklistError(InspectionResultError):
    pass


@dataclass
class ResultSummary:
    """Recorded results of a task and its completion counts."""

    results: list[InspectionResult]
    total_elements: int
    completed_elements: int


class InspectionResultService:
    """Service for inspection result operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = ChecklistCatalog(db)

    async def _get_task(self, task_id: uuid.UUID) -> Task:
        result = await self.db.execute(
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task

    async def _find_result(self, task_id: uuid.UUID, element_id: uuid.UUID) -> InspectionResult | None:
        result = await self.db.execute(
            select(InspectionResult)
            .where(
                InspectionResult.task_id == task_id,
                InspectionResult.checklist_element_id == element_id,
            )
            .options(*RESULT_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert_result(
        self,
        task_id: uuid.UUID,
        element_id: uuid.UUID,
        condition_status: ConditionStatus,
        comment: str | None = None,
    ) -> InspectionResult:
        """Create or overwrite the result for one checklist element.

        Raises:
            TaskNotFoundError: If the task does not exist
            TaskNotInProgressError: If the task is not in progress
            ElementNotInChecklistError: If the element is not part of the task's checklist
        """
        task = await self._get_task(task_id)
        if task.status != TaskStatus.IN_PROGRESS:
            raise TaskNotInProgressError(
                f"Results can only be recorded while the task is {TaskStatus.IN_PROGRESS.value}"
            )
        if not await self.catalog.element_in_checklist(task.checklist_id, element_id):
            raise ElementNotInChecklistError(
                f"Checklist element {element_id} does not belong to the task's checklist"
            )

        existing = await self._find_result(task_id, element_id)
        if existing is None:
            self.db.add(InspectionResult(
                id=uuid.uuid4(),
                task_id=task_id,
                checklist_element_id=element_id,
                condition_status=condition_status,
                comment=comment,
            ))
            try:
                await self.db.commit()
            except IntegrityError:
                # Concurrent insert for the same element; overwrite it instead
                await self.db.rollback()
                existing = await self._find_result(task_id, element_id)
                if existing is None:
                    raise
                existing.condition_status = condition_status
                existing.comment = comment
                await self.db.commit()
        else:
            existing.condition_status = condition_status
            existing.comment = comment
            await self.db.commit()

        logger.info(
            "Inspection result recorded",
            task_id=str(task_id),
            element_id=str(element_id),
            condition=condition_status.value,
        )
        return await self._find_result(task_id, element_id)

    async def list_results(self, task_id: uuid.UUID) -> ResultSummary:
        """List a task's results in checklist order with completion counts."""
        task = await self._get_task(task_id)
        elements = await self.catalog.ordered_elements(task.checklist_id)
        position = {element.id: index for index, element in enumerate(elements)}

        result = await self.db.execute(
            select(InspectionResult)
            .where(InspectionResult.task_id == task_id)
            .options(*RESULT_LOAD_OPTIONS)
        )
        results = sorted(
            result.scalars().all(),
            key=lambda r: position.get(r.checklist_element_id, len(position)),
        )
        return ResultSummary(
            results=results,
            total_elements=len(elements),
            completed_elements=len(results),
        )

    async def delete_result(self, task_id: uuid.UUID, element_id: uuid.UUID) -> None:
        """Delete the result for one element.

        Raises:
            ResultNotFoundError: If no result is recorded for the element
        """
        await self._get_task(task_id)
        deleted = await self.db.execute(
            delete(InspectionResult).where(
                InspectionResult.task_id == task_id,
                InspectionResult.checklist_element_id == element_id,
            )
        )
        if deleted.rowcount == 0:
            await self.db.rollback()
            raise ResultNotFoundError(f"No result recorded for element {element_id}")
        await self.db.commit()
        logger.info("Inspection result deleted", task_id=str(task_id), element_id=str(element_id))
