"""Task State Machine with validated transitions.

This module implements the inspection task lifecycle. A transition is
persisted with a conditional update on the expected current status, so two
concurrent requests cannot both move a task out of the same state. Once the
new status is committed, a lifecycle event is emitted for the inspection act
generator.
"""

import uuid

import structlog
from sqlalchemy import update, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.metrics import record_transition
from app.models.base import utcnow
from app.models.task import Task, TaskStatus
from app.services.task_events import (
    TaskEvent,
    TaskEventDispatcher,
    TaskLifecycleEvent,
    get_event_dispatcher,
)
from app.services.task_service import TaskNotFoundError, TaskService

logger = structlog.get_logger()


class TransitionError(Exception):
    """Raised when a state transition is invalid."""

    pass


class TransitionConflictError(TransitionError):
    """Raised when the task changed status while the transition was applied."""

    pass


# Valid state transitions: from_state -> [to_states]
VALID_TRANSITIONS: dict[TaskStatus, list[TaskStatus]] = {
    TaskStatus.NEW: [
        TaskStatus.PENDING,
        TaskStatus.CANCELED,
    ],
    TaskStatus.PENDING: [
        TaskStatus.IN_PROGRESS,  # Accepted by the inspector
        TaskStatus.CANCELED,
    ],
    TaskStatus.IN_PROGRESS: [
        TaskStatus.ON_REVIEW,  # Submitted
        TaskStatus.CANCELED,
    ],
    TaskStatus.ON_REVIEW: [
        TaskStatus.APPROVED,
        TaskStatus.FOR_REVISION,
    ],
    TaskStatus.FOR_REVISION: [
        TaskStatus.ON_REVIEW,
        TaskStatus.CANCELED,
    ],
    TaskStatus.APPROVED: [],  # Terminal state
    TaskStatus.CANCELED: [],  # Terminal state
}

# Events emitted after entering a state
TRANSITION_EVENTS: dict[TaskStatus, TaskLifecycleEvent] = {
    TaskStatus.ON_REVIEW: TaskLifecycleEvent.ENTERED_ON_REVIEW,
    TaskStatus.APPROVED: TaskLifecycleEvent.ENTERED_APPROVED,
}


def allowed_targets(status: TaskStatus) -> list[TaskStatus]:
    return list(VALID_TRANSITIONS.get(status, []))


class TaskStateMachine:
    """State machine for task lifecycle management."""

    def __init__(self, db: AsyncSession, dispatcher: TaskEventDispatcher | None = None):
        """Initialize state machine with database session and event dispatcher."""
        self.db = db
        self.dispatcher = dispatcher if dispatcher is not None else get_event_dispatcher()

    def can_transition(
        self,
        task: Task,
        target_status: TaskStatus,
    ) -> tuple[bool, str]:
        """Check if a transition is valid.

        Args:
            task: The task to check
            target_status: The desired target status

        Returns:
            Tuple of (is_valid, error_message)
        """
        current_status = task.status
        if target_status not in VALID_TRANSITIONS.get(current_status, []):
            return False, f"Cannot transition from {current_status.value} to {target_status.value}"
        return True, ""

    async def _load_task(self, task_id: uuid.UUID) -> Task:
        result = await self.db.execute(
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")
        return task

    async def transition(
        self,
        task_id: uuid.UUID,
        target_status: TaskStatus,
    ) -> Task:
        """Perform a state transition and emit its lifecycle event.

        Args:
            task_id: The task to transition
            target_status: The desired target status

        Returns:
            The updated task

        Raises:
            TaskNotFoundError: If the task does not exist
            TransitionError: If the transition is invalid
            TransitionConflictError: If the task changed status concurrently
        """
        task = await self._load_task(task_id)
        current_status = task.status
        is_valid, error = self.can_transition(task, target_status)
        if not is_valid:
            raise TransitionError(error)

        updated = await self.db.execute(
            update(Task)
            .where(Task.id == task_id, Task.status == current_status)
            .values(status=target_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount != 1:
            await self.db.rollback()
            logger.warning(
                "Task status transition lost a race",
                task_id=str(task_id),
                from_status=current_status.value,
                to_status=target_status.value,
            )
            raise TransitionConflictError(
                f"Task {task_id} is no longer in status {current_status.value}"
            )
        await self.db.commit()

        record_transition(current_status.value, target_status.value)
        logger.info(
            "Task status transitioned",
            task_id=str(task_id),
            from_status=current_status.value,
            to_status=target_status.value,
        )

        event_type = TRANSITION_EVENTS.get(target_status)
        if event_type is not None:
            await self.dispatcher.emit(self.db.bind, TaskEvent(event=event_type, task_id=task_id))

        return await TaskService(self.db).require_task(task_id)

    async def accept(self, task_id: uuid.UUID) -> Task:
        """Inspector accepts a pending task."""
        return await self.transition(task_id, TaskStatus.IN_PROGRESS)

    async def submit(self, task_id: uuid.UUID) -> Task:
        """Inspector submits recorded results for review."""
        return await self.transition(task_id, TaskStatus.ON_REVIEW)

    def get_available_transitions(self, task: Task) -> list[TaskStatus]:
        """Get list of valid transitions from current state."""
        return allowed_targets(task.status)
