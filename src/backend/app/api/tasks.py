"""Inspection task management API endpoints (coordinator)."""

import uuid
from datetime import datetime

import structlog
from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from app.core.deps import DbSession, Coordinator, Specialist
from app.models.inspection import ConditionStatus, InspectionResult
from app.models.task import Task, TaskStatus, TaskPriority
from app.services.act_pdf import ActRenderError
from app.services.act_storage import ActStorageError
from app.services.inspection_act_service import ActNotFoundError
from app.services.inspection_result_service import (
    ResultNotFoundError,
    TaskNotInProgressError,
    ElementNotInChecklistError,
)
from app.services.task_service import (
    TaskService,
    TaskNotFoundError,
    InvalidReferenceError,
    InspectorNotAssignedError,
)
from app.services.task_state_machine import TaskStateMachine, TransitionError, allowed_targets

logger = structlog.get_logger()

router = APIRouter()


class TaskCreateRequest(BaseModel):
    """Schema for creating a new task."""

    building_id: uuid.UUID
    checklist_id: uuid.UUID
    inspector_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority = TaskPriority.NORMAL
    scheduled_date: datetime


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskAssignRequest(BaseModel):
    inspector_id: uuid.UUID


class ActSummary(BaseModel):
    """Inspection act state shown with a task."""

    act_number: str
    status: str
    created_at: datetime
    approved_at: datetime | None


class TaskResponse(BaseModel):
    """Schema for task response."""

    id: str
    title: str
    description: str | None
    priority: TaskPriority
    status: TaskStatus
    scheduled_date: datetime
    created_at: datetime
    updated_at: datetime
    building_id: str
    building_address: str | None
    checklist_id: str
    checklist_title: str | None
    inspection_type: str | None
    inspector_id: str
    inspector_name: str | None
    inspector_email: str | None


class TaskDetailResponse(TaskResponse):
    """Task with its allowed next statuses and act state."""

    available_transitions: list[TaskStatus] = []
    act: ActSummary | None = None


class ResultResponse(BaseModel):
    """Schema for inspection result response."""

    id: str
    task_id: str
    checklist_element_id: str
    element_name: str
    element_category: str | None
    condition_status: ConditionStatus
    comment: str | None
    created_at: datetime
    updated_at: datetime


def task_to_response(task: Task) -> TaskResponse:
    """Convert a task model to response."""
    return TaskResponse(
        id=str(task.id),
        title=task.title,
        description=task.description,
        priority=task.priority,
        status=task.status,
        scheduled_date=task.scheduled_date,
        created_at=task.created_at,
        updated_at=task.updated_at,
        building_id=str(task.building_id),
        building_address=task.building.address if task.building else None,
        checklist_id=str(task.checklist_id),
        checklist_title=task.checklist.title if task.checklist else None,
        inspection_type=task.checklist.inspection_type.value if task.checklist else None,
        inspector_id=str(task.inspector_id),
        inspector_name=task.inspector.full_name if task.inspector else None,
        inspector_email=task.inspector.email if task.inspector else None,
    )


def task_to_detail(task: Task) -> TaskDetailResponse:
    """Convert a task model to detail response."""
    act = None
    if task.act is not None:
        act = ActSummary(
            act_number=task.act.act_number,
            status=task.act.status,
            created_at=task.act.created_at,
            approved_at=task.act.approved_at,
        )
    return TaskDetailResponse(
        **task_to_response(task).model_dump(),
        available_transitions=allowed_targets(task.status),
        act=act,
    )


def result_to_response(result: InspectionResult) -> ResultResponse:
    """Convert an inspection result model to response."""
    return ResultResponse(
        id=str(result.id),
        task_id=str(result.task_id),
        checklist_element_id=str(result.checklist_element_id),
        element_name=result.checklist_element.name,
        element_category=result.checklist_element.category,
        condition_status=result.condition_status,
        comment=result.comment,
        created_at=result.created_at,
        updated_at=result.updated_at,
    )


def parse_task_id(task_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(task_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid task_id format",
        )


def domain_error_to_http(error: Exception) -> HTTPException:
    """Map a service error to the HTTP error returned to the client."""
    if isinstance(error, (TaskNotFoundError, ActNotFoundError, ResultNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, TransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, (
        InvalidReferenceError,
        InspectorNotAssignedError,
        TaskNotInProgressError,
        ElementNotInChecklistError,
    )):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, (ActRenderError, ActStorageError)):
        logger.error("Inspection act document unavailable", error=str(error))
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate inspection act document",
        )
    raise error


@router.post("", response_model=TaskDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreateRequest,
    db: DbSession,
    current_user: Coordinator,
) -> TaskDetailResponse:
    """Create a new inspection task."""
    service = TaskService(db)
    try:
        task = await service.create_task(
            building_id=data.building_id,
            checklist_id=data.checklist_id,
            inspector_id=data.inspector_id,
            title=data.title,
            scheduled_date=data.scheduled_date,
            priority=data.priority,
            description=data.description,
        )
    except (InvalidReferenceError, InspectorNotAssignedError) as e:
        raise domain_error_to_http(e)

    logger.info("Task created via API", task_id=str(task.id), created_by=str(current_user.id))
    return task_to_detail(task)


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    db: DbSession,
    current_user: Coordinator,
    status_filter: TaskStatus | None = Query(None, alias="status"),
    inspector_id: uuid.UUID | None = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[TaskResponse]:
    """List tasks, newest first."""
    tasks = await TaskService(db).list_tasks(
        inspector_id=inspector_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return [task_to_response(t) for t in tasks]


@router.get("/{task_id}", response_model=TaskDetailResponse)
async def get_task(
    task_id: str,
    db: DbSession,
    current_user: Coordinator,
) -> TaskDetailResponse:
    """Get a task by ID."""
    task = await TaskService(db).get_task(parse_task_id(task_id))
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found",
        )
    return task_to_detail(task)


@router.put("/{task_id}/status", response_model=TaskDetailResponse)
async def update_task_status(
    task_id: str,
    data: TaskStatusUpdate,
    db: DbSession,
    current_user: Coordinator,
) -> TaskDetailResponse:
    """Move a task to another status."""
    try:
        task = await TaskStateMachine(db).transition(parse_task_id(task_id), data.status)
    except (TaskNotFoundError, TransitionError) as e:
        raise domain_error_to_http(e)
    return task_to_detail(task)


@router.put("/{task_id}/assign", response_model=TaskDetailResponse)
async def assign_inspector(
    task_id: str,
    data: TaskAssignRequest,
    db: DbSession,
    current_user: Coordinator,
) -> TaskDetailResponse:
    """Assign another inspector to a task."""
    try:
        task = await TaskService(db).reassign_inspector(parse_task_id(task_id), data.inspector_id)
    except (TaskNotFoundError, InvalidReferenceError) as e:
        raise domain_error_to_http(e)
    return task_to_detail(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    db: DbSession,
    current_user: Specialist,
) -> Response:
    """Delete a task with its results and act."""
    try:
        await TaskService(db).delete_task(parse_task_id(task_id))
    except TaskNotFoundError as e:
        raise domain_error_to_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
