"""Inspector-facing task API endpoints.

Inspectors accept their tasks, record a condition result per checklist
element, submit the task for review and download the inspection act.
"""

import uuid

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel

from app.api.tasks import (
    ResultResponse,
    TaskDetailResponse,
    TaskResponse,
    domain_error_to_http,
    parse_task_id,
    result_to_response,
    task_to_detail,
    task_to_response,
)
from app.core.deps import DbSession, Inspector
from app.models.inspection import ConditionStatus
from app.models.task import TaskStatus
from app.services.act_pdf import ActRenderError
from app.services.act_storage import ActStorageError
from app.services.inspection_act_service import InspectionActService, ActNotFoundError
from app.services.inspection_result_service import (
    InspectionResultService,
    InspectionResultError,
)
from app.services.task_service import TaskService, TaskNotFoundError
from app.services.task_state_machine import TaskStateMachine, TransitionError

router = APIRouter()


class ResultUpsertRequest(BaseModel):
    """Schema for recording an element's condition."""

    checklist_element_id: uuid.UUID
    condition_status: ConditionStatus
    comment: str | None = None


class ResultListResponse(BaseModel):
    """Recorded results with completion counts."""

    results: list[ResultResponse]
    total_elements: int
    completed_elements: int


@router.get("", response_model=list[TaskResponse])
async def list_my_tasks(
    db: DbSession,
    current_user: Inspector,
    status_filter: TaskStatus | None = Query(None, alias="status"),
) -> list[TaskResponse]:
    """List tasks assigned to the current user."""
    tasks = await TaskService(db).list_tasks(inspector_id=current_user.id, status=status_filter)
    return [task_to_response(t) for t in tasks]


@router.get("/{task_id}", response_model=TaskDetailResponse)
async def get_my_task(
    task_id: str,
    db: DbSession,
    current_user: Inspector,
) -> TaskDetailResponse:
    task = await TaskService(db).get_task(parse_task_id(task_id))
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found",
        )
    return task_to_detail(task)


@router.post("/{task_id}/accept", response_model=TaskDetailResponse)
async def accept_task(
    task_id: str,
    db: DbSession,
    current_user: Inspector,
) -> TaskDetailResponse:
    """Accept a pending task and start the inspection."""
    try:
        task = await TaskStateMachine(db).accept(parse_task_id(task_id))
    except (TaskNotFoundError, TransitionError) as e:
        raise domain_error_to_http(e)
    return task_to_detail(task)


@router.post("/{task_id}/submit", response_model=TaskDetailResponse)
async def submit_task(
    task_id: str,
    db: DbSession,
    current_user: Inspector,
) -> TaskDetailResponse:
    """Submit an inspection for coordinator review."""
    try:
        task = await TaskStateMachine(db).submit(parse_task_id(task_id))
    except (TaskNotFoundError, TransitionError) as e:
        raise domain_error_to_http(e)
    return task_to_detail(task)


@router.post("/{task_id}/results", response_model=ResultResponse)
async def upsert_result(
    task_id: str,
    data: ResultUpsertRequest,
    db: DbSession,
    current_user: Inspector,
) -> ResultResponse:
    """Record or overwrite the condition of one checklist element."""
    try:
        result = await InspectionResultService(db).upsert_result(
            task_id=parse_task_id(task_id),
            element_id=data.checklist_element_id,
            condition_status=data.condition_status,
            comment=data.comment,
        )
    except (TaskNotFoundError, InspectionResultError) as e:
        raise domain_error_to_http(e)
    return result_to_response(result)


@router.get("/{task_id}/results", response_model=ResultListResponse)
async def list_results(
    task_id: str,
    db: DbSession,
    current_user: Inspector,
) -> ResultListResponse:
    """List recorded results in checklist order."""
    try:
        summary = await InspectionResultService(db).list_results(parse_task_id(task_id))
    except TaskNotFoundError as e:
        raise domain_error_to_http(e)
    return ResultListResponse(
        results=[result_to_response(r) for r in summary.results],
        total_elements=summary.total_elements,
        completed_elements=summary.completed_elements,
    )


@router.delete("/{task_id}/results/{element_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_result(
    task_id: str,
    element_id: uuid.UUID,
    db: DbSession,
    current_user: Inspector,
) -> Response:
    try:
        await InspectionResultService(db).delete_result(parse_task_id(task_id), element_id)
    except (TaskNotFoundError, InspectionResultError) as e:
        raise domain_error_to_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{task_id}/act")
async def download_act(
    task_id: str,
    db: DbSession,
    current_user: Inspector,
) -> Response:
    """Download the inspection act document, rendering it if needed."""
    try:
        document = await InspectionActService(db).get_or_render_document(parse_task_id(task_id))
    except (TaskNotFoundError, ActNotFoundError, ActRenderError, ActStorageError) as e:
        raise domain_error_to_http(e)
    return Response(
        content=document.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )
