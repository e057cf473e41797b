"""Building Inspections Services Module."""

from app.services.act_storage import ActStorageService, ActStorageError, get_act_storage
from app.services.act_pdf import ActPdfRenderer, ActRenderError, get_act_renderer
from app.services.checklist_catalog import ChecklistCatalog
from app.services.task_service import (
    TaskService,
    TaskError,
    TaskNotFoundError,
    InvalidReferenceError,
    InspectorNotAssignedError,
)
from app.services.task_state_machine import TaskStateMachine, TransitionError, TransitionConflictError
from app.services.task_events import TaskEventDispatcher, TaskLifecycleEvent, get_event_dispatcher
from app.services.inspection_result_service import (
    InspectionResultService,
    InspectionResultError,
    ResultNotFoundError,
    TaskNotInProgressError,
    ElementNotInChecklistError,
)
from app.services.inspection_act_service import InspectionActService, InspectionActError, ActNotFoundError

__all__ = [
    "ActStorageService",
    "ActStorageError",
    "get_act_storage",
    "ActPdfRenderer",
    "ActRenderError",
    "get_act_renderer",
    "ChecklistCatalog",
    "TaskService",
    "TaskError",
    "TaskNotFoundError",
    "InvalidReferenceError",
    "InspectorNotAssignedError",
    "TaskStateMachine",
    "TransitionError",
    "TransitionConflictError",
    "TaskEventDispatcher",
    "TaskLifecycleEvent",
    "get_event_dispatcher",
    "InspectionResultService",
    "InspectionResultError",
    "ResultNotFoundError",
    "TaskNotInProgressError",
    "ElementNotInChecklistError",
    "InspectionActService",
    "InspectionActError",
    "ActNotFoundError",
]
