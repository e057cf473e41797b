"""Inspection act lifecycle and document cache.

An act is drafted the first time its task enters review, refreshed on every
later review round, and finalized on approval. Each change to the conclusion
or approval fields bumps ``generation``; the stored document is reused only
while it was rendered from the current generation and is still readable.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.metrics import observe_act_render, record_side_effect_failure
from app.models.base import utcnow
from app.models.inspection import InspectionAct, ActStatus
from app.models.task import Task
from app.services.act_pdf import ActPdfRenderer, ActRenderError, get_act_renderer
from app.services.act_storage import ActStorageService, ActStorageError, get_act_storage
from app.services.inspection_result_service import InspectionResultService
from app.services.task_events import TaskEvent, TaskEventDispatcher, TaskLifecycleEvent
from app.services.task_service import TaskNotFoundError, TaskService

logger = structlog.get_logger()

DEFAULT_DRAFT_CONCLUSION = "Inspection completed. Awaiting coordinator review."
APPROVAL_CONCLUSION = "Inspection act approved by the coordinator."


class InspectionActError(Exception):
    """Inspection act related errors."""
    pass


class ActNotFoundError(InspectionActError):
    pass


@dataclass
class ActDocument:
    """A rendered act document ready to be served."""

    content: bytes
    filename: str
    from_cache: bool


def make_act_number(task_id: uuid.UUID, created_at: datetime) -> str:
    """Act number from its creation date and task id."""
    return f"ACT-{created_at.strftime('%Y%m%d')}-{task_id.hex[:8].upper()}"


class InspectionActService:
    """Service for inspection act operations."""

    def __init__(
        self,
        db: AsyncSession,
        storage: ActStorageService | None = None,
        renderer: ActPdfRenderer | None = None,
    ):
        self.db = db
        self._storage = storage
        self._renderer = renderer

    @property
    def storage(self) -> ActStorageService:
        if self._storage is None:
            self._storage = get_act_storage()
        return self._storage

    @property
    def renderer(self) -> ActPdfRenderer:
        if self._renderer is None:
            self._renderer = get_act_renderer()
        return self._renderer

    async def get_act(self, task_id: uuid.UUID) -> InspectionAct | None:
        result = await self.db.execute(
            select(InspectionAct)
            .where(InspectionAct.task_id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_act(self, task_id: uuid.UUID) -> InspectionAct:
        act = await self.get_act(task_id)
        if act is None:
            raise ActNotFoundError(f"Inspection act for task {task_id} not found")
        return act

    async def create_or_refresh_draft(self, task_id: uuid.UUID, conclusion: str) -> InspectionAct:
        """Create the act in status drafted, or overwrite the existing conclusion.

        No document is rendered here; an existing document becomes stale and
        is rebuilt on the next download.
        """
        act = await self.get_act(task_id)
        if act is None:
            if await self.db.get(Task, task_id) is None:
                raise TaskNotFoundError(f"Task {task_id} not found")

            created_at = utcnow()
            act = InspectionAct(
                id=uuid.uuid4(),
                task_id=task_id,
                act_number=make_act_number(task_id, created_at),
                status=ActStatus.DRAFTED.value,
                conclusion=conclusion,
                created_at=created_at,
                generation=1,
            )
            self.db.add(act)
            try:
                await self.db.commit()
                logger.info("Inspection act drafted", task_id=str(task_id), act_number=act.act_number)
                return act
            except IntegrityError:
                # Drafted concurrently; refresh that one
                await self.db.rollback()
                act = await self.require_act(task_id)

        act.conclusion = conclusion
        act.generation += 1
        await self.db.commit()
        logger.info(
            "Inspection act draft refreshed",
            task_id=str(task_id),
            act_number=act.act_number,
            generation=act.generation,
        )
        return act

    async def approve(self, task_id: uuid.UUID) -> InspectionAct:
        """Finalize the act and render its document.

        Approval fields are committed first and stay authoritative. A render
        or storage failure afterwards is logged; the download path rebuilds
        the document later.

        Raises:
            ActNotFoundError: If the task has no act
        """
        act = await self.require_act(task_id)

        if not act.is_approved:
            act.status = ActStatus.APPROVED.value
            act.approved_at = utcnow()
        act.conclusion = APPROVAL_CONCLUSION
        act.generation += 1
        await self.db.commit()
        logger.info("Inspection act approved", task_id=str(task_id), act_number=act.act_number)

        try:
            await self._render_and_store(act)
        except (ActRenderError, ActStorageError, SQLAlchemyError) as e:
            logger.error(
                "Approved act document not rendered",
                task_id=str(task_id),
                error=str(e),
            )
            record_side_effect_failure("approve_render")
            await self.db.rollback()
            act = await self.require_act(task_id)
        return act

    async def get_or_render_document(self, task_id: uuid.UUID) -> ActDocument:
        """Return the stored document when current, otherwise render a new one.

        Raises:
            ActNotFoundError: If the task has no act
            ActRenderError: If the document cannot be rendered
            ActStorageError: If the document cannot be stored
        """
        act = await self.require_act(task_id)

        if act.document_is_current:
            content = self.storage.read_act(act.document_path)
            if content is not None:
                return ActDocument(
                    content=content,
                    filename=self.storage.filename_of(act.document_path),
                    from_cache=True,
                )
            logger.warning("Stored act document unreadable", task_id=str(task_id), path=act.document_path)

        content = await self._render_and_store(act)
        return ActDocument(
            content=content,
            filename=self.storage.filename_of(act.document_path),
            from_cache=False,
        )

    async def _render_and_store(self, act: InspectionAct) -> bytes:
        """Render the act from current data, store it and repoint the act."""
        # Results first: listing them re-selects the task without its graph,
        # and the renderer thread cannot lazy-load
        summary = await InspectionResultService(self.db).list_results(act.task_id)
        task = await TaskService(self.db).get_task(act.task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {act.task_id} not found")
        generation = act.generation

        started = time.perf_counter()
        content = await asyncio.to_thread(self.renderer.render, act, task, summary.results)
        observe_act_render(time.perf_counter() - started)

        new_path = self.storage.save_act(act.task_id, content)
        old_path = act.document_path
        act.document_path = new_path
        act.document_generation = generation
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            self.storage.delete_act(new_path)
            raise

        logger.info(
            "Inspection act rendered",
            task_id=str(act.task_id),
            generation=generation,
            size=len(content),
        )

        if old_path and old_path != new_path:
            try:
                self.storage.delete_act(old_path)
            except OSError as e:
                logger.warning("Failed to remove previous act document", path=old_path, error=str(e))
        return content


async def draft_on_review(db: AsyncSession, event: TaskEvent) -> None:
    await InspectionActService(db).create_or_refresh_draft(event.task_id, DEFAULT_DRAFT_CONCLUSION)


async def approve_on_approval(db: AsyncSession, event: TaskEvent) -> None:
    await InspectionActService(db).approve(event.task_id)


def register_act_handlers(dispatcher: TaskEventDispatcher) -> None:
    """Subscribe the act generator to task lifecycle events."""
    dispatcher.subscribe(TaskLifecycleEvent.ENTERED_ON_REVIEW, draft_on_review)
    dispatcher.subscribe(TaskLifecycleEvent.ENTERED_APPROVED, approve_on_approval)
