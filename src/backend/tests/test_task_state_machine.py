"""Tests for the task state machine and its lifecycle events."""

import asyncio
import itertools
import uuid

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.testing import capture_logs

from app.models.inspection import InspectionAct
from app.models.task import Task, TaskStatus
from app.services.task_events import TaskEvent, TaskEventDispatcher, TaskLifecycleEvent
from app.services.task_service import TaskService, TaskNotFoundError
from app.services.task_state_machine import (
    TaskStateMachine,
    TransitionError,
    TransitionConflictError,
    VALID_TRANSITIONS,
    allowed_targets,
)

LEGAL_PAIRS = {
    (TaskStatus.NEW, TaskStatus.PENDING),
    (TaskStatus.NEW, TaskStatus.CANCELED),
    (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
    (TaskStatus.PENDING, TaskStatus.CANCELED),
    (TaskStatus.IN_PROGRESS, TaskStatus.ON_REVIEW),
    (TaskStatus.IN_PROGRESS, TaskStatus.CANCELED),
    (TaskStatus.ON_REVIEW, TaskStatus.APPROVED),
    (TaskStatus.ON_REVIEW, TaskStatus.FOR_REVISION),
    (TaskStatus.FOR_REVISION, TaskStatus.ON_REVIEW),
    (TaskStatus.FOR_REVISION, TaskStatus.CANCELED),
}

ALL_PAIRS = list(itertools.product(TaskStatus, TaskStatus))

FAILURES_METRIC = "inspections_act_side_effect_failures_total"


class RecordingDispatcher(TaskEventDispatcher):
    """Dispatcher that only records emitted events."""

    def __init__(self):
        super().__init__()
        self.events: list[TaskEvent] = []

    async def emit(self, bind, event):
        self.events.append(event)


class RacingStateMachine(TaskStateMachine):
    """Cancels the task from under the transition right after reading it."""

    async def _load_task(self, task_id):
        task = await super()._load_task(task_id)
        await self.db.execute(
            update(Task)
            .where(Task.id == task_id)
            .values(status=TaskStatus.CANCELED)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return task


class TestTransitionTable:
    """Tests for the static transition table."""

    def test_table_matches_legal_pairs(self):
        pairs = {(src, dst) for src, targets in VALID_TRANSITIONS.items() for dst in targets}
        assert pairs == LEGAL_PAIRS

    def test_terminal_states(self):
        assert allowed_targets(TaskStatus.APPROVED) == []
        assert allowed_targets(TaskStatus.CANCELED) == []

    def test_every_status_present(self):
        assert set(VALID_TRANSITIONS) == set(TaskStatus)


class TestTaskStateMachine:
    """Tests for TaskStateMachine."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "source,target",
        ALL_PAIRS,
        ids=[f"{s.value}->{t.value}" for s, t in ALL_PAIRS],
    )
    async def test_transition_grid(self, db_session: AsyncSession, make_task, source, target):
        """Only pairs from the table succeed; all others leave the status untouched."""
        task = await make_task(status=source)
        machine = TaskStateMachine(db_session, dispatcher=RecordingDispatcher())

        if (source, target) in LEGAL_PAIRS:
            updated = await machine.transition(task.id, target)
            assert updated.status == target
        else:
            with pytest.raises(TransitionError):
                await machine.transition(task.id, target)
            reloaded = await TaskService(db_session).get_task(task.id)
            assert reloaded.status == source

    @pytest.mark.asyncio
    async def test_transition_unknown_task(self, db_session: AsyncSession):
        machine = TaskStateMachine(db_session, dispatcher=RecordingDispatcher())
        with pytest.raises(TaskNotFoundError):
            await machine.transition(uuid.uuid4(), TaskStatus.PENDING)

    @pytest.mark.asyncio
    async def test_events_emitted_only_for_review_and_approval(self, db_session: AsyncSession, make_task):
        dispatcher = RecordingDispatcher()
        machine = TaskStateMachine(db_session, dispatcher=dispatcher)
        task = await make_task(status=TaskStatus.NEW)

        await machine.transition(task.id, TaskStatus.PENDING)
        await machine.accept(task.id)
        await machine.submit(task.id)
        await machine.transition(task.id, TaskStatus.FOR_REVISION)
        await machine.transition(task.id, TaskStatus.ON_REVIEW)
        await machine.transition(task.id, TaskStatus.APPROVED)

        assert [e.event for e in dispatcher.events] == [
            TaskLifecycleEvent.ENTERED_ON_REVIEW,
            TaskLifecycleEvent.ENTERED_ON_REVIEW,
            TaskLifecycleEvent.ENTERED_APPROVED,
        ]
        assert all(e.task_id == task.id for e in dispatcher.events)

    @pytest.mark.asyncio
    async def test_accept_requires_pending(self, db_session: AsyncSession, make_task):
        task = await make_task(status=TaskStatus.NEW)
        machine = TaskStateMachine(db_session, dispatcher=RecordingDispatcher())

        with pytest.raises(TransitionError):
            await machine.accept(task.id)

    @pytest.mark.asyncio
    async def test_submit_moves_to_review(self, db_session: AsyncSession, make_task):
        task = await make_task(status=TaskStatus.IN_PROGRESS)
        machine = TaskStateMachine(db_session, dispatcher=RecordingDispatcher())

        updated = await machine.submit(task.id)
        assert updated.status == TaskStatus.ON_REVIEW

    @pytest.mark.asyncio
    async def test_stale_status_is_a_conflict(self, db_session: AsyncSession, make_task):
        """A transition whose expected status no longer matches fails without writing."""
        task = await make_task(status=TaskStatus.PENDING)
        task_id = task.id
        machine = RacingStateMachine(db_session, dispatcher=RecordingDispatcher())

        with pytest.raises(TransitionConflictError):
            await machine.transition(task_id, TaskStatus.IN_PROGRESS)

        # The conflict rolled back the session, expiring fixture objects
        reloaded = await TaskService(db_session).get_task(task_id)
        assert reloaded.status == TaskStatus.CANCELED

    def test_available_transitions(self, db_session: AsyncSession):
        machine = TaskStateMachine(db_session, dispatcher=RecordingDispatcher())

        class _Task:
            status = TaskStatus.ON_REVIEW

        assert machine.get_available_transitions(_Task()) == [TaskStatus.APPROVED, TaskStatus.FOR_REVISION]


class TestSideEffects:
    """Tests for act side effects triggered by transitions."""

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_undo_transition(self, db_session: AsyncSession, make_task):
        dispatcher = TaskEventDispatcher()
        calls = []

        async def broken(db, event):
            calls.append(event)
            raise RuntimeError("font missing")

        dispatcher.subscribe(TaskLifecycleEvent.ENTERED_ON_REVIEW, broken)
        task = await make_task(status=TaskStatus.IN_PROGRESS)

        updated = await TaskStateMachine(db_session, dispatcher=dispatcher).submit(task.id)

        assert len(calls) == 1
        assert updated.status == TaskStatus.ON_REVIEW

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self, db_session: AsyncSession, make_task):
        dispatcher = TaskEventDispatcher()
        seen = []

        async def broken(db, event):
            raise RuntimeError("boom")

        async def healthy(db, event):
            seen.append(event.task_id)

        dispatcher.subscribe(TaskLifecycleEvent.ENTERED_ON_REVIEW, broken)
        dispatcher.subscribe(TaskLifecycleEvent.ENTERED_ON_REVIEW, healthy)
        task = await make_task(status=TaskStatus.IN_PROGRESS)

        await TaskStateMachine(db_session, dispatcher=dispatcher).submit(task.id)
        assert seen == [task.id]

    @pytest.mark.asyncio
    async def test_default_dispatcher_drafts_act(self, db_session: AsyncSession, make_task):
        task = await make_task(status=TaskStatus.IN_PROGRESS)

        await TaskStateMachine(db_session).submit(task.id)

        count = await db_session.execute(
            select(func.count()).select_from(InspectionAct).where(InspectionAct.task_id == task.id)
        )
        assert count.scalar() == 1

    @pytest.mark.asyncio
    async def test_approval_without_act_is_logged_only(self, db_session: AsyncSession, make_task):
        """Approving a task whose act was never drafted still approves the task."""
        task = await make_task(status=TaskStatus.ON_REVIEW)

        updated = await TaskStateMachine(db_session).transition(task.id, TaskStatus.APPROVED)

        assert updated.status == TaskStatus.APPROVED
        assert updated.act is None

    @pytest.mark.asyncio
    async def test_handler_failure_is_logged_and_counted(self, db_session: AsyncSession, make_task):
        dispatcher = TaskEventDispatcher()

        async def broken(db, event):
            raise RuntimeError("font missing")

        dispatcher.subscribe(TaskLifecycleEvent.ENTERED_ON_REVIEW, broken)
        task = await make_task(status=TaskStatus.IN_PROGRESS)
        labels = {"event": TaskLifecycleEvent.ENTERED_ON_REVIEW.value}
        before = REGISTRY.get_sample_value(FAILURES_METRIC, labels) or 0

        with capture_logs() as logs:
            await TaskStateMachine(db_session, dispatcher=dispatcher).submit(task.id)

        failures = [entry for entry in logs if entry["event"] == "Task event handler failed"]
        assert len(failures) == 1
        assert failures[0]["lifecycle_event"] == "entered_on_review"
        assert failures[0]["task_id"] == str(task.id)
        assert failures[0]["error"] == "font missing"
        assert REGISTRY.get_sample_value(FAILURES_METRIC, labels) == before + 1

    @pytest.mark.asyncio
    async def test_handlers_get_their_own_session(self, db_session: AsyncSession, make_task):
        dispatcher = TaskEventDispatcher()
        sessions = []

        async def record_session(db, event):
            sessions.append(db)

        dispatcher.subscribe(TaskLifecycleEvent.ENTERED_ON_REVIEW, record_session)
        task = await make_task(status=TaskStatus.IN_PROGRESS)

        await TaskStateMachine(db_session, dispatcher=dispatcher).submit(task.id)

        assert len(sessions) == 1
        assert sessions[0] is not db_session

    @pytest.mark.asyncio
    async def test_cancelled_caller_lets_dispatch_finish(self, db_session: AsyncSession, make_task):
        """Cancelling the transition's caller neither aborts the handler nor shares its session."""
        dispatcher = TaskEventDispatcher()
        started = asyncio.Event()
        release = asyncio.Event()
        finished = []

        async def slow(db, event):
            started.set()
            await release.wait()
            result = await db.execute(select(Task.status).where(Task.id == event.task_id))
            finished.append(result.scalar_one())

        dispatcher.subscribe(TaskLifecycleEvent.ENTERED_ON_REVIEW, slow)
        task = await make_task(status=TaskStatus.IN_PROGRESS)
        task_id = task.id

        caller = asyncio.create_task(TaskStateMachine(db_session, dispatcher=dispatcher).submit(task_id))
        await started.wait()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await db_session.close()
        release.set()
        await dispatcher.wait_idle()

        assert finished == [TaskStatus.ON_REVIEW]
