"""Task lifecycle events and their best-effort dispatch.

The state machine emits an event after a transition has been committed.
Subscribers (the inspection act generator) react to it. A subscriber failure
is logged and counted, never propagated: the committed status is
authoritative and the act can always be rebuilt when its document is
requested.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.core.metrics import record_side_effect_failure

logger = structlog.get_logger()


class TaskLifecycleEvent(str, Enum):
    """Lifecycle events emitted on entering specific task states."""

    ENTERED_ON_REVIEW = "entered_on_review"
    ENTERED_APPROVED = "entered_approved"


@dataclass(frozen=True)
class TaskEvent:
    """A committed task lifecycle event."""

    event: TaskLifecycleEvent
    task_id: uuid.UUID
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[AsyncSession, TaskEvent], Awaitable[None]]


class TaskEventDispatcher:
    """Routes task events to subscribed handlers.

    Each handler runs in a session of its own, bound to the same engine as
    the session that committed the transition. The request session is never
    shared with a dispatch that may outlive the request.
    """

    def __init__(self):
        self._handlers: dict[TaskLifecycleEvent, list[EventHandler]] = {}
        self._in_flight: set[asyncio.Task] = set()

    def subscribe(self, event: TaskLifecycleEvent, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def handlers_for(self, event: TaskLifecycleEvent) -> list[EventHandler]:
        return list(self._handlers.get(event, []))

    async def emit(self, bind: AsyncEngine, event: TaskEvent) -> None:
        """Run all handlers for an event.

        Dispatch is shielded so that a cancelled request still lets the
        handlers finish. Handler errors never reach the caller.
        """
        if not self._handlers.get(event.event):
            return

        dispatch = asyncio.ensure_future(self._dispatch(bind, event))
        self._in_flight.add(dispatch)
        dispatch.add_done_callback(self._in_flight.discard)
        await asyncio.shield(dispatch)

    async def wait_idle(self) -> None:
        """Wait for dispatches that outlived their request."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _dispatch(self, bind: AsyncEngine, event: TaskEvent) -> None:
        for handler in self.handlers_for(event.event):
            await self._run_best_effort(handler, bind, event)

    async def _run_best_effort(
        self,
        handler: EventHandler,
        bind: AsyncEngine,
        event: TaskEvent,
    ) -> None:
        # Closing the session discards whatever the failed handler left pending
        async with AsyncSession(bind, expire_on_commit=False) as session:
            try:
                await handler(session, event)
            except Exception as e:
                logger.error(
                    "Task event handler failed",
                    lifecycle_event=event.event.value,
                    task_id=str(event.task_id),
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )
                record_side_effect_failure(event.event.value)


_dispatcher: TaskEventDispatcher | None = None


def get_event_dispatcher() -> TaskEventDispatcher:
    """Get the process-wide dispatcher with the act generator subscribed."""
    global _dispatcher
    if _dispatcher is None:
        from app.services.inspection_act_service import register_act_handlers

        _dispatcher = TaskEventDispatcher()
        register_act_handlers(_dispatcher)
    return _dispatcher
