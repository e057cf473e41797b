"""API Routes Module."""

from fastapi import APIRouter

from app.api import tasks, inspector

router = APIRouter()

router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(inspector.router, prefix="/inspector/tasks", tags=["Inspector"])
