"""Building Inspections FastAPI Application Entry Point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import router as api_router
from app.core.config import settings
from app.core.deps import get_db, engine
from app.services.health_service import health_service
from app.services.task_events import get_event_dispatcher

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting inspections application", environment=settings.environment)

    # Subscribe the act generator before the first transition arrives
    get_event_dispatcher()
    logger.info("Act storage configured", path=settings.act_storage_path)

    yield

    logger.info("Shutting down inspections application")
    await get_event_dispatcher().wait_idle()
    await engine.dispose()


fastapi_app = FastAPI(
    title="Building Inspections API",
    description="Inspection task workflow, inspection results and inspection acts",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# CORS middleware
fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
fastapi_app.include_router(api_router, prefix="/api/v1")


@fastapi_app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Convert errors to JSON-serializable format
    errors = []
    for error in exc.errors():
        err = {
            "loc": error.get("loc"),
            "msg": str(error.get("msg")),
            "type": error.get("type"),
        }
        errors.append(err)

    logger.error("Validation error",
                 path=str(request.url.path),
                 errors=errors,
                 body=str(exc.body)[:500] if hasattr(exc, 'body') else None)
    return JSONResponse(
        status_code=422,
        content={"detail": errors}
    )


@fastapi_app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error",
                 path=str(request.url.path),
                 method=request.method,
                 error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# Set up Prometheus metrics instrumentation
_instrumentator = None
if settings.metrics_enabled:
    from app.core.metrics import setup_metrics, expose_metrics

    _instrumentator = setup_metrics(fastapi_app)
    expose_metrics(fastapi_app, _instrumentator)


@fastapi_app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for Kubernetes probes."""
    return {"status": "healthy", "version": "0.1.0"}


@fastapi_app.get("/health/live")
async def liveness_check() -> dict:
    """Liveness probe - checks if application is running."""
    result = health_service.get_liveness()
    return result.to_dict()


@fastapi_app.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)) -> dict:
    """Readiness probe - checks if application can serve traffic."""
    result = await health_service.get_readiness(db)
    return result.to_dict()


app = fastapi_app
