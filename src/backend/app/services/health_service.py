"""Health check service for the inspections backend."""

import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.act_storage import get_act_storage

logger = structlog.get_logger()


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None


@dataclass
class SystemHealth:
    """Overall system health status."""

    status: HealthStatus
    version: str
    components: list[ComponentHealth]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "status": self.status.value,
            "version": self.version,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                }
                for c in self.components
            ],
        }


class HealthService:
    """Service for checking health of system components."""

    VERSION = "0.1.0"

    async def check_database(self, session: AsyncSession) -> ComponentHealth:
        """Check database connectivity and response time."""
        start = time.perf_counter()
        try:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            latency = (time.perf_counter() - start) * 1000

            return ComponentHealth(
                name="database",
                status=HealthStatus.HEALTHY,
                message="Database responding",
                latency_ms=round(latency, 2),
            )
        except (SQLAlchemyError, OSError) as e:
            latency = (time.perf_counter() - start) * 1000
            logger.error("Database health check failed", error=str(e))
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message="Connection failed",
                latency_ms=round(latency, 2),
            )

    def check_act_storage(self) -> ComponentHealth:
        """Check that rendered acts can be written."""
        base_path = get_act_storage().base_path
        if base_path.is_dir() and os.access(base_path, os.W_OK):
            return ComponentHealth(
                name="act_storage",
                status=HealthStatus.HEALTHY,
                message="Act storage writable",
            )
        # Approvals still commit; downloads fail until storage recovers
        logger.warning("Act storage not writable", path=str(base_path))
        return ComponentHealth(
            name="act_storage",
            status=HealthStatus.DEGRADED,
            message="Act storage not writable",
        )

    async def get_readiness(self, session: AsyncSession) -> SystemHealth:
        """Get full readiness status including all dependencies."""
        components = [
            await self.check_database(session),
            self.check_act_storage(),
        ]

        statuses = [c.status for c in components]
        if HealthStatus.UNHEALTHY in statuses:
            overall_status = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall_status = HealthStatus.DEGRADED
        else:
            overall_status = HealthStatus.HEALTHY

        return SystemHealth(
            status=overall_status,
            version=self.VERSION,
            components=components,
        )

    def get_liveness(self) -> SystemHealth:
        """Get basic liveness status (application is running)."""
        return SystemHealth(
            status=HealthStatus.HEALTHY,
            version=self.VERSION,
            components=[
                ComponentHealth(
                    name="application",
                    status=HealthStatus.HEALTHY,
                    message="Application is running",
                )
            ],
        )


# Singleton instance
health_service = HealthService()
