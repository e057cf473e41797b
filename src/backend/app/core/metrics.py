"""Prometheus metrics instrumentation for the inspections service."""

from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator, metrics

# Task status transitions
task_transitions_total = Counter(
    "inspections_task_transitions_total",
    "Committed task status transitions",
    ["from_status", "to_status"],
)

# Side effects triggered by transitions that failed and were logged only
act_side_effect_failures_total = Counter(
    "inspections_act_side_effect_failures_total",
    "Inspection act side effects that failed after a committed transition",
    ["event"],
)

# Act document rendering
act_render_seconds = Histogram(
    "inspections_act_render_seconds",
    "Time spent rendering inspection act documents",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def setup_metrics(app) -> Instrumentator:
    """Set up Prometheus metrics instrumentation for FastAPI app."""
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/health", "/health/live", "/health/ready", "/metrics"],
        env_var_name="METRICS_ENABLED",
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="",
            metric_subsystem="",
            latency_highr_buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )
    )

    instrumentator.instrument(app)

    return instrumentator


def expose_metrics(app, instrumentator: Instrumentator) -> None:
    """Expose the /metrics endpoint."""
    instrumentator.expose(app, include_in_schema=False, should_gzip=True)


def record_transition(from_status: str, to_status: str) -> None:
    """Increment the transition counter."""
    task_transitions_total.labels(from_status=from_status, to_status=to_status).inc()


def record_side_effect_failure(event: str) -> None:
    """Increment the failed side-effect counter."""
    act_side_effect_failures_total.labels(event=event).inc()


def observe_act_render(duration: float) -> None:
    """Record act rendering duration."""
    act_render_seconds.observe(duration)
