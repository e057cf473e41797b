"""Tests for Prometheus metrics wiring."""

from prometheus_client import REGISTRY
from prometheus_fastapi_instrumentator import Instrumentator

from app import main
from app.core.config import settings
from app.core.metrics import record_transition, record_side_effect_failure, observe_act_render


class TestMetrics:
    """Tests for metrics setup and service counters."""

    def test_instrumentation_installed_when_enabled(self):
        if settings.metrics_enabled:
            assert isinstance(main._instrumentator, Instrumentator)
        else:
            assert main._instrumentator is None

    def test_record_transition(self):
        labels = {"from_status": "Pending", "to_status": "InProgress"}
        before = REGISTRY.get_sample_value("inspections_task_transitions_total", labels) or 0

        record_transition("Pending", "InProgress")

        assert REGISTRY.get_sample_value("inspections_task_transitions_total", labels) == before + 1

    def test_record_side_effect_failure(self):
        labels = {"event": "approve_render"}
        before = REGISTRY.get_sample_value("inspections_act_side_effect_failures_total", labels) or 0

        record_side_effect_failure("approve_render")

        assert REGISTRY.get_sample_value("inspections_act_side_effect_failures_total", labels) == before + 1

    def test_observe_act_render(self):
        before = REGISTRY.get_sample_value("inspections_act_render_seconds_count") or 0

        observe_act_render(0.2)

        assert REGISTRY.get_sample_value("inspections_act_render_seconds_count") == before + 1
