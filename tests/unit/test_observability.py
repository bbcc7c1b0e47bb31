"""Tests for the logging adapter and the in-memory telemetry adapters."""

import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from sagaflow import BaseActivity, Engine, Status, WorkflowBuilder
from sagaflow.config import LoggingConfig, ObservabilityConfig, SagaflowConfig
from sagaflow.observability import (
    InMemoryMetricsRecorder,
    InMemoryTracer,
    Logger,
    MetricsRecorder,
    NoopMetricsRecorder,
    NoopTracer,
    StructlogLogger,
    Tracer,
    configure_logging,
    get_metrics_recorder,
    get_tracer,
)


class Echo(BaseActivity):
    async def execute(self, ctx, payload):
        return payload


@pytest.fixture
def sagaflow_logger():
    logger = logging.getLogger("sagaflow")
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    logger.setLevel(level)
    logger.handlers[:] = handlers
    structlog.reset_defaults()


def test_adapters_satisfy_ports():
    assert isinstance(StructlogLogger(), Logger)
    assert isinstance(NoopTracer(), Tracer)
    assert isinstance(InMemoryTracer(), Tracer)
    assert isinstance(NoopMetricsRecorder(), MetricsRecorder)
    assert isinstance(InMemoryMetricsRecorder(), MetricsRecorder)


def test_structlog_logger_keeps_fields_as_event_keys():
    with capture_logs() as logs:
        logger = StructlogLogger()
        logger.warning("Retrying activity", activity="ReserveInventory", attempt=2)
        logger.debug("Activity completed")

    assert logs == [
        {
            "event": "Retrying activity",
            "activity": "ReserveInventory",
            "attempt": 2,
            "log_level": "warning",
        },
        {"event": "Activity completed", "log_level": "debug"},
    ]


@pytest.mark.asyncio
async def test_engine_logs_structured_events():
    engine = Engine()

    with capture_logs() as logs:
        engine.register_workflow(
            WorkflowBuilder("echo", "Echo").add_activity(Echo("echo")).build()
        )
        execution = await engine.execute("echo", "hi")

    events = {entry["event"]: entry for entry in logs}
    assert events["Workflow registered"]["activities_count"] == 1
    completed = events["Workflow execution completed"]
    assert completed["log_level"] == "info"
    assert completed["execution_id"] == execution.execution_id
    assert completed["status"] == "COMPLETED"


def test_configure_logging_sets_level_once(sagaflow_logger):
    sagaflow_logger.handlers[:] = []

    configure_logging(LoggingConfig(level="debug"))
    configure_logging(LoggingConfig(level="WARNING"))

    assert sagaflow_logger.level == logging.WARNING
    assert len(sagaflow_logger.handlers) == 1
    assert structlog.is_configured()


def test_configure_logging_renders_json_through_stdlib(sagaflow_logger, caplog):
    configure_logging(LoggingConfig(level="DEBUG", renderer="json"))
    caplog.set_level(logging.DEBUG, logger="sagaflow")

    StructlogLogger().info("Workflow registered", workflow_id="wf")

    record = caplog.records[-1]
    assert record.name == "sagaflow.engine"
    data = json.loads(record.getMessage())
    assert data["event"] == "Workflow registered"
    assert data["workflow_id"] == "wf"
    assert data["level"] == "info"
    assert "timestamp" in data


def test_configure_logging_filters_by_level(sagaflow_logger, caplog):
    configure_logging(LoggingConfig(level="ERROR"))

    StructlogLogger().info("Workflow registered", workflow_id="wf")
    StructlogLogger().error("Workflow execution failed", workflow_id="wf")

    messages = [r.getMessage() for r in caplog.records if r.name == "sagaflow.engine"]
    assert len(messages) == 1
    assert messages[0].startswith("event='Workflow execution failed'")
    assert "workflow_id='wf'" in messages[0]


def test_in_memory_tracer_records_hierarchy():
    tracer = InMemoryTracer()

    root = tracer.start_span("workflow.Checkout")
    child = tracer.start_span("activity.ReserveInventory", root)
    child.set_attribute("activity.attempt", 1)
    child.record_error(RuntimeError("boom"))
    child.end()

    assert tracer.find("activity.ReserveInventory") == [child]
    assert child.parent == "workflow.Checkout"
    assert child.attributes == {"activity.attempt": 1}
    assert len(child.errors) == 1
    assert child.ended and not root.ended


def test_in_memory_metrics_counts():
    metrics = InMemoryMetricsRecorder()

    metrics.increment_workflow_counter("Checkout", Status.COMPLETED)
    metrics.increment_workflow_counter("Checkout", Status.COMPLETED)
    metrics.increment_activity_counter("Checkout", "CreateOrder", Status.FAILED)
    metrics.record_activity_execution("Checkout", "CreateOrder", 0.25, Status.FAILED)

    assert metrics.workflow_counts[("Checkout", Status.COMPLETED)] == 2
    assert metrics.activity_counts[("Checkout", "CreateOrder", Status.FAILED)] == 1
    assert metrics.activity_samples[0].duration == 0.25


def test_backend_factories_follow_config():
    config = SagaflowConfig(
        observability=ObservabilityConfig(tracing="memory", metrics="memory")
    )

    assert isinstance(get_tracer(config=config), InMemoryTracer)
    assert isinstance(get_metrics_recorder(config=config), InMemoryMetricsRecorder)
    assert isinstance(get_tracer("noop", config=config), NoopTracer)
    assert isinstance(get_metrics_recorder("NOOP", config=config), NoopMetricsRecorder)


def test_backend_factories_reject_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported tracing backend"):
        get_tracer("zipkin", config=SagaflowConfig())
    with pytest.raises(ValueError, match="Unsupported metrics backend"):
        get_metrics_recorder("statsd", config=SagaflowConfig())
