"""Tests for WorkflowBuilder validation and defaults."""

import pytest

from sagaflow import BaseActivity, ConfigurationError, WorkflowBuilder, WorkflowOptions
from sagaflow.config import DefaultsConfig
from sagaflow.workflows import CheckoutState


class Echo(BaseActivity):
    async def execute(self, ctx, payload):
        return payload


def test_build_uses_default_options():
    definition = WorkflowBuilder("wf", "Workflow").add_activity(Echo("A")).build()

    assert definition.options == WorkflowOptions()
    assert definition.options.max_retries == 3
    assert definition.options.retry_delay == 1.0
    assert definition.options.timeout == 300.0
    assert definition.options.compensate_on_failure is True
    assert definition.payload_type is None


def test_build_keeps_activity_order_and_settings():
    a, b, c = Echo("A"), Echo("B"), Echo("C")
    definition = (
        WorkflowBuilder()
        .id("wf")
        .name("Workflow")
        .description("three steps")
        .add_activity(a)
        .add_activities(b, c)
        .max_retries(1)
        .retry_delay(0.5)
        .timeout(10)
        .compensate_on_failure(False)
        .payload(CheckoutState)
        .build()
    )

    assert definition.activities == (a, b, c)
    assert definition.activity_names == ["A", "B", "C"]
    assert definition.description == "three steps"
    assert definition.options == WorkflowOptions(
        max_retries=1, retry_delay=0.5, timeout=10, compensate_on_failure=False
    )
    assert definition.payload_type is CheckoutState


def test_build_is_repeatable():
    builder = WorkflowBuilder("wf", "Workflow").add_activity(Echo("A"))

    assert builder.build() == builder.build()


def test_with_options_replaces_policy():
    options = WorkflowOptions(max_retries=0, timeout=0)
    definition = (
        WorkflowBuilder("wf", "Workflow")
        .max_retries(7)
        .with_options(options)
        .add_activity(Echo("A"))
        .build()
    )

    assert definition.options == options


def test_options_from_config_defaults():
    options = WorkflowOptions.from_config(DefaultsConfig(max_retries=5, timeout=60))

    assert options.max_retries == 5
    assert options.timeout == 60
    assert options.retry_delay == 1.0


@pytest.mark.parametrize(
    "builder, message",
    [
        (WorkflowBuilder(name="Workflow").add_activity(Echo("A")), "workflow ID is required"),
        (WorkflowBuilder(id="wf").add_activity(Echo("A")), "workflow name is required"),
        (WorkflowBuilder("wf", "Workflow"), "at least one activity"),
        (
            WorkflowBuilder("wf", "Workflow").add_activities(Echo("A"), Echo("A")),
            "duplicate activity name A",
        ),
        (WorkflowBuilder("wf", "Workflow").add_activity(Echo("")), "activity name is required"),
        (WorkflowBuilder("wf", "Workflow").add_activity(object()), "activity contract"),
        (
            WorkflowBuilder("wf", "Workflow").add_activity(Echo("A")).max_retries(-1),
            "invalid options",
        ),
        (
            WorkflowBuilder("wf", "Workflow").add_activity(Echo("A")).timeout(-5),
            "invalid options",
        ),
    ],
)
def test_build_rejects_invalid_definitions(builder, message):
    with pytest.raises(ConfigurationError, match=message):
        builder.build()


def test_definition_is_immutable():
    definition = WorkflowBuilder("wf", "Workflow").add_activity(Echo("A")).build()

    with pytest.raises(Exception):
        definition.name = "renamed"
