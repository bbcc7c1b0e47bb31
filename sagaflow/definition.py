"""Workflow definitions and the builder that validates them."""

from __future__ import annotations

from typing import Any, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .activity import Activity
from .config import DefaultsConfig
from .errors import ConfigurationError


class WorkflowOptions(BaseModel):
    """Execution policy for a workflow.

    ``retry_delay`` and ``timeout`` are in seconds; a ``timeout`` of ``0``
    disables the workflow-wide deadline.
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    timeout: float = Field(default=300.0, ge=0)
    compensate_on_failure: bool = True

    @classmethod
    def from_config(cls, defaults: DefaultsConfig) -> "WorkflowOptions":
        return cls(**defaults.model_dump())


class WorkflowDefinition(BaseModel):
    """Registered, immutable description of an ordered activity sequence."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    name: str
    description: str = ""
    activities: Tuple[Any, ...]
    options: WorkflowOptions = WorkflowOptions()
    payload_type: Optional[Type[BaseModel]] = None

    @property
    def activity_names(self) -> List[str]:
        return [activity.name for activity in self.activities]


class WorkflowBuilder:
    """Fluent, validating constructor for :class:`WorkflowDefinition`.

    Example:
        definition = (
            WorkflowBuilder("checkout", "Checkout Workflow")
            .description("Order checkout with compensation")
            .add_activities(validate_cart, reserve_inventory, create_order)
            .max_retries(2)
            .build()
        )
    """

    def __init__(
        self,
        id: str = "",
        name: str = "",
        options: Optional[WorkflowOptions] = None,
    ) -> None:
        self._id = id
        self._name = name
        self._description = ""
        self._activities: List[Activity] = []
        self._options = (options or WorkflowOptions()).model_dump()
        self._payload_type: Optional[Type[BaseModel]] = None

    def id(self, workflow_id: str) -> "WorkflowBuilder":
        self._id = workflow_id
        return self

    def name(self, name: str) -> "WorkflowBuilder":
        self._name = name
        return self

    def description(self, description: str) -> "WorkflowBuilder":
        self._description = description
        return self

    def add_activity(self, activity: Activity) -> "WorkflowBuilder":
        self._activities.append(activity)
        return self

    def add_activities(self, *activities: Activity) -> "WorkflowBuilder":
        self._activities.extend(activities)
        return self

    def with_options(self, options: WorkflowOptions) -> "WorkflowBuilder":
        """Replace the whole execution policy."""
        self._options = options.model_dump()
        return self

    def max_retries(self, retries: int) -> "WorkflowBuilder":
        self._options["max_retries"] = retries
        return self

    def retry_delay(self, seconds: float) -> "WorkflowBuilder":
        self._options["retry_delay"] = seconds
        return self

    def timeout(self, seconds: float) -> "WorkflowBuilder":
        self._options["timeout"] = seconds
        return self

    def compensate_on_failure(self, compensate: bool) -> "WorkflowBuilder":
        self._options["compensate_on_failure"] = compensate
        return self

    def payload(self, payload_type: Type[BaseModel]) -> "WorkflowBuilder":
        """Declare the pydantic model used to coerce raw (JSON) input."""
        self._payload_type = payload_type
        return self

    def build(self) -> WorkflowDefinition:
        """Validate the collected settings and return the definition.

        Raises:
            ConfigurationError: If id, name or activities are missing, an
                activity does not implement the activity contract, two
                activities share a name, or the options are invalid.
        """
        if not self._id:
            raise ConfigurationError("workflow ID is required")
        if not self._name:
            raise ConfigurationError("workflow name is required")
        if not self._activities:
            raise ConfigurationError("workflow must have at least one activity")
        validate_activities(self._id, self._activities)

        try:
            options = WorkflowOptions(**self._options)
        except ValidationError as exc:
            raise ConfigurationError(
                f"invalid options for workflow {self._id}: {exc}"
            ) from exc

        return WorkflowDefinition(
            id=self._id,
            name=self._name,
            description=self._description,
            activities=tuple(self._activities),
            options=options,
            payload_type=self._payload_type,
        )


def validate_activities(workflow_id: str, activities: Any) -> None:
    """Check each entry implements :class:`Activity` with a unique name."""

    seen: set[str] = set()
    for activity in activities:
        if not isinstance(activity, Activity):
            raise ConfigurationError(
                f"workflow {workflow_id}: {activity!r} does not implement the activity contract"
            )
        if not activity.name:
            raise ConfigurationError(f"workflow {workflow_id}: activity name is required")
        if activity.name in seen:
            raise ConfigurationError(
                f"workflow {workflow_id}: duplicate activity name {activity.name}"
            )
        seen.add(activity.name)


__all__ = [
    "WorkflowOptions",
    "WorkflowDefinition",
    "WorkflowBuilder",
    "validate_activities",
]
