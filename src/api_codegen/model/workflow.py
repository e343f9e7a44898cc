"""Workflows: ordered, multi-step sequences of resource invocations."""

from __future__ import annotations

import threading
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, model_validator

from api_codegen.errors import ValidationError
from api_codegen.log import CORE, get_logger
from api_codegen.model.component import Component
from api_codegen.model.resource import Resource

logger = get_logger(CORE)


class Expression(BaseModel):
    """Runtime logic evaluated by generated code, e.g. "$statusCode == 200"."""

    id: str = ""
    text: str


class Output(BaseModel):
    id: str = ""
    expression: Expression


class WorkflowParameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    in_: str = Field(default="", alias="in")
    value: str = ""
    style: str = ""
    target: str = ""


class Action(BaseModel):
    id: str


class Step(BaseModel):
    """One step of a workflow.

    A step targets exactly one Resource or one nested Step. depends_on lists
    the ids of steps that must have run before this one.
    """

    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    resource: Resource | None = None
    step: Step | None = None
    parameters: dict[str, WorkflowParameter] = {}
    depends_on: list[str] = []
    outputs: dict[str, Output] = {}
    success_criteria: list[Expression] = []
    on_success: list[Action] = []
    on_failure: list[Action] = []

    @model_validator(mode="after")
    def _one_target(self) -> "Step":
        if (self.resource is None) == (self.step is None):
            raise ValueError(f"step {self.id!r} must reference exactly one resource or nested step")
        return self

    def target_resource(self) -> Resource | None:
        """Follow nested steps down to the resource they ultimately call."""
        current: Step | None = self
        seen: set[int] = set()
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            if current.resource is not None:
                return current.resource
            current = current.step
        return None


class Workflow(BaseModel):
    id: str = Field(min_length=1)
    description: str = ""
    inputs: list[Component] = []
    steps: list[Step] = []
    outputs: dict[str, Output] = {}


class WorkflowRegistry:
    """Store of workflows, unique by id."""

    def __init__(self):
        self._lock = threading.RLock()
        self._workflows: list[Workflow] = []

    def __len__(self) -> int:
        return len(self._workflows)

    def __iter__(self) -> Iterator[Workflow]:
        return iter(self.all())

    def all(self) -> list[Workflow]:
        with self._lock:
            return list(self._workflows)

    def add_workflow(self, workflow: Workflow) -> bool:
        """Append a workflow unless its id is taken. Returns True if added."""
        if not workflow.id:
            raise ValidationError("workflow must have an id")
        with self._lock:
            for existing in self._workflows:
                if existing.id == workflow.id:
                    logger.info("Workflow with id %s already exists and can not be added", workflow.id)
                    return False
            self._workflows.append(workflow)
        return True

    def find_workflow_by_id(self, id: str) -> Workflow | None:
        with self._lock:
            for workflow in self._workflows:
                if workflow.id == id:
                    return workflow
        return None
