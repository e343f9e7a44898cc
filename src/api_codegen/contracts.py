"""Contracts between the engine and its loaders, generators and linters.

Loaders turn a source into partial model contributions (LoaderResources);
generators consume an immutable GeneratorContext snapshot of the unified
model. Both are plain objects satisfying the protocols below.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from api_codegen.ids import IdGenerator
from api_codegen.model.component import Component, ComponentRegistry
from api_codegen.model.resource import Resource, ResourceRegistry
from api_codegen.model.workflow import Workflow, WorkflowRegistry

# Open key -> value bag passed to every loader for one load call.
# Always carries "aliases"; "source" and "content" when known.
Shared = dict[str, Any]


@dataclass
class LoaderResources:
    """What one loader contributed from one source."""

    components: ComponentRegistry = field(default_factory=ComponentRegistry)
    resources: ResourceRegistry = field(default_factory=ResourceRegistry)
    workflows: WorkflowRegistry = field(default_factory=WorkflowRegistry)

    @classmethod
    def create(cls, ids: IdGenerator | None = None) -> "LoaderResources":
        return cls(
            components=ComponentRegistry(ids),
            resources=ResourceRegistry(ids),
            workflows=WorkflowRegistry(),
        )

    @classmethod
    def from_document(cls, data: Any, ids: IdGenerator | None = None) -> "LoaderResources":
        """Build contributions from the structured {resources, components, workflows} payload."""
        document = LoadedDocument.model_validate(data or {})
        loaded = cls.create(ids)
        for component in document.components:
            loaded.components.merge(component)
        for resource in document.resources:
            loaded.resources.merge(resource)
        for workflow in document.workflows:
            loaded.workflows.add_workflow(workflow)
        return loaded

    def is_empty(self) -> bool:
        return not (len(self.components) or len(self.resources) or len(self.workflows))


class LoadedDocument(BaseModel):
    """Wire shape a loader plugin returns."""

    resources: list[Resource] = []
    components: list[Component] = []
    workflows: list[Workflow] = []


class GeneratorContext(BaseModel):
    """Immutable snapshot of the unified model handed to one generator."""

    model_config = ConfigDict(frozen=True)

    resources: tuple[Resource, ...] = ()
    components: tuple[Component, ...] = ()
    workflows: tuple[Workflow, ...] = ()
    variables: dict[str, Any] = {}

    @classmethod
    def snapshot(
        cls,
        resources: list[Resource],
        components: list[Component],
        workflows: list[Workflow],
        variables: Mapping[str, Any] | None = None,
    ) -> "GeneratorContext":
        # one deepcopy call so entities shared between collections stay shared
        resources, components, workflows, variables = copy.deepcopy(
            (list(resources), list(components), list(workflows), dict(variables or {}))
        )
        return cls(
            resources=tuple(resources),
            components=tuple(components),
            workflows=tuple(workflows),
            variables=variables,
        )

    def find_component(self, id: int) -> Component | None:
        for component in self.components:
            if component.id == id:
                return component
        return None

    def latest_resources(self) -> list[Resource]:
        return [r for r in self.resources if r.latest]


@runtime_checkable
class Loader(Protocol):
    def load(self, location: str, shared: Shared) -> LoaderResources:
        """Parse the source at location into model contributions; raise on failure."""
        ...


@runtime_checkable
class Generator(Protocol):
    def generate(self, output_path: str, context: GeneratorContext) -> None:
        """Write output for the unified model under output_path; raise on failure."""
        ...


@runtime_checkable
class TypeGenerator(Protocol):
    def generate(self, components: list[Component], target: str, output_path: str) -> None:
        """Emit type definitions for components, once per target."""
        ...


@runtime_checkable
class Linter(Protocol):
    def lint(self, location: str, content: bytes) -> None:
        """Raise LintError if the source breaks the linter's rules."""
        ...


class Formatter(Protocol):
    def format(self, contents: bytes) -> bytes: ...
