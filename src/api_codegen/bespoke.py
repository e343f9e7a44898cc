"""Bespoke workflow reduction.

Shrinks the unified model to the resources workflow steps call and the
components those resources (and workflow inputs) reach, so output such as an
SDK carries only what workflows actually use.
"""

from api_codegen.model.component import Component, ComponentRegistry, Property
from api_codegen.model.resource import Resource, ResourceRegistry, make_unique_id
from api_codegen.model.workflow import Workflow


def resource_components(resource: Resource) -> list[Component]:
    """Components a resource mentions directly."""
    found: list[Component] = []
    for param in resource.parameters:
        found.extend(param.components)
    for request in resource.requests:
        if request.schema_ is not None:
            found.append(request.schema_)
    for response in resource.responses:
        for body in response.response_bodies:
            if body.schema_ is not None:
                found.append(body.schema_)
    found.extend(resource.components)
    return found


class _Reachability:
    def __init__(self, components: ComponentRegistry):
        self.registry = components
        self.component_ids: set[int] = set()

    def visit(self, component: Component | None) -> None:
        if component is None:
            return
        stored = self.registry.find_component_by_id(component.id) or component
        if stored.id in self.component_ids:
            return
        self.component_ids.add(stored.id)
        self.visit(self.registry.resolve_ref(stored.ref))
        self._visit_properties(stored.properties)

    def _visit_properties(self, properties: list[Property]) -> None:
        for prop in properties:
            self.visit(self.registry.resolve_ref(prop.ref))
            self._visit_properties(prop.properties)


def _stored_resource(resources: ResourceRegistry, target: Resource) -> Resource | None:
    """The stored resource a step calls.

    Matched by id when that id carries the same identity, then by
    (resource_id, owner, version), and by (resource_id, owner) alone only when
    the step names no version.
    """
    resource_id = target.resource_id or make_unique_id(target.path, target.method)
    if target.id:
        by_id = resources.find_resource_by_id(target.id)
        if by_id is not None and by_id.identity == (resource_id, target.owner):
            return by_id
    return resources.find_resource_by_identity(resource_id, target.owner, target.version)


def reduce_to_workflows(
    workflows: list[Workflow],
    resources: ResourceRegistry,
    components: ComponentRegistry,
) -> tuple[list[Resource], list[Component]]:
    """Return the (resources, components) reachable from the workflows.

    Only the stored version each step calls is kept; other versions of the
    same operation are dropped. Both lists keep the registries' order.
    """
    kept_ids: set[int] = set()
    reach = _Reachability(components)

    for workflow in workflows:
        for component in workflow.inputs:
            reach.visit(component)
        for step in workflow.steps:
            target = step.target_resource()
            if target is None:
                continue
            stored = _stored_resource(resources, target)
            if stored is None or stored.id in kept_ids:
                continue
            kept_ids.add(stored.id)
            for component in resource_components(stored):
                reach.visit(component)

    reduced_resources = [r for r in resources.all() if r.id in kept_ids]
    reduced_components = [c for c in components.all() if c.id in reach.component_ids]
    return reduced_resources, reduced_components
