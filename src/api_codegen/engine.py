"""The codegen engine: load sources, unify them, generate targets.

A Codegen instance owns the canonical registries together with the loaders,
generators and linters registered on it. Nothing is global, so independent
engines can coexist (one per test, for instance).

    engine = Codegen()
    engine.register_loader("model", "yaml", ModelDocumentLoader())
    engine.register_generator("snapshot", "", "", SnapshotGenerator())
    report = engine.generate(sources, [Target(name="snapshot")], "out/")
"""

import os
import threading
from dataclasses import dataclass, field
from typing import Any

from api_codegen.bespoke import reduce_to_workflows
from api_codegen.config import CodegenConfig, Source, Target
from api_codegen.contracts import (
    Generator,
    GeneratorContext,
    Linter,
    Loader,
    LoaderResources,
    Shared,
    TypeGenerator,
)
from api_codegen.errors import GenerateError, LoadError
from api_codegen.generators.base import apply_variables
from api_codegen.generators.snapshot import SnapshotGenerator
from api_codegen.ids import IdGenerator, default_ids
from api_codegen.loaders.document import ModelDocumentLoader
from api_codegen.log import CORE, GENERATORS, LOADERS, get_logger
from api_codegen.model.component import Component, ComponentRegistry, Property, Ref
from api_codegen.model.merge import MergePolicy
from api_codegen.model.resource import Resource, ResourceRegistry
from api_codegen.model.workflow import Step, Workflow, WorkflowRegistry
from api_codegen.sources import load_source_contents

logger = get_logger(CORE)
loader_logger = get_logger(LOADERS)
generator_logger = get_logger(GENERATORS)


@dataclass
class LoaderEntry:
    name: str
    type: str
    loader: Loader


@dataclass
class GeneratorEntry:
    name: str
    variant: str
    type: str
    generator: Generator


@dataclass
class LinterEntry:
    name: str
    type: str
    linter: Linter


@dataclass
class GenerateReport:
    """Errors collected during a generate run, and the paths generated to."""

    load_errors: list[LoadError] = field(default_factory=list)
    generate_errors: list[GenerateError] = field(default_factory=list)
    generated: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.load_errors and not self.generate_errors


def target_output_path(output_path: str, name: str, type: str = "", variant: str = "") -> str:
    """{output}/{name}[/{type}]/[{variant}/], lower-cased below output."""
    sep = os.sep
    path = output_path.removesuffix(sep)
    last_part = name + sep
    if type:
        last_part += type + sep
    if variant:
        last_part += variant + sep
    return path + sep + last_part.lower()


class Codegen:
    """Owns the unified model and sequences load -> merge -> reduce -> generate.

    load() and generate() hold the same re-entrant lock for their whole body,
    so concurrent callers on one engine are serialized.
    """

    def __init__(
        self,
        ids: IdGenerator | None = None,
        policy: MergePolicy = MergePolicy.KEEP_EXISTING,
        config: CodegenConfig | None = None,
    ):
        self.ids = ids or default_ids
        self.policy = policy
        self.config = config or CodegenConfig()
        self.components = ComponentRegistry(self.ids, policy)
        self.resources = ResourceRegistry(self.ids, policy)
        self.workflows = WorkflowRegistry()
        self._loaders: list[LoaderEntry] = []
        self._generators: list[GeneratorEntry] = []
        self._linters: list[LinterEntry] = []
        self._lock = threading.RLock()

    # -- registration -----------------------------------------------------------

    def register_loader(self, name: str, type: str, loader: Loader) -> None:
        """Add a loader; one registered under the same name is replaced in place."""
        entry = LoaderEntry(name=name, type=type, loader=loader)
        for i, existing in enumerate(self._loaders):
            if existing.name == name:
                self._loaders[i] = entry
                return
        self._loaders.append(entry)

    def register_generator(self, name: str, variant: str, type: str, generator: Generator) -> None:
        entry = GeneratorEntry(name=name, variant=variant, type=type, generator=generator)
        for i, existing in enumerate(self._generators):
            if (existing.name, existing.variant) == (name, variant):
                self._generators[i] = entry
                return
        self._generators.append(entry)

    def register_linter(self, name: str, type: str, linter: Linter) -> None:
        self._linters.append(LinterEntry(name=name, type=type, linter=linter))

    @property
    def loaders(self) -> list[LoaderEntry]:
        return list(self._loaders)

    @property
    def generators(self) -> list[GeneratorEntry]:
        return list(self._generators)

    def find_loader_by_name(self, name: str) -> LoaderEntry | None:
        for entry in self._loaders:
            if entry.name == name:
                return entry
        return None

    def find_loader_by_type(self, type: str) -> LoaderEntry | None:
        for entry in self._loaders:
            if entry.type == type:
                return entry
        return None

    def find_generator_by_name(self, name: str, variant: str = "") -> GeneratorEntry | None:
        for entry in self._generators:
            if (entry.name, entry.variant) == (name, variant):
                return entry
        return None

    def find_linter_by_name(self, name: str) -> LinterEntry | None:
        for entry in self._linters:
            if name in (entry.name, f"{entry.name}-{entry.type}"):
                return entry
        return None

    # -- loading ----------------------------------------------------------------

    def load(self, source: Source, shared: Shared | None = None, config: CodegenConfig | None = None) -> list[LoadError]:
        """Offer one source to every registered loader and merge what they return.

        A failing loader is logged and skipped; the others still run. Returns
        the errors collected along the way.
        """
        config = config or self.config
        with self._lock:
            shared = dict(shared or {})
            shared.setdefault("aliases", config.aliases)
            shared["source"] = source
            if source.content is not None:
                shared["content"] = source.content

            if config.lint and self._linters:
                rejected = self._lint(source, shared, config)
                if rejected is not None:
                    return [rejected]

            if not self._loaders:
                loader_logger.warning("No loaders registered, nothing to load from %s", source.path)

            errors: list[LoadError] = []
            for entry in self._loaders:
                try:
                    loaded = entry.loader.load(source.path, shared)
                    if loaded is not None:
                        _Unifier(self).unify(loaded)
                except Exception as e:
                    error = _as_load_error(e, source.path, entry.name)
                    loader_logger.error("Unable to load source %s with loader %s: %s", source.path, entry.name, e)
                    errors.append(error)
                    continue
                source.loaded = True

            self.components.refresh_latest()
            self.resources.refresh_latest()
            return errors

    def _lint(self, source: Source, shared: Shared, config: CodegenConfig) -> LoadError | None:
        if source.content is None:
            try:
                source.content = load_source_contents(source.path)
            except LoadError as e:
                loader_logger.error("Unable to read %s for linting: %s", source.path, e)
                return e
            shared["content"] = source.content

        for entry in self._linters:
            try:
                entry.linter.lint(source.path, source.content)
            except Exception as e:
                loader_logger.error("Linter %s rejected %s: %s", entry.name, source.path, e)
                if config.validate_sources:
                    return LoadError(f"Source failed linting: {e}", source=source.path, loader=entry.name)
        return None

    # -- reduction --------------------------------------------------------------

    def reduce_to_workflows(self) -> None:
        """Keep only the resources and components workflows reach."""
        with self._lock:
            before = (len(self.resources), len(self.components))
            resources, components = reduce_to_workflows(self.workflows.all(), self.resources, self.components)
            self.resources.replace_all(resources)
            self.components.replace_all(components)
            logger.info(
                "Bespoke reduction kept %d of %d resources and %d of %d components",
                len(resources),
                before[0],
                len(components),
                before[1],
            )

    # -- generation -------------------------------------------------------------

    def generate(
        self,
        sources: list[Source],
        targets: list[Target],
        output_path: str,
        type_generator: TypeGenerator | None = None,
        config: CodegenConfig | None = None,
    ) -> GenerateReport:
        """Load every source, optionally reduce, then run every target.

        One target's failure never stops the next one.
        """
        config = config or self.config
        report = GenerateReport()

        with self._lock:
            shared: Shared = {"aliases": config.aliases}
            if self._loaders and sources:
                for source in sources:
                    report.load_errors.extend(self.load(source, shared, config))

            if config.bespoke_workflow and len(self.workflows) > 0:
                self.reduce_to_workflows()

            if len(self.resources) > 0 and targets:
                for target in targets:
                    self._generate_target(target, output_path, type_generator, config, report)
            elif not targets:
                generator_logger.info("No targets given, nothing to generate")
            else:
                generator_logger.info("No resources loaded, nothing to generate")

        return report

    def _generate_target(
        self,
        target: Target,
        output_path: str,
        type_generator: TypeGenerator | None,
        config: CodegenConfig,
        report: GenerateReport,
    ) -> None:
        generator = target.generator
        if generator is None:
            entry = self.find_generator_by_name(target.name, target.variant)
            if entry is None:
                generator_logger.error("No generator registered for target %s", target.label)
                report.generate_errors.append(GenerateError("no generator registered", target=target.label))
                return
            generator = entry.generator

        target_config = target.configuration or config
        if target_config.variables:
            apply_variables(generator, target_config.variables)

        path = target_output_path(output_path, target.name, target.type, target.variant)

        if type_generator is not None:
            try:
                type_generator.generate(self.components.all(), target.label, path)
            except Exception as e:
                generator_logger.error("Type generation failed for %s: %s", target.label, e)
                report.generate_errors.append(GenerateError(str(e), target=target.label))

        context = GeneratorContext.snapshot(
            self.resources.all(),
            self.components.all(),
            self.workflows.all(),
            target_config.variables,
        )
        try:
            generator.generate(path, context)
        except Exception as e:
            generator_logger.error("Error generating %s: %s", target.label, e)
            report.generate_errors.append(GenerateError(str(e), target=target.label))
            return
        report.generated.append(path)


def _as_load_error(error: Exception, source: str, loader: str) -> LoadError:
    if isinstance(error, LoadError):
        error.source = error.source or source
        error.loader = error.loader or loader
        return error
    load_error = LoadError(str(error), source=source, loader=loader)
    load_error.__cause__ = error
    return load_error


class _Unifier:
    """Adopts one loader's contributions into an engine's registries.

    Ids inside a contribution (component refs, embedded copies of the same
    component or resource) are scoped to that contribution; they are mapped
    onto the stored entities as each one is adopted.
    """

    def __init__(self, engine: Codegen):
        self.components = engine.components
        self.resources = engine.resources
        self.workflows = engine.workflows
        self._components_by_obj: dict[int, Component] = {}
        self._components_by_id: dict[int, Component] = {}
        self._resources_by_obj: dict[int, Resource] = {}
        self._resources_by_id: dict[int, Resource] = {}
        self._seen_steps: set[int] = set()

    def unify(self, loaded: LoaderResources) -> None:
        incoming = loaded.components.all()

        # new components are adopted first so refs between them can be
        # rewritten to stored ids before any merge policy copies them
        matched: list[Component] = []
        for comp in incoming:
            old_id = comp.id
            existing = self.components.find_component_by_comparison(comp)
            if existing is None:
                stored = self.components.merge(comp, fresh_id=True)
            else:
                stored = existing
                matched.append(comp)
            self._remember_component(comp, old_id, stored)

        for comp in incoming:
            self._rewrite_refs(comp)
        for comp in matched:
            self.components.merge(comp)

        for resource in loaded.resources.all():
            self.resource(resource)
        for workflow in loaded.workflows.all():
            self.workflow(workflow)

    def component(self, comp: Component, source_doc: str = "") -> Component:
        """Map a component onto the stored one; source_doc fills an empty provenance."""
        stored = self._components_by_obj.get(id(comp))
        if stored is None and comp.id:
            stored = self._components_by_id.get(comp.id)
        if stored is None:
            old_id = comp.id
            if not comp.source_doc and source_doc:
                comp.source_doc = source_doc
            self._rewrite_refs(comp)
            stored = self.components.merge(comp, fresh_id=True)
            self._remember_component(comp, old_id, stored)
        return stored

    def resource(self, res: Resource) -> Resource:
        stored = self._resources_by_obj.get(id(res))
        if stored is None and res.id:
            stored = self._resources_by_id.get(res.id)
        if stored is not None:
            return stored

        old_id = res.id
        doc = res.source_doc
        for param in res.parameters:
            param.components = [self.component(c, doc) for c in param.components]
        for request in res.requests:
            if request.schema_ is not None:
                request.schema_ = self.component(request.schema_, doc)
        for response in res.responses:
            for body in response.response_bodies:
                if body.schema_ is not None:
                    body.schema_ = self.component(body.schema_, doc)
        res.components = [self.component(c, doc) for c in res.components]

        stored = self.resources.merge(res, fresh_id=True)
        self._resources_by_obj[id(res)] = stored
        if old_id:
            self._resources_by_id.setdefault(old_id, stored)
        return stored

    def workflow(self, workflow: Workflow) -> None:
        # a duplicate id is dropped before any of its entities are adopted
        if self.workflows.find_workflow_by_id(workflow.id) is not None:
            logger.info("Workflow with id %s already exists and can not be added", workflow.id)
            return
        workflow.inputs = [self.component(c) for c in workflow.inputs]
        for step in workflow.steps:
            self._step(step)
        self.workflows.add_workflow(workflow)

    def _step(self, step: Step) -> None:
        if id(step) in self._seen_steps:
            return
        self._seen_steps.add(id(step))
        if step.resource is not None:
            step.resource = self.resource(step.resource)
        if step.step is not None:
            self._step(step.step)

    def _remember_component(self, comp: Component, old_id: int, stored: Component) -> None:
        self._components_by_obj[id(comp)] = stored
        if old_id:
            self._components_by_id.setdefault(old_id, stored)

    def _rewrite_refs(self, item: Component | Property) -> None:
        ref = item.ref
        if ref is not None and ref.is_component and isinstance(ref.value, int):
            target = self._components_by_id.get(ref.value)
            if target is not None:
                item.ref = Ref.to_component(target)
        for prop in item.properties:
            self._rewrite_refs(prop)


def new_engine(**kwargs: Any) -> Codegen:
    """Build an engine with the bundled loader and generator registered."""
    engine = Codegen(**kwargs)
    engine.register_loader("model", "document", ModelDocumentLoader())
    engine.register_generator("snapshot", "", "", SnapshotGenerator())
    return engine
