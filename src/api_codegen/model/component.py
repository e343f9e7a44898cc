"""Components: schema / payload definitions and their canonical registry.

Loaders describe request bodies, response bodies, parameters and defined
schemas as Components. The registry deduplicates them so that the same schema
arriving from several places (or several sources) is stored once.
"""

from __future__ import annotations

import threading
from enum import Enum, IntEnum
from typing import Any, Iterator

from pydantic import BaseModel, Field, field_validator, model_validator

from api_codegen.errors import MergeAmbiguity, ValidationError
from api_codegen.ids import IdGenerator, default_ids
from api_codegen.log import CORE, get_logger
from api_codegen.model.merge import (
    MergePolicy,
    fill_unset_fields,
    replace_fields,
    union_list,
    version_key,
)

logger = get_logger(CORE)


class ComponentSource(IntEnum):
    """Where a component was found in its source document."""

    UNKNOWN = 0
    COMPONENT = 1  # a defined, named, reusable component
    PARAMETER = 2  # an object/array request parameter
    INLINE = 3
    REFERENCE = 4
    REQUEST_BODY_INLINE = 5
    RESPONSE_BODY_INLINE = 6
    PROPERTY = 7

    def __str__(self) -> str:
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    ComponentSource.UNKNOWN: "Unknown Component Type",
    ComponentSource.COMPONENT: "Defined Component",
    ComponentSource.PARAMETER: "Parameter Component",
    ComponentSource.INLINE: "Inlined Component",
    ComponentSource.REFERENCE: "Reference Component",
    ComponentSource.REQUEST_BODY_INLINE: "Request Body Inlined Component",
    ComponentSource.RESPONSE_BODY_INLINE: "Response Body Inlined Component",
    ComponentSource.PROPERTY: "Property Component",
}

INLINED_SOURCES = (
    ComponentSource.INLINE,
    ComponentSource.REQUEST_BODY_INLINE,
    ComponentSource.RESPONSE_BODY_INLINE,
)


class RefKind(str, Enum):
    COMPONENT = "component"
    PRIMITIVE = "primitive"


class Ref(BaseModel):
    """What a component or property points at.

    kind=component: value is the target component's id, or its name while the
    target is still unresolved. kind=primitive: value is a primitive type name
    (the item type of an array of strings, for instance).
    """

    kind: RefKind
    value: int | str

    @model_validator(mode="after")
    def _primitive_is_named(self) -> "Ref":
        if self.kind == RefKind.PRIMITIVE and not isinstance(self.value, str):
            raise ValueError("primitive ref must name a type")
        return self

    @classmethod
    def to_component(cls, target: "Component | int | str") -> "Ref":
        if isinstance(target, Component):
            target = target.id
        return cls(kind=RefKind.COMPONENT, value=target)

    @classmethod
    def to_primitive(cls, type_name: str) -> "Ref":
        return cls(kind=RefKind.PRIMITIVE, value=type_name)

    @property
    def is_component(self) -> bool:
        return self.kind == RefKind.COMPONENT


class Property(BaseModel):
    """A named member of a component; same shape as Component minus source."""

    id: int = 0
    name: str = Field(min_length=1)
    raw_name: str = ""
    type: str = ""  # object / array / string / number / enum
    description: str = ""
    format: str = ""  # int64, float, email, ...
    required: bool | None = None
    null: bool | None = None
    enums: list[str] = []
    raw: Any = None
    version: str = ""
    latest: bool = False
    ref: Ref | None = None
    properties: list[Property] = []

    @field_validator("properties")
    @classmethod
    def _sort_by_name(cls, value: list[Property]) -> list[Property]:
        return sorted(value, key=lambda p: p.name)


class Component(BaseModel):
    """A schema or payload definition, defined, inline or parameter-borne."""

    id: int = 0
    name: str = Field(min_length=1)
    raw_name: str = ""  # as written in the source; name may be rewritten
    type: str = ""
    description: str = ""
    format: str = ""
    required: bool | None = None
    null: bool | None = None
    enums: list[str] = []
    source: ComponentSource = ComponentSource.UNKNOWN
    raw: Any = None
    ref: Ref | None = None
    source_doc: str = ""  # keeps same-named components from unrelated APIs apart
    version: str = ""
    latest: bool = False
    properties: list[Property] = []

    @field_validator("properties")
    @classmethod
    def _sort_by_name(cls, value: list[Property]) -> list[Property]:
        return sorted(value, key=lambda p: p.name)


def components_match(a: Component, b: Component) -> bool:
    """Composite identity used for deduplication."""
    return (
        a.name.casefold() == b.name.casefold()
        and a.source == b.source
        and a.format == b.format
        and a.required == b.required
        and bool(a.source_doc)
        and bool(b.source_doc)
        and a.source_doc.lower() == b.source_doc.lower()
    )


def _differing_shape(a: Component, b: Component) -> list[str]:
    return [f for f in ("source", "format", "required") if getattr(a, f) != getattr(b, f)]


class ComponentRegistry:
    """Canonical, name-ordered store of Components.

    Lookups are linear scans; expected sizes are in the hundreds.
    """

    def __init__(self, ids: IdGenerator | None = None, policy: MergePolicy = MergePolicy.KEEP_EXISTING):
        self._ids = ids or default_ids
        self.policy = policy
        self._lock = threading.RLock()
        self._components: list[Component] = []
        self.ambiguities: list[MergeAmbiguity] = []

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[Component]:
        return iter(self.all())

    def all(self) -> list[Component]:
        with self._lock:
            return list(self._components)

    # -- construction ---------------------------------------------------------

    def new_component(
        self,
        name: str,
        raw_name: str = "",
        type: str = "",
        description: str = "",
        format: str = "",
        version: str = "",
        required: bool | None = None,
        null: bool | None = None,
        latest: bool = False,
        enums: list[str] | None = None,
        source: ComponentSource = ComponentSource.UNKNOWN,
        ref: Ref | None = None,
        raw: Any = None,
        source_doc: str = "",
        properties: list[Property] | None = None,
        replace_or_merge: bool = False,
    ) -> Component:
        """Create a component, or return the stored one it duplicates.

        With replace_or_merge the registry's merge policy is applied to the
        stored match before it is returned.
        """
        if not name:
            raise ValidationError("component must have a name")

        candidate = Component(
            name=name,
            raw_name=raw_name,
            type=type,
            description=description,
            format=format,
            version=version,
            required=required,
            null=null,
            latest=latest,
            enums=enums or [],
            source=source,
            ref=ref,
            raw=raw,
            source_doc=source_doc,
            properties=properties or [],
        )

        with self._lock:
            existing = self._find_match(candidate)
            if existing is not None:
                if replace_or_merge:
                    self._apply_policy(existing, candidate, self.policy)
                return existing
            candidate.id = self._ids.next_id()
            self._append(candidate)
            return candidate

    def new_property(
        self,
        name: str,
        raw_name: str = "",
        type: str = "",
        description: str = "",
        format: str = "",
        version: str = "",
        required: bool | None = None,
        null: bool | None = None,
        latest: bool = False,
        enums: list[str] | None = None,
        ref: Ref | None = None,
        raw: Any = None,
    ) -> Property:
        """Build a Property with an id from the same generator as components."""
        if not name:
            raise ValidationError("property must have a name")
        return Property(
            id=self._ids.next_id(),
            name=name,
            raw_name=raw_name,
            type=type,
            description=description,
            format=format,
            version=version,
            required=required,
            null=null,
            latest=latest,
            enums=enums or [],
            ref=ref,
            raw=raw,
        )

    def merge(self, component: Component, policy: MergePolicy | None = None, fresh_id: bool = False) -> Component:
        """Adopt a component built elsewhere; returns the stored instance.

        A match is resolved with the given policy (default: the registry's).
        A non-matching component is appended, taking a fresh id when asked to
        or when its own is unset or already used here.
        """
        with self._lock:
            if any(comp is component for comp in self._components):
                return component
            existing = self._find_match(component)
            if existing is not None:
                if existing is not component:
                    self._apply_policy(existing, component, policy or self.policy)
                return existing
            if fresh_id or not component.id or self._find_by_id(component.id) is not None:
                component.id = self._ids.next_id()
            self._append(component)
            return component

    def replace_all(self, components: list[Component]) -> None:
        with self._lock:
            self._components = list(components)
            self._sort()

    # -- lookup ---------------------------------------------------------------

    def find_component_by_id(self, id: int) -> Component | None:
        with self._lock:
            return self._find_by_id(id)

    def find_component_by_name(self, name: str) -> Component | None:
        wanted = name.casefold()
        with self._lock:
            for comp in self._components:
                if comp.name.casefold() == wanted:
                    return comp
        return None

    def find_components_by_ids(self, components: list[Component]) -> list[Component]:
        """Return the stored counterparts of the given components, by id."""
        found = []
        for comp in components:
            stored = self.find_component_by_id(comp.id)
            if stored is not None:
                found.append(stored)
        return found

    def find_component_by_comparison(self, component: Component) -> Component | None:
        with self._lock:
            return self._find_match(component)

    def resolve_ref(self, ref: Ref | None) -> Component | None:
        """Follow a component ref by id, or by name for a placeholder."""
        if ref is None or not ref.is_component:
            return None
        if isinstance(ref.value, int):
            return self.find_component_by_id(ref.value)
        return self.find_component_by_name(ref.value)

    # -- filters --------------------------------------------------------------

    def get_defined_components(self) -> list[Component]:
        return [c for c in self.all() if c.source == ComponentSource.COMPONENT]

    def get_parameter_components(self) -> list[Component]:
        return [c for c in self.all() if c.source == ComponentSource.PARAMETER]

    def get_inlined_components(self) -> list[Component]:
        return [c for c in self.all() if c.source in INLINED_SOURCES]

    def get_latest_components(self) -> list[Component]:
        return [c for c in self.all() if c.latest]

    def refresh_latest(self) -> None:
        """Mark the highest version latest among same-named components.

        Only groups where more than one component carries a version are
        touched; a lone or unversioned component keeps its own flag.
        """
        with self._lock:
            groups: dict[tuple, list[Component]] = {}
            for comp in self._components:
                if comp.version:
                    groups.setdefault((comp.name.casefold(), comp.source), []).append(comp)
            for members in groups.values():
                if len(members) < 2:
                    continue
                newest = max(version_key(c.version) for c in members)
                for comp in members:
                    comp.latest = version_key(comp.version) == newest

    # -- internals ------------------------------------------------------------

    def _find_by_id(self, id: int) -> Component | None:
        for comp in self._components:
            if comp.id == id:
                return comp
        return None

    def _find_match(self, component: Component) -> Component | None:
        for comp in self._components:
            if components_match(comp, component):
                return comp
        return None

    def _append(self, component: Component) -> None:
        self._record_ambiguity(component)
        self._components.append(component)
        self._sort()

    def _sort(self) -> None:
        # list.sort is stable: equal names keep insertion order
        self._components.sort(key=lambda c: c.name)

    def _record_ambiguity(self, incoming: Component) -> None:
        if not incoming.source_doc:
            return
        for comp in self._components:
            if (
                comp.name.casefold() == incoming.name.casefold()
                and comp.source_doc.lower() == incoming.source_doc.lower()
            ):
                differing = _differing_shape(comp, incoming)
                if differing:
                    ambiguity = MergeAmbiguity(
                        name=incoming.name,
                        source_doc=incoming.source_doc,
                        existing_id=comp.id,
                        incoming_id=incoming.id,
                        differing=differing,
                    )
                    self.ambiguities.append(ambiguity)
                    logger.warning(
                        "Ambiguous component %r in %s: differs on %s from component %d, keeping both",
                        incoming.name,
                        incoming.source_doc,
                        ", ".join(differing),
                        comp.id,
                    )

    def _apply_policy(self, existing: Component, incoming: Component, policy: MergePolicy) -> None:
        if policy == MergePolicy.KEEP_EXISTING:
            logger.debug("Duplicate component %r (id %d) ignored", incoming.name, existing.id)
        elif policy == MergePolicy.REPLACE:
            replace_fields(existing, incoming)
        elif policy == MergePolicy.UNION:
            fill_unset_fields(existing, incoming)
            existing.enums = union_list(existing.enums, incoming.enums, key=lambda e: e)
            existing.properties = sorted(
                union_list(existing.properties, incoming.properties, key=lambda p: p.name.casefold()),
                key=lambda p: p.name,
            )
