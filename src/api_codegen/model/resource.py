"""Resources: individual API operations (method + path) and their registry."""

from __future__ import annotations

import re
import threading
from enum import Enum, IntFlag
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field

from api_codegen.errors import ValidationError
from api_codegen.ids import IdGenerator, default_ids
from api_codegen.log import CORE, get_logger
from api_codegen.model.component import Component
from api_codegen.model.merge import (
    MergePolicy,
    fill_unset_fields,
    replace_fields,
    union_list,
    version_key,
)
from api_codegen.naming import remove_whitespace_and_caps, to_camel_case

logger = get_logger(CORE)

_PATH_VARIABLE_RE = re.compile(r"{[^{}]*}")


class ResourceType(IntFlag):
    HTTP = 1
    GRPC = 2
    ASYNC = 4
    WEBSOCKET = 8
    GRAPHQL = 16
    SOAP = 32
    RPC = 64
    FOLDER = 1024  # a grouping marker in a collection, not a callable operation


class ParameterIn(str, Enum):
    PATH = "path"
    HEADER = "header"
    COOKIE = "cookie"
    QUERY = "query"


class Parameter(BaseModel):
    """A single operation parameter (query, path, header, or cookie)."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    in_: ParameterIn = Field(default=ParameterIn.QUERY, alias="in")
    description: str = ""
    required: bool = False
    type: str = ""  # string / integer / boolean / array / object
    format: str = ""
    variable_name_value: str = ""
    variable_name_key: str = ""
    value: str = ""
    components: list[Component] = []  # set when the parameter carries an object/array schema


class Request(BaseModel):
    """One request body variant of an operation."""

    model_config = ConfigDict(populate_by_name=True)

    required: bool = False
    content_type: str = ""
    ref: str = ""  # source reference, e.g. #/components/requestBodies/Pet
    type: str = ""  # JSON, XML, ... simpler than parsing the content type
    default: bool = False
    schema_: Component | None = Field(default=None, alias="schema")


class ResponseBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    media_type: str = ""
    ref: str = ""
    default: bool = False
    schema_: Component | None = Field(default=None, alias="schema")
    example: str = ""


class Response(BaseModel):
    status: str
    description: str = ""
    response_bodies: list[ResponseBody] = []


class Resource(BaseModel):
    """One API operation, identified by method + normalized path."""

    id: int = 0
    path: str = Field(min_length=1)
    method: str = Field(min_length=1)
    resource_id: str = ""  # method:normalized/path, see make_unique_id
    root: str = ""  # first path segment, groups sub-resources together
    name: str = ""
    description: str = ""
    summary: str = ""
    deprecated: bool = False
    resource_type: ResourceType = ResourceType.HTTP
    parameters: list[Parameter] = []
    requests: list[Request] = []
    responses: list[Response] = []
    components: list[Component] = []
    variables: dict[str, str] = {}
    source: str = ""  # which kind of loader produced this (openapi, collection, ...)
    source_doc: str = ""
    version: str = ""
    owner: str = ""  # e.g. the API title; with resource_id forms lookup identity
    latest: bool = False

    @property
    def identity(self) -> tuple[str, str]:
        return (self.resource_id, self.owner)


def make_unique_id(path: str, method: str) -> str:
    """Build the resource id: method:path without query, leading slash or braces.

    make_unique_id("/users/{userId}/orders", "get") == "get:users/userId/orders"
    """
    s = path
    index = path.find("?")
    if index > 0:
        s = path[:index]
    if path.startswith("/"):
        s = s[1:]
    s = _PATH_VARIABLE_RE.sub(lambda m: m.group(0)[1:-1], s)
    return f"{method}:{s}"


def make_root(path: str) -> str:
    """/users/{id}/grades -> /users; a path without a second slash is its own root."""
    if path.startswith("/"):
        index = path.find("/", 1)
        if index > 1:
            return path[:index]
    return path


def make_resource_name(name: str, method: str, path: str, sub_path: str = "") -> str:
    """Name an operation, deriving one from method + path when name is empty."""
    if name:
        return to_camel_case(remove_whitespace_and_caps(name), False)
    if not sub_path or sub_path == "/":
        return to_camel_case(method + remove_whitespace_and_caps(path), False)
    return to_camel_case(method + remove_whitespace_and_caps(sub_path), False)


class ResourceRegistry:
    """Canonical store of Resources, in insertion order."""

    def __init__(self, ids: IdGenerator | None = None, policy: MergePolicy = MergePolicy.KEEP_EXISTING):
        self._ids = ids or default_ids
        self.policy = policy
        self._lock = threading.RLock()
        self._resources: list[Resource] = []

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self.all())

    def all(self) -> list[Resource]:
        with self._lock:
            return list(self._resources)

    # -- construction ---------------------------------------------------------

    def new_resource(
        self,
        path: str,
        method: str,
        name: str = "",
        description: str = "",
        summary: str = "",
        source: str = "",
        version: str = "",
        owner: str = "",
        deprecated: bool = False,
        latest: bool = False,
        resource_type: ResourceType = ResourceType.HTTP,
        source_doc: str = "",
    ) -> Resource:
        """Create and append a resource.

        No dedup happens here: loaders call find_resource() first and decide
        whether to reuse, merge or add.
        """
        if not path or not method:
            raise ValidationError("resource must have a path and method")

        resource = Resource(
            id=self._ids.next_id(),
            path=path,
            method=method,
            resource_id=make_unique_id(path, method),
            root=make_root(path),
            name=name,
            description=description,
            summary=summary,
            source=source,
            source_doc=source_doc,
            version=version,
            owner=owner,
            deprecated=deprecated,
            latest=latest,
            resource_type=resource_type,
        )
        with self._lock:
            self._resources.append(resource)
        return resource

    def merge(self, resource: Resource, policy: MergePolicy | None = None, fresh_id: bool = False) -> Resource:
        """Adopt a resource built elsewhere; returns the stored instance.

        Identity is (resource_id, owner). A match carrying a different
        non-empty version is kept alongside as another version; any other
        match is resolved with the merge policy.
        """
        if not resource.resource_id:
            resource.resource_id = make_unique_id(resource.path, resource.method)
        if not resource.root:
            resource.root = make_root(resource.path)

        with self._lock:
            for existing in self._resources:
                if existing.identity != resource.identity:
                    continue
                if existing is resource:
                    return existing
                if existing.version and resource.version and existing.version != resource.version:
                    continue
                self._apply_policy(existing, resource, policy or self.policy)
                return existing

            if fresh_id or not resource.id or self._find_by_id(resource.id) is not None:
                resource.id = self._ids.next_id()
            self._resources.append(resource)
            return resource

    def replace_all(self, resources: list[Resource]) -> None:
        with self._lock:
            self._resources = list(resources)

    def remove_resource(self, resource_id: str) -> None:
        """Remove every stored resource with the given resource_id."""
        with self._lock:
            self._resources = [r for r in self._resources if r.resource_id != resource_id]

    # -- lookup ---------------------------------------------------------------

    def find_resource(self, path: str, method: str, owner: str = "") -> Resource | None:
        found = self.find_resources(path, method, owner)
        return found[0] if found else None

    def find_resources(self, path: str, method: str, owner: str = "") -> list[Resource]:
        """All stored versions of a method + path for one owner."""
        wanted = (make_unique_id(path, method), owner)
        with self._lock:
            return [r for r in self._resources if r.identity == wanted]

    def find_resource_by_identity(self, resource_id: str, owner: str = "", version: str = "") -> Resource | None:
        """First stored resource with this identity; a non-empty version must match too."""
        with self._lock:
            for res in self._resources:
                if res.identity == (resource_id, owner) and (not version or res.version == version):
                    return res
        return None

    def find_resource_by_name(self, name: str) -> Resource | None:
        wanted = name.casefold()
        with self._lock:
            for res in self._resources:
                if res.name.casefold() == wanted:
                    return res
        return None

    def find_resource_by_id(self, id: int) -> Resource | None:
        with self._lock:
            return self._find_by_id(id)

    def get_resources_by_hierarchy(self) -> dict[str, list[Resource]]:
        """Group resources by root: {"/users": [...], "/pets": [...]}"""
        groups: dict[str, list[Resource]] = {}
        for res in self.all():
            groups.setdefault(res.root, []).append(res)
        return groups

    def get_latest_resources(self) -> list[Resource]:
        return [r for r in self.all() if r.latest]

    def refresh_latest(self) -> None:
        """Within each identity holding several versions, mark only the newest latest."""
        with self._lock:
            groups: dict[tuple[str, str], list[Resource]] = {}
            for res in self._resources:
                if res.version:
                    groups.setdefault(res.identity, []).append(res)
            for members in groups.values():
                if len(members) < 2:
                    continue
                newest = max(version_key(r.version) for r in members)
                for res in members:
                    res.latest = version_key(res.version) == newest

    # -- internals ------------------------------------------------------------

    def _find_by_id(self, id: int) -> Resource | None:
        for res in self._resources:
            if res.id == id:
                return res
        return None

    def _apply_policy(self, existing: Resource, incoming: Resource, policy: MergePolicy) -> None:
        if policy == MergePolicy.KEEP_EXISTING:
            logger.debug("Duplicate resource %s (owner %r) ignored", incoming.resource_id, incoming.owner)
        elif policy == MergePolicy.REPLACE:
            replace_fields(existing, incoming)
        elif policy == MergePolicy.UNION:
            fill_unset_fields(existing, incoming)
            existing.parameters = union_list(
                existing.parameters, incoming.parameters, key=lambda p: (p.name, p.in_)
            )
            existing.requests = union_list(existing.requests, incoming.requests, key=lambda r: r.content_type)
            existing.responses = union_list(existing.responses, incoming.responses, key=lambda r: r.status)
            existing.components = union_list(existing.components, incoming.components, key=lambda c: c.id)
            existing.variables = {**incoming.variables, **existing.variables}
