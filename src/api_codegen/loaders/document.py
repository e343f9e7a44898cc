"""Loaders for the canonical model document.

A model document is the structured payload that crosses the loader plugin
boundary:

    resources: [...]
    components: [...]
    workflows: [...]

ModelDocumentLoader reads one from a file or URL (YAML or JSON);
ExtensionLoader adapts any callable that returns one, such as a call into an
out-of-process plugin.
"""

from typing import Any, Callable

from pydantic import ValidationError as SchemaError

from api_codegen.contracts import LoaderResources, Shared
from api_codegen.errors import LoadError
from api_codegen.ids import IdGenerator
from api_codegen.log import LOADERS, get_logger
from api_codegen.sources import load_source_contents, parse_document

logger = get_logger(LOADERS)

MODEL_KEYS = ("resources", "components", "workflows")


def is_model_document(data: Any) -> bool:
    return isinstance(data, dict) and any(key in data for key in MODEL_KEYS)


def _items(entity: dict, key: str) -> list:
    value = entity.get(key)
    return value if isinstance(value, list) else []


def apply_provenance(data: dict, source_doc: str, aliases: dict[str, str] | None = None) -> dict:
    """Fill missing source_doc values and shorten aliased source_doc / owner values.

    Components embedded in resources, workflow inputs and step resources are
    stamped as well, so they deduplicate against the document's own
    top-level entities.
    """
    aliases = aliases or {}

    def shorten(value: str) -> str:
        return aliases.get(value, value)

    def stamp(entity: Any) -> None:
        if not isinstance(entity, dict):
            return
        entity["source_doc"] = shorten(entity.get("source_doc") or source_doc)
        if entity.get("owner"):
            entity["owner"] = shorten(entity["owner"])

    def stamp_resource(resource: Any) -> None:
        if not isinstance(resource, dict):
            return
        stamp(resource)
        for param in _items(resource, "parameters"):
            if isinstance(param, dict):
                for component in _items(param, "components"):
                    stamp(component)
        for request in _items(resource, "requests"):
            if isinstance(request, dict):
                stamp(request.get("schema", request.get("schema_")))
        for response in _items(resource, "responses"):
            if isinstance(response, dict):
                for body in _items(response, "response_bodies"):
                    if isinstance(body, dict):
                        stamp(body.get("schema", body.get("schema_")))
        for component in _items(resource, "components"):
            stamp(component)

    def stamp_step(step: Any) -> None:
        if isinstance(step, dict):
            stamp_resource(step.get("resource"))
            stamp_step(step.get("step"))

    for component in _items(data, "components"):
        stamp(component)
    for resource in _items(data, "resources"):
        stamp_resource(resource)
    for workflow in _items(data, "workflows"):
        if isinstance(workflow, dict):
            for component in _items(workflow, "inputs"):
                stamp(component)
            for step in _items(workflow, "steps"):
                stamp_step(step)
    return data


class ModelDocumentLoader:
    """Loads a model document from a file path or http(s) URL."""

    def __init__(self, ids: IdGenerator | None = None):
        self.ids = ids

    def load(self, location: str, shared: Shared) -> LoaderResources:
        content = shared.get("content")
        if content is None:
            content = load_source_contents(location)

        data = parse_document(content)
        if not is_model_document(data):
            raise LoadError(f"{location} is not a model document", source=location)

        apply_provenance(data, location, shared.get("aliases"))
        try:
            loaded = LoaderResources.from_document(data, self.ids)
        except SchemaError as e:
            raise LoadError(f"Invalid model document {location}: {e}", source=location) from e

        logger.info(
            "Loaded %d resources, %d components, %d workflows from %s",
            len(loaded.resources),
            len(loaded.components),
            len(loaded.workflows),
            location,
        )
        return loaded


class ExtensionLoader:
    """Wraps a callable returning a model document (dict, JSON/YAML text or bytes)."""

    def __init__(self, call: Callable[[str, Shared], Any], ids: IdGenerator | None = None):
        self.call = call
        self.ids = ids

    def load(self, location: str, shared: Shared) -> LoaderResources:
        payload = self.call(location, shared)
        if isinstance(payload, (bytes, str)):
            payload = parse_document(payload)
        if payload is None:
            return LoaderResources.create(self.ids)
        if not is_model_document(payload):
            raise LoadError("extension returned something other than a model document", source=location)

        try:
            return LoaderResources.from_document(payload, self.ids)
        except SchemaError as e:
            raise LoadError(f"Invalid extension payload for {location}: {e}", source=location) from e
