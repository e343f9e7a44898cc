"""Snapshot generator: writes the unified model it receives as YAML or JSON.

Useful on its own for inspecting what the loaders produced, and as the
reference implementation of the Generator contract.
"""

import json
from typing import Any, Literal

import yaml
from pydantic import BaseModel

from api_codegen.contracts import GeneratorContext
from api_codegen.generators.base import write_to_file


class SnapshotConfig(BaseModel):
    format: Literal["yaml", "json"] = "yaml"
    filename: str = "model"
    latest_only: bool = False  # only resources flagged latest


class SnapshotGenerator:
    """Dumps resources, components, workflows and variables to one file."""

    def __init__(self, config: SnapshotConfig | None = None):
        self.config = config or SnapshotConfig()

    def generate(self, output_path: str, context: GeneratorContext) -> None:
        filename = f"{self.config.filename}.{self.config.format}"
        write_to_file(output_path, filename, self.render(context))

    def render(self, context: GeneratorContext) -> str:
        data = self._to_data(context)
        if self.config.format == "json":
            return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)

    def _to_data(self, context: GeneratorContext) -> dict[str, Any]:
        resources = context.latest_resources() if self.config.latest_only else list(context.resources)
        return {
            "resources": [r.model_dump(mode="json", by_alias=True) for r in resources],
            "components": [c.model_dump(mode="json", by_alias=True) for c in context.components],
            "workflows": [w.model_dump(mode="json", by_alias=True) for w in context.workflows],
            "variables": context.variables,
        }
