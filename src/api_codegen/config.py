"""Engine configuration, sources and generation targets."""

from enum import IntEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class CodegenConfig(BaseModel):
    """Run configuration.

    variables are applied to generators, aliases are handed to loaders.
    bespoke_workflow trims the model to what workflows use before generating.
    With lint on, sources are linted; validate additionally drops a source
    that fails linting instead of only logging it.
    """

    model_config = ConfigDict(populate_by_name=True)

    variables: dict[str, Any] = {}
    aliases: dict[str, str] = {}  # long value -> short value
    bespoke_workflow: bool = Field(default=False, alias="bespoke")
    lint: bool = False
    validate_sources: bool = Field(default=False, alias="validate")

    @classmethod
    def from_file(cls, file_path: Path) -> "CodegenConfig":
        """Read a YAML (or JSON) config file."""
        data = yaml.safe_load(Path(file_path).read_text(encoding="utf-8")) or {}
        return cls.model_validate(data)

    def find_alias(self, key: str) -> str | None:
        return self.aliases.get(key)


class SourceType(IntEnum):
    FILE = 0
    URL = 1
    API = 2


class Source(BaseModel):
    """One input document, by location and optionally with its content."""

    type: SourceType = SourceType.FILE
    path: str
    content: bytes | None = None
    loaded: bool = False


class Target(BaseModel):
    """A generator to run, addressed as name[/type][/variant]."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    variant: str = ""
    type: str = ""
    generator: Any = None  # resolved from the engine's registered generators when unset
    configuration: CodegenConfig | None = None  # overrides the run config for this target

    @property
    def label(self) -> str:
        return f"{self.name}-{self.variant}"
