"""Error types raised and collected by the codegen engine."""

from dataclasses import dataclass


class CodegenError(Exception):
    """Base class for all codegen errors."""


class ValidationError(CodegenError, ValueError):
    """A required field is missing; the entity was not created."""


class LoadError(CodegenError):
    """A source could not be fetched, parsed or loaded by a loader."""

    def __init__(self, message: str, source: str = "", loader: str = ""):
        super().__init__(message)
        self.source = source
        self.loader = loader


class GenerateError(CodegenError):
    """A generator (or type generator) failed for one target."""

    def __init__(self, message: str, target: str = ""):
        super().__init__(message)
        self.target = target


class LintError(CodegenError):
    """A linter rejected a source."""


@dataclass
class MergeAmbiguity:
    """Two components agree on name and source document but not on shape.

    Both are kept; the record lets callers review the conflict.
    """

    name: str
    source_doc: str
    existing_id: int
    incoming_id: int
    differing: list[str]
