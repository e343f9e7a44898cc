"""Fetching and decoding source documents."""

import json
from pathlib import Path
from typing import Any

import httpx
import yaml

from api_codegen.config import SourceType
from api_codegen.errors import LoadError

DEFAULT_TIMEOUT = 30.0


def detect_source_type(location: str) -> SourceType:
    """URL for http(s) locations, FILE for everything else."""
    if location.startswith(("http://", "https://")):
        return SourceType.URL
    return SourceType.FILE


def load_source_contents(location: str, timeout: float | None = DEFAULT_TIMEOUT) -> bytes:
    """Read the raw bytes at a file path or http(s) URL."""
    if detect_source_type(location) == SourceType.URL:
        try:
            response = httpx.get(location, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LoadError(f"Unable to fetch {location}: {e}", source=location) from e
        return response.content

    try:
        return Path(location).read_bytes()
    except OSError as e:
        raise LoadError(f"Unable to read {location}: {e}", source=location) from e


def parse_document(content: bytes | str) -> Any:
    """Decode a YAML or JSON document."""
    if isinstance(content, bytes):
        content = content.decode("utf-8")

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError:
        pass

    # JSON that YAML rejects (tabs in indentation, for instance)
    try:
        return json.loads(content)
    except (json.JSONDecodeError, ValueError) as e:
        raise LoadError(f"Document is neither YAML nor JSON: {e}") from e
