"""Helpers shared by generators: configuration variables and file output."""

import json
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as SchemaError

from api_codegen.contracts import Formatter
from api_codegen.log import GENERATORS, get_logger

logger = get_logger(GENERATORS)


def apply_variables(generator: Any, variables: Mapping[str, Any]) -> list[str]:
    """Copy variables onto a generator's configuration by field name.

    The target is the generator's `config` attribute when it has one, else the
    generator itself. Unknown keys are ignored; values that do not fit a field
    are logged and skipped. Returns the names that were set.
    """
    try:
        data = json.loads(json.dumps(dict(variables)))
    except (TypeError, ValueError) as e:
        logger.error("Error converting variables to json: %s", e)
        return []

    target = generator.config if hasattr(generator, "config") else generator
    applied = []

    if isinstance(target, BaseModel):
        fields = type(target).model_fields
        names = {name: name for name in fields}
        names.update({f.alias: name for name, f in fields.items() if f.alias})
        for key, value in data.items():
            name = names.get(key)
            if name is None:
                continue
            try:
                coerced = TypeAdapter(fields[name].annotation).validate_python(value)
                setattr(target, name, coerced)
            except SchemaError as e:
                logger.warning("Variable %r does not fit %s.%s: %s", key, type(target).__name__, name, e)
                continue
            applied.append(name)
        return applied

    for key, value in data.items():
        if hasattr(target, key) and not callable(getattr(target, key)):
            setattr(target, key, value)
            applied.append(key)
    return applied


def write_to_file(path: str | Path, filename: str, contents: str | bytes, formatter: Formatter | None = None) -> Path:
    """Write contents to path/filename, creating directories as needed.

    A formatter, if given, is applied first; a formatter error is logged and
    the unformatted contents are written.
    """
    if isinstance(contents, str):
        contents = contents.encode("utf-8")

    if formatter is not None:
        try:
            contents = formatter.format(contents)
        except Exception as e:
            logger.error("Error trying to format %s: %s", filename, e)

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    file_path = directory / filename
    file_path.write_bytes(contents)
    return file_path
