"""Category loggers for the codegen engine.

Every module logs through one of the category loggers below so output can be
switched on per area (core, loaders, generators, deployers).
"""

import logging

CORE = "core"
LOADERS = "loaders"
GENERATORS = "generators"
DEPLOYERS = "deployers"

CATEGORIES = (CORE, LOADERS, GENERATORS, DEPLOYERS)

ROOT_LOGGER = "api_codegen"


class _CategoryFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        category = record.name.rsplit(".", 1)[-1].upper()
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return f"ERROR: [{category}] {message}"
        return f"[{category}] {message}"


def get_logger(category: str) -> logging.Logger:
    """Return the logger for a category, e.g. get_logger(LOADERS)."""
    return logging.getLogger(f"{ROOT_LOGGER}.{category}")


def configure_logging(level: int = logging.INFO, categories: list[str] | None = None) -> None:
    """Attach a console handler and enable only the given categories.

    Categories left out are silenced. None enables all of them.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    for handler in [h for h in root.handlers if getattr(h, "_api_codegen", False)]:
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(_CategoryFormatter("%(message)s"))
    handler._api_codegen = True
    root.addHandler(handler)

    allowed = set(categories) if categories is not None else set(CATEGORIES)
    for category in CATEGORIES:
        get_logger(category).disabled = category not in allowed
