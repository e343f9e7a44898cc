"""api-codegen: unify API sources into one model and generate from it."""

__version__ = "0.1.0"
