"""querydoc: consistency and validation engine for structured-query documents."""

__version__ = "0.4.0"
