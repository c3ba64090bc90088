"""Console helpers shared by the CLI commands."""

from querydoc.utils.output import (
    console,
    error,
    info,
    render_query,
    segment_table,
    success,
    violation_table,
    warning,
)

__all__ = [
    "console",
    "error",
    "info",
    "render_query",
    "segment_table",
    "success",
    "violation_table",
    "warning",
]
