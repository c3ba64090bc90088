"""Helpers shared by the query commands."""

from __future__ import annotations

import sys

import click

from querydoc.config import Config
from querydoc.document import Document
from querydoc.fields import FREE_TEXT_MODES
from querydoc.query import parse_query_to_doc

query_argument = click.argument("query", required=False, default="-")

mode_option = click.option(
    "--mode",
    "-m",
    type=click.Choice(FREE_TEXT_MODES),
    default=None,
    help="Free text mode (default: from config)",
)


def read_query(query: str) -> str:
    """Return ``query``, reading stdin when it is ``-``."""
    if query == "-":
        return " ".join(sys.stdin.read().split())
    return query


def with_mode(config: Config, mode: str | None) -> Config:
    if mode is not None:
        config.free_text_mode = mode
    return config


def parse_with_config(query: str, config: Config) -> Document:
    return parse_query_to_doc(
        query,
        config.fields,
        free_text_mode=config.free_text_mode,  # type: ignore[arg-type]
        allow_unknown_fields=config.allow_unknown_fields,
        unknown_field_operators=config.unknown_field_operators,
        delimiter=config.delimiter,
    )
