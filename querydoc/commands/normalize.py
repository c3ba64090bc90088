"""Print the canonical form of a query string."""

from __future__ import annotations

import click

from querydoc.cli import Context, pass_context
from querydoc.commands._common import mode_option, parse_with_config, query_argument, read_query, with_mode
from querydoc.query import serialize_doc_to_query


@click.command("normalize")
@query_argument
@mode_option
@pass_context
def cli(ctx: Context, query: str, mode: str | None) -> None:
    """Print QUERY in canonical form.

    Operators are filled in, enum values resolved, values quoted where
    needed and parts joined by single spaces. Normalizing the output again
    gives the same string.

    \b
      querydoc normalize 'status:Active   "a b"'
    """
    config = with_mode(ctx.require_config(), mode)
    doc = parse_with_config(read_query(query), config)
    click.echo(serialize_doc_to_query(doc, config.delimiter))
