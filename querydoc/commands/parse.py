"""Show how a query string is split into filters, free text and plain text."""

from __future__ import annotations

import json

import click

from querydoc.cli import Context, pass_context
from querydoc.commands._common import mode_option, parse_with_config, query_argument, read_query, with_mode
from querydoc.query import create_query_snapshot
from querydoc.utils.output import console, info, render_query, segment_table


@click.command("parse")
@query_argument
@mode_option
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the snapshot as JSON")
@pass_context
def cli(ctx: Context, query: str, mode: str | None, as_json: bool) -> None:
    """Parse QUERY and print its segments.

    Reads the query from stdin when QUERY is omitted or '-'.

    Examples:

    \b
      querydoc parse 'status:is:active "needs review" later'
      echo 'tag:contains:ui' | querydoc parse --json
    """
    config = with_mode(ctx.require_config(), mode)
    doc = parse_with_config(read_query(query), config)
    snapshot = create_query_snapshot(doc, config.delimiter)

    if as_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2))
        return

    if not snapshot.segments:
        info("Query is empty.")
        return

    console.print(segment_table(snapshot))
    if ctx.verbose:
        console.print(render_query(snapshot, config.delimiter))
