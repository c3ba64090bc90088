"""Validate a query string against the configured rules."""

from __future__ import annotations

import click

from querydoc.cli import Context, pass_context
from querydoc.commands._common import mode_option, parse_with_config, query_argument, read_query, with_mode
from querydoc.utils.output import console, debug, error, success, verbose, violation_table
from querydoc.validation import collect_tokens, run_validation


@click.command("check")
@query_argument
@mode_option
@click.option(
    "--fix",
    is_flag=True,
    default=False,
    help="Apply the rules in an editor and print the resulting query",
)
@pass_context
def cli(ctx: Context, query: str, mode: str | None, fix: bool) -> None:
    """Check QUERY against the rules in the config file.

    Prints one row per rule violation. Exits with code 1 if any rule is
    violated. With --fix, the query is loaded into an editor, the rules
    mark or remove tokens as configured, and the result is printed.

    \b
      querydoc check 'status:is:active status:is:inactive'
      querydoc check --fix 'tag:is:a tag:is:b tag:is:c tag:is:d'
    """
    config = with_mode(ctx.require_config(), mode)
    text = read_query(query)
    rules = config.build_rules()

    if not rules:
        verbose("No validation rules configured.")
    debug(f"rules: {', '.join(rule.id for rule in rules) or '-'}")

    if fix:
        editor = config.create_editor(value=text)
        click.echo(editor.get_value())
        return

    doc = parse_with_config(text, config)
    tokens = collect_tokens(doc)
    violations = run_validation(tokens, config.fields, rules)
    by_id = {t.id: t for t in tokens}

    if not violations:
        if not ctx.quiet:
            success(f"No violations in {len(tokens)} token(s).")
        return

    d = config.delimiter
    rows = []
    for violation in violations:
        for target in violation.targets:
            token = by_id.get(target.token_id)
            if token is None:
                continue
            shown = f"{token.key}{d}{token.operator}{d}{token.value}" if token.key else token.value
            rows.append((shown, violation.rule_id, violation.action, violation.message or violation.reason))

    console.print(violation_table(rows))
    error(f"{len(violations)} rule violation(s) found")
    raise SystemExit(1)
