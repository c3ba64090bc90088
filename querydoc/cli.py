"""Command-line interface for querydoc."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click

from querydoc import __version__
from querydoc.config import Config, load_config
from querydoc.exceptions import QueryDocError
from querydoc.fields import validate_delimiter
from querydoc.utils.output import error, set_color, set_verbosity, warning

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class Context:
    """State handed from the group to every subcommand."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: bool = False
        self.debug: bool = False
        self.quiet: bool = False

    def require_config(self) -> Config:
        """The loaded config, or defaults when the group did not load one."""
        if self.config is None:
            self.config = Config()
        return self.config


pass_context = click.make_pass_decorator(Context, ensure=True)


def _configure_logging(verbose: bool, debug: bool) -> None:
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def _color_disabled(no_color: bool) -> bool:
    return no_color or os.environ.get("NO_COLOR") is not None


def _load(path: Path | None, delimiter: str | None) -> tuple[Config, list[str]]:
    config, warnings = load_config(path)
    if delimiter is not None:
        config.delimiter = validate_delimiter(delimiter)
    return config, warnings


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    help="Config file with fields and rules (default: ~/.config/querydoc/config.toml)",
)
@click.option(
    "--delimiter",
    "-d",
    default=None,
    metavar="CHAR",
    help="Character between key, operator and value (overrides config)",
)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output (implies --verbose)")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.version_option(version=__version__, prog_name="querydoc")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    delimiter: str | None,
    no_color: bool,
    verbose: bool,
    debug: bool,
    quiet: bool,
) -> None:
    """querydoc: parse, check and normalize structured query strings.

    Queries mix filters such as status:is:active with free text. Field
    definitions and validation rules are loaded from
    ~/.config/querydoc/config.toml by default. Use --config to specify an
    alternative configuration file.

    Examples:

        # Show how a query is tokenized
        querydoc parse 'status:is:active "needs review"'

        # Report tokens that break the configured rules
        querydoc check 'status:is:active status:is:inactive'

        # Queries written with another delimiter
        querydoc -d = normalize 'status=active'
    """
    app_ctx = ctx.ensure_object(Context)
    app_ctx.verbose = verbose or debug
    app_ctx.debug = debug
    app_ctx.quiet = quiet

    set_verbosity(verbose=verbose, debug=debug)
    _configure_logging(verbose, debug)

    disable_color = _color_disabled(no_color)
    if disable_color:
        set_color(False)

    try:
        app_ctx.config, warnings = _load(config_path, delimiter)
    except QueryDocError as e:
        error(str(e))
        ctx.exit(1)
        return

    if not disable_color and not app_ctx.config.colored_output:
        set_color(False)

    if not quiet:
        for message in warnings:
            warning(message)


@cli.command("help")
@click.argument("command", required=False, nargs=-1)
@click.pass_context
def help_cmd(ctx: click.Context, command: tuple[str, ...]) -> None:
    """Show help for COMMAND, or for querydoc itself."""
    target: click.Command = cli
    for name in command:
        found = target.get_command(ctx, name) if isinstance(target, click.Group) else None
        if found is None:
            error(f"Unknown command: {name}")
            ctx.exit(1)
            return
        target = found
    click.echo(target.get_help(ctx))


def register_commands() -> None:
    """Attach every command module found in :mod:`querydoc.commands`."""
    from querydoc.commands import discover_commands

    for command in discover_commands():
        cli.add_command(command)


register_commands()
