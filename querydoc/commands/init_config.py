"""Write the bundled example config to disk."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import click

from querydoc.cli import Context, pass_context
from querydoc.config import get_default_config_path
from querydoc.utils.output import error, info, success

EXAMPLE_CONFIG = "config.example.toml"


def _load_example_config() -> str:
    return resources.files("querydoc").joinpath(EXAMPLE_CONFIG).read_text(encoding="utf-8")


def _target_path(output: Path | None) -> Path:
    path = get_default_config_path() if output is None else output
    return path.expanduser().resolve()


@click.command("init-config")
@click.option("--force", "-f", is_flag=True, help="Replace an existing file")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the file (default: ~/.config/querydoc/config.toml)",
)
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the example instead of writing it")
@pass_context
def cli(ctx: Context, force: bool, output: Path | None, to_stdout: bool) -> None:
    """Write an example config with fields and rules to edit.

    \b
      querydoc init-config
      querydoc init-config -o ./querydoc.toml --force
      querydoc init-config --stdout > querydoc.toml
    """
    content = _load_example_config()
    if to_stdout:
        click.echo(content, nl=False)
        return

    target = _target_path(output)
    if target.exists() and not force:
        error(f"Config file already exists: {target}", hint="Use --force to overwrite")
        raise SystemExit(1)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        error(f"Cannot write {target}: {e}")
        raise SystemExit(1) from e

    success(f"Wrote {target}")
    if not ctx.quiet:
        info("Describe your queries in its [[fields]] and [[rules]] tables.")
