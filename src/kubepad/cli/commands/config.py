"""Config commands - show or initialize the configuration file."""

from pathlib import Path
from typing import Optional

import click

from kubepad.exceptions import KubepadError
from kubepad.models import KubepadConfig
from kubepad.models.config import DEFAULT_CONFIG_PATH

from .common import load_config, report_error


def _config_path(ctx: click.Context) -> Path:
    return (ctx.find_root().obj or {}).get("config_path") or DEFAULT_CONFIG_PATH


@click.group(name="config")
def config():
    """Configure kubepad settings."""


@config.command()
@click.option('--field', '-f', type=str, default=None, help='Show a single top-level field')
@click.pass_context
def show(ctx, field: Optional[str]):
    """Print the effective configuration as JSON."""
    try:
        current = load_config(ctx)
    except KubepadError as e:
        report_error(ctx, e)
        return

    if field is None:
        click.echo(current.model_dump_json(indent=2))
        return

    data = current.model_dump(mode="json")
    if field not in data:
        raise click.BadParameter(f"Unknown field: {field}", param_hint="--field")
    click.echo(f"{field}: {data[field]}")


@config.command()
@click.option('--force', is_flag=True, help='Overwrite an existing config file')
@click.pass_context
def init(ctx, force: bool):
    """Write a default configuration file."""
    path = _config_path(ctx)
    if path.exists() and not force:
        click.echo(f"Config already exists at {path} (use --force to overwrite)", err=True)
        ctx.exit(1)

    try:
        KubepadConfig().save(path)
    except (KubepadError, OSError) as e:
        report_error(ctx, e)
    click.echo(f"Wrote default config to {path}")
