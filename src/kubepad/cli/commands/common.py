"""Helpers shared by the CLI commands."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from kubepad.exceptions import format_error_for_display
from kubepad.models import KubepadConfig

logger = logging.getLogger(__name__)

cluster_option = click.option(
    '--cluster',
    '-k',
    'cluster_service',
    type=str,
    default=None,
    help='Registered cluster backend, e.g. kubernetes, openshift or marathon '
         '(default: from config or KUBEPAD_CLUSTER_SERVICE)'
)


def load_config(ctx: click.Context, cluster_service: Optional[str] = None) -> KubepadConfig:
    """Load the config named on the command line, applying a --cluster override."""
    obj = ctx.find_root().obj or {}
    config = KubepadConfig.load_or_default(obj.get("config_path"))
    if cluster_service:
        config = config.with_cluster_service(cluster_service)
    return config


def report_error(ctx: click.Context, error: Exception) -> None:
    """Print a clean error message with recovery hint and exit with status 1."""
    logger.exception("Command failed")

    user_message, recovery_hint = format_error_for_display(error)

    click.echo("\n" + "=" * 70, err=True)
    click.echo(f"ERROR: {user_message}", err=True)
    click.echo("=" * 70, err=True)

    if recovery_hint:
        click.echo(f"\n{recovery_hint}", err=True)

    log_path: Optional[Path] = (ctx.find_root().obj or {}).get("log_path")
    if log_path:
        click.echo(f"\nFor details, check the log file: {log_path}", err=True)
    click.echo("For logging options, run: kubepad --help", err=True)

    sys.exit(1)
