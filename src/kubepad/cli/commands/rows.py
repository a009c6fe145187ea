"""Rows command - show which workloads occupy the grid."""

import click

from kubepad.cluster import SLOT_COUNT, create_cluster
from kubepad.exceptions import KubepadError

from .common import cluster_option, load_config, report_error


@click.command()
@cluster_option
@click.pass_context
def rows(ctx, cluster_service):
    """List occupied rows with their replicas and labels."""
    cluster = None
    try:
        config = load_config(ctx, cluster_service)
        cluster = create_cluster(config)
        cluster.start()

        if cluster.app_count() == 0:
            click.echo(f"No apps labelled {config.labels.enable}=true found.")
            return

        click.echo(f"{cluster.app_count()} of {SLOT_COUNT} rows occupied:")
        for index in range(SLOT_COUNT):
            if not cluster.app_exists(index):
                continue
            labels = ", ".join(f"{key}={value}" for key, value in sorted(cluster.labels(index).items()))
            click.echo(f"  [{index}] {cluster.replicas(index)} replicas  {labels}")

    except KubepadError as e:
        report_error(ctx, e)
    finally:
        if cluster is not None:
            cluster.close()
