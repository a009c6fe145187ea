"""Scale command - set the replica count of one row."""

import click

from kubepad.cluster import create_cluster
from kubepad.exceptions import KubepadError

from .common import cluster_option, load_config, report_error


@click.command()
@click.argument('row', type=click.IntRange(0, 7))
@click.argument('replicas', type=click.IntRange(min=0))
@cluster_option
@click.pass_context
def scale(ctx, row: int, replicas: int, cluster_service):
    """
    Scale the workload in ROW to REPLICAS.

    \b
    Examples:
      kubepad scale 0 3
      kubepad scale 4 0 --cluster marathon
    """
    cluster = None
    try:
        config = load_config(ctx, cluster_service)
        cluster = create_cluster(config)
        cluster.start()

        before = cluster.replicas(row)
        cluster.scale(row, replicas)
        click.echo(f"Scaled row {row} from {before} to {replicas} replicas")

    except KubepadError as e:
        report_error(ctx, e)
    finally:
        if cluster is not None:
            cluster.close()
