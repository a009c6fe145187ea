"""Run command - follow the cluster and print node transitions."""

import logging
import threading

import click

from kubepad.app import KubepadApp, LoggingNodeObserver
from kubepad.cluster import create_cluster
from kubepad.exceptions import KubepadError
from kubepad.models import NodeEvent
from kubepad.protocols import NodeEventType

from .common import cluster_option, load_config, report_error

logger = logging.getLogger(__name__)

SYMBOLS = {
    NodeEventType.STARTING: "+",
    NodeEventType.STARTED: "*",
    NodeEventType.STOPPING: "-",
    NodeEventType.STOPPED: ".",
}


class EchoNodeObserver:
    """Prints each node transition as one line."""

    def on_node_event(self, event: NodeEvent) -> None:
        click.echo(f"[{SYMBOLS[event.type]}] row {event.row} column {event.column}: {event.type.value}")


@click.command()
@cluster_option
@click.option(
    '--duration',
    type=click.FloatRange(min=0),
    default=0,
    help='Stop after this many seconds (default: run until interrupted)'
)
@click.pass_context
def run(ctx, cluster_service, duration: float):
    """
    Connect to the cluster and follow its workloads.

    Node transitions are printed as they happen:
    + starting, * started, - stopping, . stopped.

    \b
    Examples:
      kubepad run
      kubepad run --cluster openshift --duration 60
    """
    app = None
    try:
        config = load_config(ctx, cluster_service)
        app = KubepadApp(config, create_cluster(config))
        app.register_observer(EchoNodeObserver())
        app.register_observer(LoggingNodeObserver(logging.DEBUG))
        app.initialize()

        click.echo(
            f"Following {app.cluster.app_count()} apps on {config.cluster_service}. "
            "Press Ctrl+C to stop."
        )
        threading.Event().wait(duration or None)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        click.echo("\nShutting down...", err=True)
    except KubepadError as e:
        report_error(ctx, e)
    finally:
        if app is not None:
            app.shutdown()
