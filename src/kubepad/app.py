"""
Top-level kubepad application.

Wires the configured cluster backend to the node grid and owns their
lifecycle. Any consumer of node events (a Launchpad controller, a
terminal view, a logger) registers as a NodeObserver.
"""

import logging
from typing import Optional

from kubepad.core import ClusterNodeGrid
from kubepad.exceptions import ErrorContext
from kubepad.models import KubepadConfig, NodeEvent
from kubepad.protocols import Cluster, NodeObserver

logger = logging.getLogger(__name__)


class LoggingNodeObserver:
    """NodeObserver that writes every node transition to the log."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def on_node_event(self, event: NodeEvent) -> None:
        logger.log(self.level, f"Node ({event.row}, {event.column}) {event.type.value}")


class KubepadApp:
    """
    Application orchestrator.

    Architecture:
        KubepadApp (this class)
        ├── cluster: backend selected by config.cluster_service
        ├── grid: ClusterNodeGrid observing the cluster
        └── node observers: registered on the grid

    Args:
        config: Application configuration
        cluster: Backend to use instead of building one from the config
    """

    def __init__(self, config: KubepadConfig, cluster: Optional[Cluster] = None):
        self.config = config
        self.cluster: Optional[Cluster] = cluster
        self.grid: Optional[ClusterNodeGrid] = None
        self._node_observers: list[NodeObserver] = []

    def register_observer(self, observer: NodeObserver) -> None:
        """Register a node observer; applied to the grid now or once it exists."""
        if observer not in self._node_observers:
            self._node_observers.append(observer)
        if self.grid is not None:
            self.grid.register_observer(observer)

    def unregister_observer(self, observer: NodeObserver) -> None:
        if observer in self._node_observers:
            self._node_observers.remove(observer)
        if self.grid is not None:
            self.grid.unregister_observer(observer)

    def initialize(self) -> None:
        """
        Build the grid, subscribe it to the cluster and start the backend.

        The grid subscribes before the backend lists its workloads, so the
        initial ADDED events populate the rows.

        Raises:
            ConfigurationError: If the backend cannot be built
            ClusterApiError: If the initial listing fails
        """
        with ErrorContext("connect to cluster", logger):
            if self.cluster is None:
                from kubepad.cluster import create_cluster

                self.cluster = create_cluster(self.config)

            self.grid = ClusterNodeGrid(
                self.cluster,
                scale_workers=self.config.scale_workers,
                color_label=self.config.labels.color,
            )
            for observer in self._node_observers:
                self.grid.register_observer(observer)

            self.grid.initialize()
            self.cluster.start()

        logger.info(f"KubepadApp initialized with {self.cluster.app_count()} apps")

    def reset(self) -> None:
        """Clear the grid and re-list the cluster."""
        if self.grid is None:
            logger.warning("Reset requested before initialize")
            return
        self.grid.reset()

    def shutdown(self) -> None:
        """Stop the backend and the grid's worker pool."""
        logger.info("Shutting down KubepadApp")
        if self.grid is not None:
            self.grid.shutdown()
        if self.cluster is not None:
            self.cluster.close()

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
