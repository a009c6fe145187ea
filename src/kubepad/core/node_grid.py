"""The 8x8 grid of ClusterNodes and its reconciliation against a Cluster.

Rows map to cluster slots, columns to replicas. The grid owns every
ClusterNode exclusively. Two kinds of input change it:

- user commands (``start``, ``stop``, ``scale``) apply an optimistic local
  transition and dispatch the remote scale request to a worker pool
- AppEvents from the cluster reconcile the local rows with what the
  backend reports

Each row has its own lock. A whole AppEvent or user command for a row is
applied under that lock, and NodeEvents are emitted while it is held so
observers see them in the order the transitions happened. Rows are
independent; no lock spans more than one row.
"""

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from threading import RLock

from kubepad.core.observer import ObserverManager
from kubepad.exceptions import EmptySlotError, InvalidSlotError, NodeNotFoundError, handle_errors
from kubepad.models import AppEvent, ClusterNode, LaunchpadColor, NodeEvent, Phase
from kubepad.protocols import AppEventType, Cluster, NodeEventType, NodeObserver

logger = logging.getLogger(__name__)

GRID_SIZE = 8


class ClusterNodeGrid:
    """
    Reconciler between a Cluster and the 8x8 node grid.

    Args:
        cluster: Backend the rows are mirrored from
        executor: Pool for remote scale requests (default: own ThreadPoolExecutor)
        scale_workers: Worker count when the grid creates its own pool
        color_label: Label whose value overrides a row's color on ADDED
    """

    def __init__(
        self,
        cluster: Cluster,
        executor: Executor | None = None,
        scale_workers: int = 4,
        color_label: str = "LAUNCHPAD_COLOR",
    ):
        self._cluster = cluster
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=scale_workers, thread_name_prefix="kubepad-scale"
        )
        self._color_label = color_label

        self._nodes = [
            [ClusterNode(row=row, column=column) for column in range(GRID_SIZE)]
            for row in range(GRID_SIZE)
        ]
        self._row_locks = [RLock() for _ in range(GRID_SIZE)]
        self._colors = [LaunchpadColor.default_for_row(row) for row in range(GRID_SIZE)]

        self._observers = ObserverManager[NodeObserver](observer_type_name="node")
        self._initialized = False

    # =================================================================
    # Lifecycle
    # =================================================================

    def initialize(self) -> None:
        """Subscribe to the cluster. AppEvents are ignored until this runs."""
        if self._initialized:
            logger.debug("Grid already initialized")
            return

        self._cluster.register_observer(self)
        self._initialized = True
        logger.info(f"Initialized {GRID_SIZE}x{GRID_SIZE} cluster node grid")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def reset(self) -> None:
        """
        Return every row to inactive and re-list the cluster.

        Active nodes emit STOPPED as they are deactivated and row colors
        return to their defaults. The cluster then clears its slots and
        replays ADDED for whatever the backend currently holds.
        """
        logger.info("Resetting grid")
        for row in range(GRID_SIZE):
            with self._row_locks[row]:
                for node in self._nodes[row]:
                    if node.active:
                        node.deactivate()
                        self._fire(node, NodeEventType.STOPPED)
                self._colors[row] = LaunchpadColor.default_for_row(row)

        self._cluster.reset()

    def shutdown(self) -> None:
        """Unsubscribe, deactivate all nodes silently and stop the worker pool."""
        if self._initialized:
            self._cluster.unregister_observer(self)
            self._initialized = False

        for row in range(GRID_SIZE):
            with self._row_locks[row]:
                for node in self._nodes[row]:
                    node.deactivate()

        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Grid shut down")

    # =================================================================
    # Observers
    # =================================================================

    def register_observer(self, observer: NodeObserver) -> None:
        """Register an observer for node events."""
        self._observers.register(observer)

    def unregister_observer(self, observer: NodeObserver) -> None:
        """Unregister a node event observer."""
        self._observers.unregister(observer)

    # =================================================================
    # Queries
    # =================================================================

    def node(self, row: int, column: int) -> ClusterNode:
        """Snapshot of a single node."""
        self._check_row(row)
        self._check_column(column)
        with self._row_locks[row]:
            return self._nodes[row][column].model_copy()

    def nodes(self, row: int) -> list[ClusterNode]:
        """Snapshot of a row's nodes, ordered by column."""
        self._check_row(row)
        with self._row_locks[row]:
            return [node.model_copy() for node in self._nodes[row]]

    def __getitem__(self, row: int) -> list[ClusterNode]:
        return self.nodes(row)

    def active(self, row: int) -> int:
        """
        Count nodes that are active and not stopping.

        This is the replica count the grid believes the row is heading
        for, and the base for ``start``/``stop`` scale targets.
        """
        self._check_row(row)
        with self._row_locks[row]:
            return self._running_count(row)

    def next(self, row: int) -> int:
        """
        Column of the lowest inactive node.

        Raises:
            NodeNotFoundError: If every node in the row is active
        """
        self._check_row(row)
        with self._row_locks[row]:
            return self._next(row)

    def last(self, row: int) -> int:
        """
        Column of the highest active, non-stopping node.

        Raises:
            NodeNotFoundError: If no node in the row is running
        """
        self._check_row(row)
        with self._row_locks[row]:
            return self._last(row)

    def initialized(self, row: int) -> bool:
        """True if the cluster has a workload at the row."""
        self._check_row(row)
        return self._cluster.app_exists(row)

    def rows(self) -> list[int]:
        """Occupied rows in ascending order."""
        return [row for row in range(GRID_SIZE) if self._cluster.app_exists(row)]

    def color(self, row: int) -> LaunchpadColor:
        self._check_row(row)
        return self._colors[row]

    # =================================================================
    # User commands
    # =================================================================

    def start(self, row: int, column: int) -> Future | None:
        """
        Start the node at (row, column) and scale the workload up by one.

        Returns:
            Future of the remote scale request, or None if the node was
            already running

        Raises:
            InvalidSlotError: If row or column is outside the grid
            EmptySlotError: If the row holds no workload
        """
        self._check_row(row)
        self._check_column(column)
        self._require_app(row, "start")

        with self._row_locks[row]:
            node = self._nodes[row][column]
            if node.is_running:
                logger.debug(f"Node ({row}, {column}) is already running")
                return None

            replicas = self._running_count(row) + 1
            node.activate().update(Phase.PENDING)
            self._fire(node, NodeEventType.STARTING)
            return self._dispatch(row, replicas)

    def stop(self, row: int, column: int) -> Future | None:
        """
        Stop the node at (row, column) and scale the workload down by one.

        Returns:
            Future of the remote scale request, or None if the node was
            not running

        Raises:
            InvalidSlotError: If row or column is outside the grid
            EmptySlotError: If the row holds no workload
        """
        self._check_row(row)
        self._check_column(column)
        self._require_app(row, "stop")

        with self._row_locks[row]:
            node = self._nodes[row][column]
            if not node.is_running:
                logger.debug(f"Node ({row}, {column}) is not running")
                return None

            replicas = self._running_count(row) - 1
            node.update(Phase.SUCCEEDED)
            self._fire(node, NodeEventType.STOPPING)
            return self._dispatch(row, replicas)

    def scale(self, row: int, replicas: int) -> Future:
        """
        Scale the row to ``replicas`` running nodes.

        Nodes are started from the lowest inactive column and stopped from
        the highest running column. The target is clamped to [0, 8].

        Returns:
            Future of the remote scale request

        Raises:
            InvalidSlotError: If row is outside the grid
            EmptySlotError: If the row holds no workload
        """
        self._check_row(row)
        self._require_app(row, "scale")

        target = max(0, min(GRID_SIZE, replicas))
        if target != replicas:
            logger.warning(f"Clamping scale of row {row} from {replicas} to {target}")

        with self._row_locks[row]:
            future = self._dispatch(row, target)
            running = self._running_count(row)
            if running > target:
                self._stop_highest(row, running - target)
            elif running < target:
                self._start_lowest(row, target - running)
            return future

    def start_all(self) -> list[Future]:
        """Scale every occupied row to 8 replicas."""
        return [self.scale(row, GRID_SIZE) for row in self.rows()]

    def stop_all(self) -> list[Future]:
        """Scale every occupied row to 0 replicas."""
        return [self.scale(row, 0) for row in self.rows()]

    # =================================================================
    # AppObserver
    # =================================================================

    def on_app_event(self, event: AppEvent) -> None:
        """Reconcile one row with an event reported by the cluster."""
        if not self._initialized:
            logger.debug(f"Ignoring {event.type.value} for row {event.index}: grid not initialized")
            return

        logger.debug(f"Cluster event {event.type.value} on row {event.index} ({event.replicas} replicas)")

        with self._row_locks[event.index]:
            match event.type:
                case AppEventType.ADDED:
                    self._on_added(event)
                case AppEventType.DELETED:
                    self._on_deleted(event)
                case AppEventType.SCALED_UP:
                    self._on_scaled_up(event)
                case AppEventType.SCALED_DOWN:
                    self._on_scaled_down(event)
                case AppEventType.DEPLOYED:
                    self._on_deployed(event)

    def _on_added(self, event: AppEvent) -> None:
        row = event.index
        self._colors[row] = self._color_from_labels(row, event.labels)

        target = min(event.replicas, GRID_SIZE)
        for node in self._nodes[row]:
            if node.column < target:
                if not node.is_running:
                    node.activate()
                    self._fire(node, NodeEventType.STARTED)
            elif node.active:
                self._fire(node, NodeEventType.STOPPING)
                node.deactivate()
                self._fire(node, NodeEventType.STOPPED)

    def _on_deleted(self, event: AppEvent) -> None:
        row = event.index
        for node in self._nodes[row]:
            if node.active:
                self._fire(node, NodeEventType.STOPPING)
                node.deactivate()
                self._fire(node, NodeEventType.STOPPED)
        self._colors[row] = LaunchpadColor.default_for_row(row)

    def _on_scaled_up(self, event: AppEvent) -> None:
        missing = min(event.replicas, GRID_SIZE) - self._running_count(event.index)
        if missing > 0:
            self._start_lowest(event.index, missing)

    def _on_scaled_down(self, event: AppEvent) -> None:
        surplus = self._running_count(event.index) - event.replicas
        if surplus > 0:
            self._stop_highest(event.index, surplus)

    def _on_deployed(self, event: AppEvent) -> None:
        for node in self._nodes[event.index]:
            if node.is_stopping:
                node.deactivate()
                self._fire(node, NodeEventType.STOPPED)
            elif node.active and node.phase is Phase.PENDING:
                node.update(Phase.RUNNING)
                self._fire(node, NodeEventType.STARTED)

    # =================================================================
    # Helpers (callers hold the row lock)
    # =================================================================

    def _running_count(self, row: int) -> int:
        return sum(1 for node in self._nodes[row] if node.is_running)

    def _next(self, row: int) -> int:
        for node in self._nodes[row]:
            if not node.active:
                return node.column
        raise NodeNotFoundError(row, "inactive")

    def _last(self, row: int) -> int:
        for node in reversed(self._nodes[row]):
            if node.is_running:
                return node.column
        raise NodeNotFoundError(row, "running")

    def _start_lowest(self, row: int, count: int) -> None:
        for node in self._nodes[row]:
            if count <= 0:
                break
            if not node.active:
                node.activate().update(Phase.PENDING)
                self._fire(node, NodeEventType.STARTING)
                count -= 1

    def _stop_highest(self, row: int, count: int) -> None:
        for node in reversed(self._nodes[row]):
            if count <= 0:
                break
            if node.is_running:
                node.update(Phase.SUCCEEDED)
                self._fire(node, NodeEventType.STOPPING)
                count -= 1

    def _color_from_labels(self, row: int, labels: dict[str, str]) -> LaunchpadColor:
        name = labels.get(self._color_label)
        if name:
            try:
                return LaunchpadColor.from_name(name)
            except ValueError:
                logger.warning(f"Ignoring unknown {self._color_label}={name!r} for row {row}")
        return LaunchpadColor.default_for_row(row)

    def _fire(self, node: ClusterNode, event_type: NodeEventType) -> None:
        self._observers.notify(
            "on_node_event", NodeEvent(row=node.row, column=node.column, type=event_type)
        )

    def _dispatch(self, row: int, replicas: int) -> Future:
        logger.debug(f"Dispatching scale of row {row} to {replicas} replicas")
        return self._executor.submit(self._scale_remote, row, replicas)

    @handle_errors(operation_name="scale workload", re_raise=False)
    def _scale_remote(self, row: int, replicas: int) -> None:
        self._cluster.scale(row, replicas)

    def _require_app(self, row: int, operation: str) -> None:
        if not self._cluster.app_exists(row):
            raise EmptySlotError(row, operation)

    @staticmethod
    def _check_row(row: int) -> None:
        if not 0 <= row < GRID_SIZE:
            raise InvalidSlotError(row, "row")

    @staticmethod
    def _check_column(column: int) -> None:
        if not 0 <= column < GRID_SIZE:
            raise InvalidSlotError(column, "column")
