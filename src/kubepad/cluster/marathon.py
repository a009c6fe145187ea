"""Marathon backend: one app per grid row, kept in sync by polling."""

import logging
import threading
from typing import Any, Optional

from kubepad.cluster.marathon_client import MarathonClient
from kubepad.cluster.slots import WorkloadSlots
from kubepad.core.observer import ObserverManager
from kubepad.exceptions import ErrorContext, wrap_api_error
from kubepad.models import AppEvent, KubepadConfig, LabelConfig, Workload
from kubepad.protocols import AppObserver

logger = logging.getLogger(__name__)


class MarathonCluster:
    """
    Cluster backed by Marathon apps.

    Marathon has no watch API, so a daemon thread re-lists the enabled
    apps every ``poll_interval`` seconds and diffs the listing against
    the slots. A poll holds the client lock from the listing through the
    diff, and scale requests take the same lock, so a listing fetched
    before a scale is never applied after it.

    Args:
        client: Marathon REST client
        labels: Reserved label keys
        poll_interval: Seconds between listings
        force: Force scale requests past running deployments
    """

    def __init__(
        self,
        client: MarathonClient,
        labels: Optional[LabelConfig] = None,
        poll_interval: float = 2.5,
        force: bool = False,
    ):
        self._client = client
        self._labels = labels or LabelConfig()
        self._poll_interval = poll_interval
        self._force = force
        self._slots = WorkloadSlots(self._labels, kind="app")
        self._client_lock = threading.Lock()
        self._observers = ObserverManager[AppObserver](observer_type_name="app")

        self._running = False
        self._stopped = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, config: KubepadConfig) -> "MarathonCluster":
        settings = config.marathon
        return cls(
            MarathonClient.from_config(settings),
            labels=config.labels,
            poll_interval=settings.poll_interval,
            force=settings.force,
        )

    @staticmethod
    def to_workload(app: dict[str, Any]) -> Workload:
        """Normalize a Marathon app; any embedded deployment means a rollout is in flight."""
        return Workload(
            name=app["id"],
            replicas=app.get("instances") or 0,
            labels={key: str(value) for key, value in (app.get("labels") or {}).items()},
            deploying=bool(app.get("deployments")),
        )

    # =================================================================
    # Queries
    # =================================================================

    def app_count(self) -> int:
        return self._slots.count()

    def app_exists(self, index: int) -> bool:
        return self._slots.exists(index)

    def replicas(self, index: int) -> int:
        return self._slots.replicas(index)

    def labels(self, index: int) -> dict[str, str]:
        return self._slots.labels(index)

    # =================================================================
    # Lifecycle
    # =================================================================

    def start(self) -> None:
        """
        List apps and start polling.

        Raises:
            ClusterApiError: If the initial listing fails
        """
        if self._running:
            logger.warning("Marathon polling is already running")
            return

        with self._client_lock:
            events = self._load()
        self._fire(events)

        self._running = True
        self._stopped.clear()
        self._poll_thread = threading.Thread(target=self._poll_loop, name="kubepad-marathon-poll", daemon=True)
        self._poll_thread.start()
        logger.debug(f"Polling Marathon every {self._poll_interval}s")

    def close(self) -> None:
        """Stop polling and close the HTTP session."""
        self._running = False
        self._stopped.set()

        if self._poll_thread and self._poll_thread.is_alive():
            self._poll_thread.join(timeout=1.0)
        self._poll_thread = None
        self._client.close()

    def clear(self) -> None:
        with self._client_lock:
            self._slots.clear()

    def reset(self) -> None:
        """Clear the slots and replay ADDED from a fresh listing."""
        logger.info("Resetting Marathon apps")
        events: list[AppEvent] = []
        with self._client_lock:
            self._slots.clear()
            with ErrorContext("reset Marathon apps", logger, re_raise=False):
                events = self._load()
        self._fire(events)

    def poll(self) -> None:
        """List apps once and emit the differences. Failures are logged and retried next cycle."""
        with self._client_lock:
            try:
                apps = self._client.list_apps(self._labels.enable)
            except Exception as e:
                error = wrap_api_error(e, "list Marathon apps")
                logger.error(f"Polling Marathon failed: {error.technical_message}")
                return
            events = self._slots.sync(self._to_workloads(apps))
        self._fire(events)

    # =================================================================
    # Commands
    # =================================================================

    def scale(self, index: int, replicas: int) -> None:
        """
        Set the instance count of the app at the row.

        Raises:
            InvalidSlotError: If index is outside [0, 8)
            EmptySlotError: If the row is empty
            ClusterApiError: If Marathon rejects the update
        """
        with self._client_lock:
            workload = self._slots.require(index, "scale")
            try:
                result = self._client.update_app(workload.name, replicas, force=self._force)
            except Exception as e:
                raise wrap_api_error(e, f"scale app {workload.name}") from e
            self._slots.replace(index, workload.with_replicas(replicas))

        logger.info(
            f"Scaled app {workload.name} to {replicas} instances "
            f"(deployment {result.get('deploymentId') if isinstance(result, dict) else None})"
        )

    # =================================================================
    # Observers
    # =================================================================

    def register_observer(self, observer: AppObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: AppObserver) -> None:
        self._observers.unregister(observer)

    def _fire(self, events: list[AppEvent]) -> None:
        for event in events:
            self._observers.notify("on_app_event", event)

    # =================================================================
    # Remote state
    # =================================================================

    def _load(self) -> list[AppEvent]:
        """List and place from scratch. The caller holds the client lock."""
        try:
            apps = self._client.list_apps(self._labels.enable)
        except Exception as e:
            raise wrap_api_error(e, "list Marathon apps") from e

        events = self._slots.load(self._to_workloads(apps))
        logger.info(f"Found {len(events)} Marathon apps")
        return events

    def _to_workloads(self, apps: list[dict[str, Any]]) -> list[Workload]:
        workloads = []
        for app in apps:
            try:
                workloads.append(self.to_workload(app))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed Marathon app {app.get('id')}: {e}")
        return workloads

    def _poll_loop(self) -> None:
        while not self._stopped.wait(self._poll_interval):
            if not self._running:
                break
            try:
                self.poll()
            except Exception as e:
                logger.error(f"Error in Marathon polling: {e}", exc_info=True)
