"""Kubernetes backend: one apps/v1 Deployment per grid row."""

import logging
from threading import Lock
from typing import Any, Optional

from kubernetes import client
from kubernetes import config as kube_config

from kubepad.cluster.slots import WorkloadSlots, rollout_in_flight
from kubepad.cluster.watch import ResourceWatch
from kubepad.core.observer import ObserverManager
from kubepad.exceptions import ConfigurationError, ErrorContext, wrap_api_error
from kubepad.models import AppEvent, KubepadConfig, LabelConfig, Workload
from kubepad.protocols import AppObserver

logger = logging.getLogger(__name__)


class KubernetesCluster:
    """
    Cluster backed by the Deployments of a single namespace.

    The initial listing places enabled Deployments on the grid, then a
    watch started from the listing's resourceVersion keeps the slots in
    sync. Listings, watch event application and scale requests share one
    lock, so a listing never overwrites a scale the backend has accepted.

    Args:
        api: AppsV1Api client
        namespace: Namespace to list and watch
        labels: Reserved label keys
    """

    def __init__(
        self,
        api: client.AppsV1Api,
        namespace: str = "default",
        labels: Optional[LabelConfig] = None,
    ):
        self._api = api
        self._namespace = namespace
        self._slots = WorkloadSlots(labels, kind="deployment")
        self._client_lock = Lock()
        self._observers = ObserverManager[AppObserver](observer_type_name="app")
        self._watch: Optional[ResourceWatch] = None
        self._resetting = False

    @classmethod
    def from_config(cls, config: KubepadConfig) -> "KubernetesCluster":
        """
        Build a cluster from kubeconfig or the in-cluster service account.

        Raises:
            ConfigurationError: If no usable credentials are found
        """
        settings = config.kubernetes
        try:
            if settings.in_cluster:
                kube_config.load_incluster_config()
            else:
                kube_config.load_kube_config(context=settings.context)
        except (kube_config.ConfigException, OSError) as e:
            raise ConfigurationError(
                user_message="Could not load Kubernetes credentials",
                technical_message=f"Kubernetes config loading failed: {e}",
                recovery_hint="Check ~/.kube/config, kubernetes.context, or set kubernetes.in_cluster",
            ) from e

        logger.info(f"Connecting to Kubernetes namespace {settings.namespace}")
        return cls(client.AppsV1Api(), namespace=settings.namespace, labels=config.labels)

    @staticmethod
    def to_workload(deployment: Any) -> Workload:
        """Normalize a V1Deployment."""
        metadata = deployment.metadata
        spec = deployment.spec
        status = deployment.status

        desired = spec.replicas if spec is not None and spec.replicas is not None else 0
        deploying = rollout_in_flight(
            desired,
            generation=metadata.generation,
            observed_generation=status.observed_generation if status else None,
            updated=status.updated_replicas if status else None,
            ready=status.ready_replicas if status else None,
            current=status.replicas if status else None,
        )
        return Workload(
            name=metadata.name,
            replicas=desired,
            labels=dict(metadata.labels or {}),
            deploying=deploying,
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
        List Deployments and start watching.

        Raises:
            ClusterApiError: If the initial listing fails
        """
        if self._watch is not None and self._watch.is_running:
            logger.warning("Kubernetes watch is already running")
            return

        with self._client_lock:
            events, resource_version = self._load()
        self._fire(events)

        self._watch = ResourceWatch(
            name=f"deployments/{self._namespace}",
            list_func=self._api.list_namespaced_deployment,
            handler=self._on_watch_event,
            version_of=lambda obj: obj.metadata.resource_version,
            on_expired=self._resync,
            namespace=self._namespace,
        )
        self._watch.start(resource_version)

    def close(self) -> None:
        if self._watch is not None:
            self._watch.stop()
            self._watch = None

    def clear(self) -> None:
        with self._client_lock:
            self._slots.clear()

    def reset(self) -> None:
        """Clear the slots and replay ADDED from a fresh listing."""
        logger.info(f"Resetting deployments in namespace {self._namespace}")
        events: list[AppEvent] = []
        self._resetting = True
        try:
            with self._client_lock:
                self._slots.clear()
                with ErrorContext(f"reset deployments in {self._namespace}", logger, re_raise=False):
                    events, _ = self._load()
        finally:
            self._resetting = False
        self._fire(events)

    # =================================================================
    # Commands
    # =================================================================

    def scale(self, index: int, replicas: int) -> None:
        """
        Scale the Deployment at the row.

        Raises:
            InvalidSlotError: If index is outside [0, 8)
            EmptySlotError: If the row is empty
            ClusterApiError: If the patch is rejected
        """
        with self._client_lock:
            workload = self._slots.require(index, "scale")
            try:
                self._api.patch_namespaced_deployment_scale(
                    name=workload.name,
                    namespace=self._namespace,
                    body={"spec": {"replicas": replicas}},
                )
            except Exception as e:
                raise wrap_api_error(e, f"scale deployment {workload.name}") from e
            self._slots.replace(index, workload.with_replicas(replicas))

        logger.info(f"Scaled deployment {workload.name} to {replicas} replicas")

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

    def _list(self) -> tuple[list[Workload], Optional[str]]:
        try:
            listing = self._api.list_namespaced_deployment(namespace=self._namespace)
        except Exception as e:
            raise wrap_api_error(e, f"list deployments in {self._namespace}") from e

        workloads = [self.to_workload(item) for item in listing.items or []]
        resource_version = listing.metadata.resource_version if listing.metadata else None
        return workloads, resource_version

    def _load(self) -> tuple[list[AppEvent], Optional[str]]:
        """List and place from scratch. The caller holds the client lock."""
        workloads, resource_version = self._list()
        events = self._slots.load(workloads)
        logger.info(f"Found {len(events)} deployments in namespace {self._namespace}")
        return events, resource_version

    def _resync(self) -> Optional[str]:
        """Diff a fresh listing against the slots after the watch lost track."""
        with self._client_lock:
            workloads, resource_version = self._list()
            events = self._slots.sync(workloads)
        self._fire(events)
        return resource_version

    def _on_watch_event(self, event_type: str, deployment: Any) -> None:
        if self._resetting:
            logger.info(f"Event {event_type} for deployment not processed during reset")
            return

        workload = self.to_workload(deployment)
        logger.debug(f"Watch {event_type} deployment {workload.name} ({workload.replicas} replicas)")
        with self._client_lock:
            events = self._slots.apply(event_type, workload)
        self._fire(events)
