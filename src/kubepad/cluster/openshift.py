"""OpenShift backend: one DeploymentConfig per grid row."""

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

GROUP = "apps.openshift.io"
VERSION = "v1"
PLURAL = "deploymentconfigs"


class OpenShiftCluster:
    """
    Cluster backed by the DeploymentConfigs of an OpenShift project.

    DeploymentConfigs are custom objects to the Kubernetes client, so they
    arrive as plain dicts and are scaled with a merge patch of
    ``spec.replicas``.

    Args:
        api: CustomObjectsApi client
        project: Project (namespace) to list and watch
        labels: Reserved label keys
    """

    def __init__(
        self,
        api: client.CustomObjectsApi,
        project: str = "myproject",
        labels: Optional[LabelConfig] = None,
    ):
        self._api = api
        self._project = project
        self._slots = WorkloadSlots(labels, kind="deployment config")
        self._client_lock = Lock()
        self._observers = ObserverManager[AppObserver](observer_type_name="app")
        self._watch: Optional[ResourceWatch] = None
        self._resetting = False

    @classmethod
    def from_config(cls, config: KubepadConfig) -> "OpenShiftCluster":
        """
        Build a cluster from kubeconfig, optionally pointed at another master URL.

        Raises:
            ConfigurationError: If no usable credentials are found
        """
        settings = config.openshift
        try:
            kube_config.load_kube_config(context=settings.context)
        except (kube_config.ConfigException, OSError) as e:
            raise ConfigurationError(
                user_message="Could not load OpenShift credentials",
                technical_message=f"kubeconfig loading failed: {e}",
                recovery_hint="Run 'oc login' or set openshift.context",
            ) from e

        configuration = client.Configuration.get_default_copy()
        if settings.url:
            configuration.host = settings.url
        configuration.verify_ssl = settings.verify_ssl

        logger.info(f"Connecting to OpenShift project {settings.project} at {configuration.host}")
        api = client.CustomObjectsApi(client.ApiClient(configuration))
        return cls(api, project=settings.project, labels=config.labels)

    @staticmethod
    def to_workload(deployment_config: dict) -> Workload:
        """Normalize a DeploymentConfig dict."""
        metadata = deployment_config.get("metadata") or {}
        spec = deployment_config.get("spec") or {}
        status = deployment_config.get("status") or {}

        desired = spec.get("replicas") or 0
        ready = status.get("readyReplicas", status.get("availableReplicas"))
        deploying = rollout_in_flight(
            desired,
            generation=metadata.get("generation"),
            observed_generation=status.get("observedGeneration"),
            updated=status.get("updatedReplicas"),
            ready=ready,
            current=status.get("replicas"),
        )
        return Workload(
            name=metadata.get("name", ""),
            replicas=desired,
            labels={key: str(value) for key, value in (metadata.get("labels") or {}).items()},
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
        List DeploymentConfigs and start watching.

        Raises:
            ClusterApiError: If the initial listing fails
        """
        if self._watch is not None and self._watch.is_running:
            logger.warning("OpenShift watch is already running")
            return

        with self._client_lock:
            events, resource_version = self._load()
        self._fire(events)

        self._watch = ResourceWatch(
            name=f"{PLURAL}/{self._project}",
            list_func=self._api.list_namespaced_custom_object,
            handler=self._on_watch_event,
            version_of=lambda obj: (obj.get("metadata") or {}).get("resourceVersion"),
            on_expired=self._resync,
            group=GROUP,
            version=VERSION,
            namespace=self._project,
            plural=PLURAL,
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
        logger.info(f"Resetting deployment configs in project {self._project}")
        events: list[AppEvent] = []
        self._resetting = True
        try:
            with self._client_lock:
                self._slots.clear()
                with ErrorContext(f"reset deployment configs in {self._project}", logger, re_raise=False):
                    events, _ = self._load()
        finally:
            self._resetting = False
        self._fire(events)

    # =================================================================
    # Commands
    # =================================================================

    def scale(self, index: int, replicas: int) -> None:
        """
        Scale the DeploymentConfig at the row.

        Raises:
            InvalidSlotError: If index is outside [0, 8)
            EmptySlotError: If the row is empty
            ClusterApiError: If the patch is rejected
        """
        with self._client_lock:
            workload = self._slots.require(index, "scale")
            try:
                self._api.patch_namespaced_custom_object(
                    group=GROUP,
                    version=VERSION,
                    namespace=self._project,
                    plural=PLURAL,
                    name=workload.name,
                    body={"spec": {"replicas": replicas}},
                )
            except Exception as e:
                raise wrap_api_error(e, f"scale deployment config {workload.name}") from e
            self._slots.replace(index, workload.with_replicas(replicas))

        logger.info(f"Scaled deployment config {workload.name} to {replicas} replicas")

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
            listing = self._api.list_namespaced_custom_object(
                group=GROUP, version=VERSION, namespace=self._project, plural=PLURAL
            )
        except Exception as e:
            raise wrap_api_error(e, f"list deployment configs in {self._project}") from e

        workloads = [self.to_workload(item) for item in listing.get("items") or []]
        resource_version = (listing.get("metadata") or {}).get("resourceVersion")
        return workloads, resource_version

    def _load(self) -> tuple[list[AppEvent], Optional[str]]:
        """List and place from scratch. The caller holds the client lock."""
        workloads, resource_version = self._list()
        events = self._slots.load(workloads)
        logger.info(f"Found {len(events)} deployment configs in project {self._project}")
        return events, resource_version

    def _resync(self) -> Optional[str]:
        with self._client_lock:
            workloads, resource_version = self._list()
            events = self._slots.sync(workloads)
        self._fire(events)
        return resource_version

    def _on_watch_event(self, event_type: str, deployment_config: dict) -> None:
        if self._resetting:
            logger.info(f"Event {event_type} for deployment config not processed during reset")
            return

        workload = self.to_workload(deployment_config)
        logger.debug(
            f"Watch {event_type} deployment config {workload.name} ({workload.replicas} replicas)"
        )
        with self._client_lock:
            events = self._slots.apply(event_type, workload)
        self._fire(events)
