"""Tests for the Kubernetes and OpenShift cluster backends."""

import threading
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
from kubernetes.client.exceptions import ApiException

from kubepad.cluster import KubernetesCluster, OpenShiftCluster
from kubepad.exceptions import ClusterApiError, EmptySlotError
from kubepad.models import KubepadConfig
from kubepad.protocols import AppEventType, Cluster

ENABLED = {"LAUNCHPAD_ENABLE": "true"}


def deployment(name, replicas=1, labels=None, generation=1, observed=1, ready=None, updated=None, current=None, rv="1"):
    """V1Deployment-shaped object."""
    return SimpleNamespace(
        metadata=SimpleNamespace(
            name=name,
            labels=ENABLED if labels is None else labels,
            generation=generation,
            resource_version=rv,
        ),
        spec=SimpleNamespace(replicas=replicas),
        status=SimpleNamespace(
            observed_generation=observed,
            updated_replicas=replicas if updated is None else updated,
            ready_replicas=replicas if ready is None else ready,
            replicas=replicas if current is None else current,
        ),
    )


def deployment_config(name, replicas=1, labels=None, generation=1, observed=1, ready=None, rv="1"):
    """DeploymentConfig dict as returned by CustomObjectsApi."""
    return {
        "metadata": {
            "name": name,
            "labels": ENABLED if labels is None else labels,
            "generation": generation,
            "resourceVersion": rv,
        },
        "spec": {"replicas": replicas},
        "status": {
            "observedGeneration": observed,
            "updatedReplicas": replicas,
            "readyReplicas": replicas if ready is None else ready,
            "replicas": replicas,
        },
    }


@pytest.fixture
def apps_api():
    api = Mock()
    api.list_namespaced_deployment.return_value = SimpleNamespace(
        items=[
            deployment("web", 2),
            deployment("db", 1, labels={**ENABLED, "LAUNCHPAD_ROW": "4"}),
            deployment("hidden", 3, labels={}),
        ],
        metadata=SimpleNamespace(resource_version="100"),
    )
    return api


@pytest.fixture
def watch_cls():
    with patch("kubepad.cluster.kubernetes.ResourceWatch") as cls:
        yield cls


@pytest.fixture
def kubernetes_cluster(apps_api, watch_cls, app_observer):
    cluster = KubernetesCluster(apps_api, namespace="team")
    cluster.register_observer(app_observer)
    cluster.start()
    return cluster


def watch_handler(watch_cls):
    return watch_cls.call_args.kwargs["handler"]


@pytest.mark.unit
class TestKubernetesNormalization:
    """V1Deployment to Workload."""

    def test_settled_deployment(self):
        workload = KubernetesCluster.to_workload(deployment("web", 3, labels={"a": "b"}))

        assert workload.name == "web"
        assert workload.replicas == 3
        assert workload.labels == {"a": "b"}
        assert not workload.deploying

    def test_rollout_in_progress(self):
        assert KubernetesCluster.to_workload(deployment("web", 3, ready=1)).deploying
        assert KubernetesCluster.to_workload(deployment("web", 3, generation=2, observed=1)).deploying
        assert KubernetesCluster.to_workload(deployment("web", 1, current=3)).deploying

    def test_missing_fields_default(self):
        bare = SimpleNamespace(
            metadata=SimpleNamespace(name="web", labels=None, generation=None, resource_version=None),
            spec=SimpleNamespace(replicas=None),
            status=None,
        )

        workload = KubernetesCluster.to_workload(bare)

        assert workload.replicas == 0
        assert workload.labels == {}
        assert not workload.deploying


@pytest.mark.unit
class TestKubernetesCluster:
    """Listing, watching and scaling Deployments."""

    def test_satisfies_cluster_protocol(self, apps_api):
        assert isinstance(KubernetesCluster(apps_api), Cluster)

    def test_start_places_enabled_deployments(self, kubernetes_cluster, app_observer, apps_api, watch_cls):
        apps_api.list_namespaced_deployment.assert_called_once_with(namespace="team")
        assert kubernetes_cluster.app_count() == 2
        assert kubernetes_cluster.replicas(0) == 2
        assert kubernetes_cluster.replicas(4) == 1
        assert [(e.type, e.index) for e in app_observer.events] == [
            (AppEventType.ADDED, 0),
            (AppEventType.ADDED, 4),
        ]
        watch_cls.return_value.start.assert_called_once_with("100")

    def test_start_failure_raises_api_error(self, apps_api, watch_cls):
        apps_api.list_namespaced_deployment.side_effect = ApiException(status=403, reason="Forbidden")
        cluster = KubernetesCluster(apps_api)

        with pytest.raises(ClusterApiError) as exc_info:
            cluster.start()

        assert exc_info.value.status == 403
        watch_cls.assert_not_called()

    def test_watch_scale_then_rollout(self, kubernetes_cluster, app_observer, watch_cls):
        handler = watch_handler(watch_cls)
        app_observer.events.clear()

        handler("MODIFIED", deployment("web", 4, ready=2))
        handler("MODIFIED", deployment("web", 4))

        assert [(e.type, e.index, e.replicas) for e in app_observer.events] == [
            (AppEventType.SCALED_UP, 0, 4),
            (AppEventType.DEPLOYED, 0, 4),
        ]

    def test_watch_added_and_deleted(self, kubernetes_cluster, app_observer, watch_cls):
        handler = watch_handler(watch_cls)
        app_observer.events.clear()

        handler("ADDED", deployment("cache", 1))
        handler("DELETED", deployment("web", 2))

        assert [(e.type, e.index) for e in app_observer.events] == [
            (AppEventType.ADDED, 1),
            (AppEventType.DELETED, 0),
        ]
        assert not kubernetes_cluster.app_exists(0)

    def test_watch_label_removed_counts_as_delete(self, kubernetes_cluster, app_observer, watch_cls):
        app_observer.events.clear()

        watch_handler(watch_cls)("MODIFIED", deployment("db", 1, labels={}))

        assert [(e.type, e.index) for e in app_observer.events] == [(AppEventType.DELETED, 4)]

    def test_scale_patches_and_updates_mirror(self, kubernetes_cluster, apps_api, app_observer, watch_cls):
        kubernetes_cluster.scale(0, 5)

        apps_api.patch_namespaced_deployment_scale.assert_called_once_with(
            name="web", namespace="team", body={"spec": {"replicas": 5}}
        )
        assert kubernetes_cluster.replicas(0) == 5

        # The watch echo of our own patch does not produce a second scale event
        app_observer.events.clear()
        watch_handler(watch_cls)("MODIFIED", deployment("web", 5, ready=2))
        assert app_observer.events == []

    def test_scale_empty_slot_makes_no_remote_call(self, kubernetes_cluster, apps_api):
        with pytest.raises(EmptySlotError):
            kubernetes_cluster.scale(7, 1)

        apps_api.patch_namespaced_deployment_scale.assert_not_called()

    def test_scale_failure_leaves_mirror_unchanged(self, kubernetes_cluster, apps_api):
        apps_api.patch_namespaced_deployment_scale.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(ClusterApiError) as exc_info:
            kubernetes_cluster.scale(0, 5)

        assert exc_info.value.recovery_hint is not None
        assert kubernetes_cluster.replicas(0) == 2

    def test_reset_replays_added_and_ignores_watch_meanwhile(self, kubernetes_cluster, apps_api, app_observer, watch_cls):
        handler = watch_handler(watch_cls)
        app_observer.events.clear()

        def list_during_reset(namespace):
            handler("ADDED", deployment("late", 1))
            return SimpleNamespace(items=[deployment("web", 2)], metadata=SimpleNamespace(resource_version="200"))

        apps_api.list_namespaced_deployment.side_effect = list_during_reset
        kubernetes_cluster.reset()

        assert [(e.type, e.index) for e in app_observer.events] == [(AppEventType.ADDED, 0)]
        assert kubernetes_cluster.app_count() == 1

    def test_reset_failure_is_not_raised(self, kubernetes_cluster, apps_api):
        apps_api.list_namespaced_deployment.side_effect = ApiException(status=500, reason="boom")

        kubernetes_cluster.reset()

        assert kubernetes_cluster.app_count() == 0

    def test_resync_after_expired_watch_diffs(self, kubernetes_cluster, apps_api, app_observer, watch_cls):
        resync = watch_cls.call_args.kwargs["on_expired"]
        apps_api.list_namespaced_deployment.return_value = SimpleNamespace(
            items=[deployment("web", 3)], metadata=SimpleNamespace(resource_version="300")
        )
        app_observer.events.clear()

        assert resync() == "300"
        assert [e.type for e in app_observer.events] == [
            AppEventType.DELETED,
            AppEventType.SCALED_UP,
            AppEventType.DEPLOYED,
        ]

    def test_close_stops_watch(self, kubernetes_cluster, watch_cls):
        kubernetes_cluster.close()

        watch_cls.return_value.stop.assert_called_once()

    def test_from_config_uses_kubeconfig_context(self):
        config = KubepadConfig.model_validate({"kubernetes": {"namespace": "ops", "context": "prod"}})

        with patch("kubepad.cluster.kubernetes.kube_config") as kube_config, \
                patch("kubepad.cluster.kubernetes.client") as client:
            cluster = KubernetesCluster.from_config(config)

        kube_config.load_kube_config.assert_called_once_with(context="prod")
        client.AppsV1Api.assert_called_once()
        assert cluster._namespace == "ops"


@pytest.fixture
def custom_api():
    api = Mock()
    api.list_namespaced_custom_object.return_value = {
        "items": [deployment_config("frontend", 2), deployment_config("backend", 1, labels={})],
        "metadata": {"resourceVersion": "42"},
    }
    return api


@pytest.mark.unit
class TestOpenShiftCluster:
    """Listing, watching and scaling DeploymentConfigs."""

    @pytest.fixture
    def openshift_watch(self):
        with patch("kubepad.cluster.openshift.ResourceWatch") as cls:
            yield cls

    @pytest.fixture
    def openshift_cluster(self, custom_api, openshift_watch, app_observer):
        cluster = OpenShiftCluster(custom_api, project="demo")
        cluster.register_observer(app_observer)
        cluster.start()
        return cluster

    def test_normalization(self):
        workload = OpenShiftCluster.to_workload(deployment_config("frontend", 3, ready=1))

        assert workload.name == "frontend"
        assert workload.replicas == 3
        assert workload.deploying

    def test_start_lists_project_and_watches(self, openshift_cluster, custom_api, openshift_watch, app_observer):
        custom_api.list_namespaced_custom_object.assert_called_once_with(
            group="apps.openshift.io", version="v1", namespace="demo", plural="deploymentconfigs"
        )
        assert openshift_cluster.app_count() == 1
        assert [e.type for e in app_observer.events] == [AppEventType.ADDED]
        openshift_watch.return_value.start.assert_called_once_with("42")
        assert openshift_watch.call_args.kwargs["plural"] == "deploymentconfigs"

    def test_scale_merge_patches_replicas(self, openshift_cluster, custom_api):
        openshift_cluster.scale(0, 4)

        custom_api.patch_namespaced_custom_object.assert_called_once_with(
            group="apps.openshift.io",
            version="v1",
            namespace="demo",
            plural="deploymentconfigs",
            name="frontend",
            body={"spec": {"replicas": 4}},
        )
        assert openshift_cluster.replicas(0) == 4

    def test_watch_events(self, openshift_cluster, openshift_watch, app_observer):
        handler = openshift_watch.call_args.kwargs["handler"]
        app_observer.events.clear()

        handler("MODIFIED", deployment_config("frontend", 1))
        handler("MODIFIED", deployment_config("backend", 1))

        assert [(e.type, e.index) for e in app_observer.events] == [
            (AppEventType.SCALED_DOWN, 0),
            (AppEventType.DEPLOYED, 0),
            (AppEventType.ADDED, 1),
        ]

    def test_scale_empty_slot_makes_no_remote_call(self, openshift_cluster, custom_api):
        with pytest.raises(EmptySlotError):
            openshift_cluster.scale(3, 1)

        custom_api.patch_namespaced_custom_object.assert_not_called()


def parked(result=None):
    """Side effect that parks the first call until released, then returns ``result``."""
    started = threading.Event()
    release = threading.Event()

    def call(*args, **kwargs):
        if not started.is_set():
            started.set()
            release.wait(timeout=5)
        return result

    return call, started, release


@pytest.mark.unit
class TestKubernetesClientLock:
    """Scale requests are serialized with watch events and re-listings."""

    def test_watch_event_waits_for_scale(self, kubernetes_cluster, apps_api, app_observer, watch_cls):
        patch_scale, started, release = parked()
        apps_api.patch_namespaced_deployment_scale.side_effect = patch_scale
        handler = watch_handler(watch_cls)
        app_observer.events.clear()

        scaler = threading.Thread(target=kubernetes_cluster.scale, args=(0, 3))
        scaler.start()
        assert started.wait(timeout=5)

        watcher = threading.Thread(target=handler, args=("MODIFIED", deployment("web", 3)))
        watcher.start()
        watcher.join(timeout=0.1)
        assert watcher.is_alive()

        release.set()
        scaler.join(timeout=5)
        watcher.join(timeout=5)

        assert [(e.type, e.index, e.replicas) for e in app_observer.events] == [
            (AppEventType.DEPLOYED, 0, 3),
        ]

    def test_relisting_fetched_before_scale_is_not_applied_after_it(
        self, kubernetes_cluster, apps_api, app_observer, watch_cls
    ):
        before_scale = apps_api.list_namespaced_deployment.return_value
        list_deployments, started, release = parked(before_scale)
        apps_api.list_namespaced_deployment.side_effect = list_deployments
        on_expired = watch_cls.call_args.kwargs["on_expired"]
        app_observer.events.clear()

        resync = threading.Thread(target=on_expired)
        resync.start()
        assert started.wait(timeout=5)

        scaler = threading.Thread(target=kubernetes_cluster.scale, args=(0, 3))
        scaler.start()
        scaler.join(timeout=0.1)
        assert scaler.is_alive()

        release.set()
        resync.join(timeout=5)
        scaler.join(timeout=5)

        assert app_observer.events == []
        assert kubernetes_cluster.replicas(0) == 3
