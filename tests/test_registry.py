"""Tests for the cluster backend registry."""

from unittest.mock import Mock, patch

import pytest

from kubepad.cluster import create_cluster, get_cluster_factory, register_cluster
from kubepad.cluster.kubernetes import KubernetesCluster
from kubepad.cluster.marathon import MarathonCluster
from kubepad.cluster.openshift import OpenShiftCluster
from kubepad.cluster.registry import CLUSTERS
from kubepad.exceptions import ConfigurationError
from kubepad.models import ClusterService, KubepadConfig


@pytest.mark.unit
class TestRegistry:
    """Backend selection by name."""

    def test_builtin_backends_are_registered(self):
        assert get_cluster_factory("kubernetes") == KubernetesCluster.from_config
        assert get_cluster_factory("OpenShift") == OpenShiftCluster.from_config
        assert get_cluster_factory("marathon") == MarathonCluster.from_config

    def test_create_uses_configured_service(self):
        sentinel = Mock()
        factory = Mock(return_value=sentinel)
        config = KubepadConfig(cluster_service=ClusterService.MARATHON.value)

        with patch.dict(CLUSTERS, {"marathon": factory}):
            assert create_cluster(config) is sentinel

        factory.assert_called_once_with(config)

    def test_unregistered_service_raises(self):
        with patch.dict(CLUSTERS, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                create_cluster(KubepadConfig())

        assert "kubernetes" in exc_info.value.user_message

    def test_register_custom_backend(self):
        factory = Mock()

        with patch.dict(CLUSTERS):
            register_cluster("Nomad", factory)
            assert get_cluster_factory("nomad") is factory

        assert get_cluster_factory("nomad") is None

    def test_custom_backend_selected_from_config(self):
        sentinel = Mock()
        factory = Mock(return_value=sentinel)
        config = KubepadConfig(cluster_service="Nomad")

        with patch.dict(CLUSTERS):
            register_cluster("nomad", factory)
            assert create_cluster(config) is sentinel

        factory.assert_called_once_with(config)

    def test_unregistered_custom_name_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_cluster(KubepadConfig(cluster_service="nomad"))

        assert "marathon" in exc_info.value.recovery_hint
