"""Cluster backend registry.

Maps backend names (``cluster_service`` in the config) to factories that
build a ready-to-start Cluster from the full configuration.
"""

import logging
from collections.abc import Callable

from kubepad.exceptions import ConfigurationError
from kubepad.models import ClusterService, KubepadConfig
from kubepad.protocols import Cluster

logger = logging.getLogger(__name__)

ClusterFactory = Callable[[KubepadConfig], Cluster]

# Registry of backends
# Format: "name": factory(config) -> Cluster
CLUSTERS: dict[str, ClusterFactory] = {}


def register_cluster(name: str, factory: ClusterFactory) -> None:
    """
    Register a cluster backend.

    Args:
        name: Backend name; selects it when ``cluster_service`` in config matches
        factory: Callable building the cluster from a KubepadConfig
    """
    CLUSTERS[name.lower()] = factory


def get_cluster_factory(name: str) -> ClusterFactory | None:
    """Get a backend factory by name, or None if not registered."""
    return CLUSTERS.get(name.lower())


def create_cluster(config: KubepadConfig) -> Cluster:
    """
    Build the backend selected by ``config.cluster_service``.

    Raises:
        ConfigurationError: If no backend is registered under that name,
            or the backend cannot load its credentials
    """
    name = config.cluster_service
    factory = get_cluster_factory(name)
    if factory is None:
        raise ConfigurationError(
            user_message=f"Unknown cluster service: {name}",
            technical_message=f"No cluster factory registered for {name!r}",
            recovery_hint=f"Use one of: {', '.join(sorted(CLUSTERS))}",
        )

    logger.info(f"Creating {name} cluster")
    return factory(config)


def _register_builtin_clusters() -> None:
    """Register built-in backends. Called on module import."""
    from .kubernetes import KubernetesCluster
    from .marathon import MarathonCluster
    from .openshift import OpenShiftCluster

    register_cluster(ClusterService.KUBERNETES.value, KubernetesCluster.from_config)
    register_cluster(ClusterService.OPENSHIFT.value, OpenShiftCluster.from_config)
    register_cluster(ClusterService.MARATHON.value, MarathonCluster.from_config)


# Register built-in backends on module import
_register_builtin_clusters()

__all__ = [
    "ClusterFactory",
    "create_cluster",
    "get_cluster_factory",
    "register_cluster",
]
