"""Cluster backends mapped onto the 8 grid rows.

- WorkloadSlots: the shared 8-slot arena (admission, placement, diffing)
- KubernetesCluster / OpenShiftCluster: watch-driven backends
- MarathonCluster: polling backend over MarathonClient
- create_cluster: builds the backend named in the config
"""

from .kubernetes import KubernetesCluster
from .marathon import MarathonCluster
from .marathon_client import MarathonClient
from .openshift import OpenShiftCluster
from .registry import ClusterFactory, create_cluster, get_cluster_factory, register_cluster
from .slots import SLOT_COUNT, WorkloadSlots, rollout_in_flight
from .watch import ResourceWatch

__all__ = [
    "SLOT_COUNT",
    "ClusterFactory",
    "KubernetesCluster",
    "MarathonClient",
    "MarathonCluster",
    "OpenShiftCluster",
    "ResourceWatch",
    "WorkloadSlots",
    "create_cluster",
    "get_cluster_factory",
    "register_cluster",
    "rollout_in_flight",
]
