"""Data models for kubepad."""

from .config import (
    KubepadConfig,
    KubernetesConfig,
    LabelConfig,
    MarathonConfig,
    OpenShiftConfig,
)
from .enums import ClusterService, LaunchpadColor, Phase
from .events import AppEvent, NodeEvent
from .node import ClusterNode
from .workload import Workload

__all__ = [
    # Events
    "AppEvent",
    # Models
    "ClusterNode",
    # Enums
    "ClusterService",
    # Config
    "KubepadConfig",
    "KubernetesConfig",
    "LabelConfig",
    "LaunchpadColor",
    "MarathonConfig",
    "NodeEvent",
    "OpenShiftConfig",
    "Phase",
    "Workload",
]
