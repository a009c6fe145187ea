"""Kubepad: an 8x8 grid view of cluster workloads, kept in sync with the backend."""

__version__ = "0.1.0"

# Grid reconciler
from .core import ClusterNodeGrid

# Application wiring
from .app import KubepadApp

__all__ = [
    "ClusterNodeGrid",
    "KubepadApp",
]
