"""Core reconciliation logic for kubepad."""

from .node_grid import GRID_SIZE, ClusterNodeGrid
from .observer import ObserverManager
from .persistence import PydanticPersistence

__all__ = [
    "GRID_SIZE",
    "ClusterNodeGrid",
    "ObserverManager",
    "PydanticPersistence",
]
