"""Protocol definitions for kubepad's observer patterns and backend contract.

- Events: App (workload) and node event types
- Observers: Protocols for components that react to these events
- Cluster: The interface every backend implements
"""

from .cluster import Cluster
from .events import AppEventType, NodeEventType
from .observers import AppObserver, NodeObserver

__all__ = [
    # Events
    "AppEventType",
    # Observers
    "AppObserver",
    # Backend contract
    "Cluster",
    "NodeEventType",
    "NodeObserver",
]
