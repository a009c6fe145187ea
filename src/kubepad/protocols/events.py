"""Domain event types for the observer pattern.

This module defines the kinds of events exchanged inside kubepad:
- App events: Remote workload transitions detected by a cluster backend
- Node events: Activation changes of a single grid node
"""

from enum import Enum


class AppEventType(Enum):
    """Workload transitions reported by a cluster backend."""

    ADDED = "added"            # Workload admitted to a row
    DELETED = "deleted"        # Workload removed from its row
    SCALED_UP = "scaled_up"    # Desired replica count increased
    SCALED_DOWN = "scaled_down"  # Desired replica count decreased
    DEPLOYED = "deployed"      # In-flight rollout finished


class NodeEventType(Enum):
    """Lifecycle transitions of a grid node."""

    STARTING = "starting"  # Node activated, replica not yet confirmed
    STARTED = "started"    # Replica confirmed running
    STOPPING = "stopping"  # Replica asked to stop, not yet confirmed
    STOPPED = "stopped"    # Node deactivated
