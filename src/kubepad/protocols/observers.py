"""Observer protocol definitions for domain-specific events.

- App observers: React to workload transitions reported by a cluster
- Node observers: React to grid node lifecycle changes
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from kubepad.models import AppEvent, NodeEvent


@runtime_checkable
class AppObserver(Protocol):
    """
    Observer that receives workload transitions from a cluster backend.

    The node grid is the primary implementation; anything else that wants
    to follow remote state (logging, metrics) can register as well.
    """

    def on_app_event(self, event: "AppEvent") -> None:
        """
        Handle a workload transition.

        Args:
            event: The app event (row index, replicas, labels, type)

        Threading:
            Called from the backend's watch or polling worker, or from the
            caller of Cluster.start()/reset(). Implementations must be
            thread-safe.
        """
        ...


@runtime_checkable
class NodeObserver(Protocol):
    """
    Observer that receives node lifecycle events from the node grid.

    Display layers (Launchpad LEDs, terminal output) implement this to
    mirror the grid.
    """

    def on_node_event(self, event: "NodeEvent") -> None:
        """
        Handle a node lifecycle event.

        Args:
            event: The node event (row, column, type)

        Threading:
            Called while the grid holds the lock of the event's row, so
            events of one row arrive in emission order. Implementations
            should not block.
        """
        ...
