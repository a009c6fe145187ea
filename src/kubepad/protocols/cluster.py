"""The contract every cluster backend implements."""

from typing import Protocol, runtime_checkable

from .observers import AppObserver


@runtime_checkable
class Cluster(Protocol):
    """
    A remote orchestration backend mapped onto 8 grid rows.

    Each index in [0, 8) holds exactly one workload or is empty.
    Implementations own their workload records and report changes
    to registered AppObservers.
    """

    def app_count(self) -> int:
        """Number of occupied rows."""
        ...

    def app_exists(self, index: int) -> bool:
        """True if a workload is placed at the given row."""
        ...

    def replicas(self, index: int) -> int:
        """Desired replicas of the workload at the row, or -1 if empty."""
        ...

    def labels(self, index: int) -> dict[str, str]:
        """Labels of the workload at the row, or an empty dict if empty."""
        ...

    def scale(self, index: int, replicas: int) -> None:
        """
        Scale the workload at the row.

        Raises:
            InvalidSlotError: If index is outside [0, 8)
            EmptySlotError: If no workload is placed at index
            ClusterApiError: If the remote request fails
        """
        ...

    def reset(self) -> None:
        """Clear all rows and re-run the initial listing."""
        ...

    def clear(self) -> None:
        """Clear all rows without contacting the backend."""
        ...

    def start(self) -> None:
        """List remote workloads and begin watching or polling."""
        ...

    def close(self) -> None:
        """Stop watching or polling."""
        ...

    def register_observer(self, observer: AppObserver) -> None:
        """Register an observer for app events."""
        ...

    def unregister_observer(self, observer: AppObserver) -> None:
        """Unregister an app event observer."""
        ...
