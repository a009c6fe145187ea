"""Cluster and grid exceptions.

This module defines exceptions raised by cluster backends and the node grid:
- ClusterError: Base class for cluster errors
- InvalidSlotError: Row/column index outside the 8x8 grid
- EmptySlotError: Operation on a row that holds no workload
- NodeNotFoundError: No node matches a next()/last() search
- ClusterApiError: Remote API call failed
"""

from typing import Optional

from .base import KubepadError


class ClusterError(KubepadError):
    """Error raised by a cluster backend or the node grid."""
    pass


class InvalidSlotError(ClusterError):
    """Row or column index is outside the grid."""

    def __init__(self, index: int, kind: str = "row"):
        super().__init__(
            user_message=f"Invalid {kind} index {index}: must be 0-7",
            technical_message=f"{kind} index {index} out of range [0, 8)",
            recoverable=True,
        )
        self.index = index
        self.kind = kind


class EmptySlotError(ClusterError):
    """Operation targets a row without a workload."""

    def __init__(self, index: int, operation: str = "scale"):
        super().__init__(
            user_message=f"Cannot {operation}: no app deployed at row {index}",
            technical_message=f"{operation} requested for empty slot {index}",
            recoverable=True,
            recovery_hint=(
                "Label a deployment with LAUNCHPAD_ENABLE=true to place it on the grid, "
                "or run 'kubepad rows' to see occupied rows"
            ),
        )
        self.index = index
        self.operation = operation


class NodeNotFoundError(ClusterError):
    """No node in the row satisfies the search."""

    def __init__(self, row: int, criterion: str):
        super().__init__(
            user_message=f"No {criterion} node in row {row}",
            technical_message=f"Node search '{criterion}' in row {row} returned nothing",
            recoverable=True,
        )
        self.row = row
        self.criterion = criterion


class ClusterApiError(ClusterError):
    """A remote list, scale or watch request failed."""

    def __init__(
        self,
        operation: str,
        original_error: str,
        status: Optional[int] = None,
        recovery_hint: Optional[str] = None,
    ):
        user_msg = f"Cluster request failed while trying to {operation}"
        if status is not None:
            user_msg += f" (HTTP {status})"

        super().__init__(
            user_message=user_msg,
            technical_message=f"{operation} failed: status={status} error={original_error}",
            recoverable=True,
            recovery_hint=recovery_hint,
        )
        self.operation = operation
        self.original_error = original_error
        self.status = status
