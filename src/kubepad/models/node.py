"""Node model representing a single grid cell."""

from pydantic import BaseModel, Field

from .enums import Phase


class ClusterNode(BaseModel):
    """
    One replica slot in the 8x8 grid.

    A node is created once per cell and lives as long as the grid; only
    ``phase`` and ``active`` change. Activation gates phase tracking:
    ``update`` on an inactive node does nothing.
    """

    row: int = Field(ge=0, lt=8, description="Row (0-7), one per workload")
    column: int = Field(ge=0, lt=8, description="Column (0-7), one per replica")
    phase: Phase = Field(default=Phase.UNKNOWN, description="Lifecycle phase")
    active: bool = Field(default=False, description="Backed by a replica")

    def activate(self) -> "ClusterNode":
        """Mark the node active and running."""
        self.active = True
        self.phase = Phase.RUNNING
        return self

    def update(self, phase: Phase) -> "ClusterNode":
        """Set the phase if the node is active."""
        if self.active:
            self.phase = phase
        return self

    def deactivate(self) -> "ClusterNode":
        """Mark the node inactive and terminated."""
        self.active = False
        self.phase = Phase.TERMINATED
        return self

    @property
    def is_stopping(self) -> bool:
        """Active, but asked to stop and waiting for confirmation."""
        return self.active and self.phase is Phase.SUCCEEDED

    @property
    def is_running(self) -> bool:
        """Active and not on its way out."""
        return self.active and self.phase is not Phase.SUCCEEDED

    @property
    def position(self) -> tuple[int, int]:
        """Get (row, column) position as tuple."""
        return (self.row, self.column)
