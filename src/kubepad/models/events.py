"""Immutable event payloads passed between clusters, the grid and observers."""

from pydantic import BaseModel, ConfigDict, Field

from kubepad.protocols.events import AppEventType, NodeEventType


class AppEvent(BaseModel):
    """A workload transition detected by a cluster backend."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, lt=8, description="Row the workload occupies")
    replicas: int = Field(ge=0, description="Replica count after the transition")
    labels: dict[str, str] = Field(default_factory=dict, description="Workload labels")
    type: AppEventType = Field(description="Kind of transition")


class NodeEvent(BaseModel):
    """A lifecycle transition of one grid node."""

    model_config = ConfigDict(frozen=True)

    row: int = Field(ge=0, lt=8)
    column: int = Field(ge=0, lt=8)
    type: NodeEventType

    @property
    def position(self) -> tuple[int, int]:
        return (self.row, self.column)
