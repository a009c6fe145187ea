"""Normalized view of a remote workload (Deployment, DeploymentConfig, Marathon app)."""

import logging

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class Workload(BaseModel):
    """
    A backend workload reduced to what drives the grid.

    Every backend adapter converts its native objects into this shape so
    admission, placement and change detection are shared.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Deployment name or Marathon app id")
    replicas: int = Field(default=0, ge=0, description="Desired replica count")
    labels: dict[str, str] = Field(default_factory=dict, description="Workload labels")
    deploying: bool = Field(default=False, description="A rollout is in flight")

    def is_enabled(self, enable_label: str) -> bool:
        """Check the enable flag (case-insensitive ``true``)."""
        return self.labels.get(enable_label, "").strip().lower() == "true"

    def preferred_row(self, row_label: str) -> int | None:
        """
        Get the preferred row hint, if present and valid.

        Returns:
            Row index in [0, 8), or None if missing or invalid
        """
        raw = self.labels.get(row_label)
        if raw is None:
            return None

        try:
            row = int(raw.strip())
        except ValueError:
            logger.warning(f"Ignoring non-numeric {row_label}={raw!r} on {self.name}")
            return None

        if not 0 <= row < 8:
            logger.warning(f"Ignoring out-of-range {row_label}={row} on {self.name}")
            return None
        return row

    def with_replicas(self, replicas: int, deploying: bool = True) -> "Workload":
        """Copy with a new desired replica count."""
        return self.model_copy(update={"replicas": replicas, "deploying": deploying})
