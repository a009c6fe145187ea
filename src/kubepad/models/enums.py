"""Enumerations for kubepad."""

from enum import Enum


class Phase(str, Enum):
    """Lifecycle phase of a grid node."""

    PENDING = "Pending"        # Started locally, waiting for the rollout
    RUNNING = "Running"        # Replica running
    TERMINATED = "Terminated"  # Node deactivated
    SUCCEEDED = "Succeeded"    # Asked to stop, waiting for the rollout
    FAILED = "Failed"
    UNKNOWN = "Unknown"        # Never activated


class ClusterService(str, Enum):
    """Names of the built-in cluster backends."""

    KUBERNETES = "kubernetes"
    OPENSHIFT = "openshift"
    MARATHON = "marathon"


class LaunchpadColor(Enum):
    """Launchpad MK2 palette entries used for row colors (value = palette index)."""

    NONE = 0
    YELLOW = 13
    BLUE = 45
    PURPLE = 53
    RED = 72
    LIGHT_BLUE = 79
    LIGHT_GREEN = 21
    DARK_PURPLE = 81

    @classmethod
    def default_for_row(cls, row: int) -> "LaunchpadColor":
        """Default color of a row, cycling through the palette (NONE excluded)."""
        palette = [color for color in cls if color is not cls.NONE]
        if not 0 <= row < 8:
            return cls.LIGHT_GREEN
        return palette[row % len(palette)]

    @classmethod
    def from_name(cls, name: str) -> "LaunchpadColor":
        """
        Look up a palette entry by name (case-insensitive).

        Raises:
            ValueError: If the name is not a palette entry
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown Launchpad color: {name!r}") from None
