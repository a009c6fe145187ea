"""CLI commands for kubepad."""

from .config import config
from .rows import rows
from .run import run
from .scale import scale

__all__ = ["config", "rows", "run", "scale"]
