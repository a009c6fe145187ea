"""Command-line interface for kubepad."""

from .main import cli

__all__ = ["cli"]
