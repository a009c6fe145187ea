"""Allow running as ``python -m kubepad``."""

from kubepad.cli import cli

if __name__ == "__main__":
    cli()
