"""Entry point for ``python -m screentrail``."""

from screentrail.cli import cli

if __name__ == "__main__":
    cli()
