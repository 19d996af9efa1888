"""Entry point for ``python -m cli``."""
from cli.app import cli

if __name__ == "__main__":
    cli()
