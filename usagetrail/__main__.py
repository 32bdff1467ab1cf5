"""Entry point for ``python -m usagetrail``."""

from .cli import app

if __name__ == "__main__":
    app()
