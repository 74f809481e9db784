"""Allow running QUIVER as ``python -m quiver``."""

from quiver.cli import app

if __name__ == "__main__":
    app()
