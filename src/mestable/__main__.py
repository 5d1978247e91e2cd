"""Permite ejecutar `python -m mestable`."""

from mestable.cli import app


if __name__ == "__main__":
    app()
