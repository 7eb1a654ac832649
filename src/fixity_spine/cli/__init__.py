"""
CLI layer for fixity-spine.

Provides a Typer application; the work itself lives in
``fixity_spine.runner`` and the analyzers.
"""

from fixity_spine.cli.app import app

__all__ = ["app"]
