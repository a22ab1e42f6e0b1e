"""CLI module for runtime-core.

Provides command-line access to the data client and its configuration.
"""

from runtime_core.cli.app import app

__all__ = ["app"]
