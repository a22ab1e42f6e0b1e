"""CLI entry point.

Usage:
    python -m runtime_core.cli config show
    python -m runtime_core.cli api get /v1/articles
    runtime-core api endpoints
"""

from runtime_core.cli.app import app
from runtime_core.logging import setup_logging
from runtime_core.settings import get_settings


def main() -> None:
    """CLI entry point: compact logging at the configured level, then dispatch."""
    setup_logging(get_settings().log_level, compact=True)
    app()


if __name__ == "__main__":
    main()
