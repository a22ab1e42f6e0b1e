"""Main CLI application."""

from pathlib import Path

import typer

from runtime_core.cli.commands import api, config
from runtime_core.cli.utils import validate_path_exists
from runtime_core.services.di import register_core_services
from runtime_core.services.registry import get_service_registry
from runtime_core.settings import get_settings

app = typer.Typer(
    name="runtime-core",
    help="Runtime core CLI - data client and configuration tools",
    no_args_is_help=True,
)

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="API configuration file (overrides RUNTIME_CORE_API_CONFIG_PATH)",
    metavar="<path>",
)  # fmt: skip


@app.callback()
def main_callback(config_path: Path | None = CONFIG_OPTION):
    """Global options for all commands."""
    if config_path is not None:
        validate_path_exists(config_path, "Configuration file")
        get_settings().api_config_path = config_path

    registry = get_service_registry()
    register_core_services(registry)


# Register command groups
app.add_typer(config.app, name="config")
app.add_typer(api.app, name="api")
