"""Configuration inspection commands."""

import typer
from rich.console import Console

from runtime_core.data_client.config import load_api_config
from runtime_core.settings import get_settings

app = typer.Typer(help="Configuration inspection")
console = Console()


@app.command()
def show():
    """Show the effective data client configuration.

    Prints the configuration loaded from the file named by
    ``RUNTIME_CORE_API_CONFIG_PATH`` (or ``--config``), with defaults applied
    for everything the file leaves out.

    Examples:
        runtime-core config show
        runtime-core --config api-config.json config show
    """
    settings = get_settings()
    source = settings.api_config_path or "built-in defaults"
    console.print(f"[bold]API configuration[/bold] [dim]({source})[/dim]")
    console.print_json(load_api_config(settings.api_config_path).model_dump_json(by_alias=True))
