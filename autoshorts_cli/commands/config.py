"""Config command."""

import subprocess
from typing import Any, Optional

import typer
from pydantic import ValidationError

from autoshorts_cli.config.settings import Settings, get_config_path, load_settings, save_user_config


SECRET_KEYS = {"gemini_api_keys"}
NULL_VALUES = {"", "none", "null"}


def config_command(
    key: Optional[str] = typer.Argument(None, help="Config key to set/get"),
    value: Optional[str] = typer.Argument(None, help="Value to set"),
    list_all: bool = typer.Option(False, "-l", "--list", help="List all config"),
    edit: bool = typer.Option(False, "-e", "--edit", help="Open config in editor"),
) -> None:
    """
    Manage CLI configuration.

    Examples:
        autoshorts config                                # Show all config
        autoshorts config gemini_api_keys KEY1,KEY2      # Set the API key pool
        autoshorts config chunk_minutes 20               # Shorter analysis chunks
        autoshorts config use_gpu true                   # Encode with NVENC
    """
    if edit:
        config_path = get_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        if not config_path.exists():
            config_path.write_text("{}\n", encoding="utf-8")
        editor = typer.get_editor() or "vi"
        subprocess.call([editor, str(config_path)])
        return

    settings = load_settings()

    if list_all or not key:
        _print_config(settings)
        return

    if key not in Settings.model_fields:
        typer.echo(f"Error: Unknown key '{key}'", err=True)
        raise typer.Exit(1)

    if value is None:
        typer.echo(_display(key, getattr(settings, key)))
        return

    parsed: Any = None if value.strip().lower() in NULL_VALUES else value
    try:
        save_user_config({key: parsed})
    except ValidationError as e:
        message = e.errors()[0]["msg"] if e.errors() else str(e)
        typer.echo(f"Error: Invalid value for '{key}': {message}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Set {key} = {_display(key, parsed)}")


def _display(key: str, value: Any) -> str:
    if value is None or value == "":
        return "(not set)"
    if key in SECRET_KEYS:
        count = len([k for k in str(value).split(",") if k.strip()])
        return f"*** ({count} key{'s' if count != 1 else ''})"
    return str(value)


def _print_config(settings: Settings) -> None:
    """Pretty print configuration."""
    from autoshorts_cli.output.table import print_table

    headers = ["Key", "Value"]
    rows = [[name, _display(name, getattr(settings, name))] for name in Settings.model_fields]

    print_table(headers, rows)
    typer.echo(f"Settings file: {get_config_path()}")
