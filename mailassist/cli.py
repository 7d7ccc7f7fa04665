"""Command line interface for the mailassist application."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Optional

import typer

from . import __version__
from . import config as config_mod
from .assistant import GENERATION_FAILED_MESSAGE, Assistant
from .client import fetch_available_models, model_choices
from .config import ConfigError
from .models import Config

app = typer.Typer(add_completion=False, help="Generate email text with OpenAI from the command line.")


def _mask_secret(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:3]}...{value[-4:]}"


def _read_source(text: Optional[str], file: Optional[Path]) -> str:
    if file is not None:
        return file.read_text(encoding="utf-8")
    if text is not None:
        return text
    return sys.stdin.read()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
    debug: bool = typer.Option(False, "--debug", help="Log requests and configuration handling"),
) -> None:
    if version:
        typer.echo(f"mailassist v{__version__}")
        raise typer.Exit()

    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command()
def generate(
    text: Optional[str] = typer.Argument(None, help="Text to send. Read from stdin when omitted."),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, readable=True, dir_okay=False, help="Read the text from a file."
    ),
    marker: bool = typer.Option(
        False, "--marker", help="Send only the instruction following `/aw:` instead of the whole text."
    ),
) -> None:
    """Send text to the model and print the generated reply."""

    assistant = Assistant.from_disk()
    if not assistant.is_configured:
        typer.secho(
            "No valid OpenAI API key configured. Run `mailassist config --api-key ...` "
            f"or edit {config_mod.CONFIG_PATH}.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    try:
        source = _read_source(text, file)
    except UnicodeDecodeError as exc:
        typer.secho(f"Could not read {file}: the file is not UTF-8 text.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    request = assistant.generate(source, use_marker=marker)

    if request.prompt is None:
        hint = "No `/aw:` instruction found in the text." if marker else "Nothing to send: the text is empty."
        typer.secho(hint, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if not request.succeeded or request.response is None:
        typer.secho(GENERATION_FAILED_MESSAGE, fg=typer.colors.RED, err=True)
        if request.error:
            typer.secho(f"Details: {request.error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(request.response)


@app.command()
def models() -> None:
    """List chat models available for the configured API key."""

    cfg = config_mod.load_config() or Config()
    fetched = fetch_available_models(cfg.openai_api_key) if config_mod.is_valid(cfg) else []
    if not fetched:
        typer.secho(
            "Could not fetch models from the API; showing the built-in list.",
            fg=typer.colors.YELLOW,
            err=True,
        )
    for label, model_id in model_choices(cfg.openai_model, fetched):
        marker = "*" if model_id == cfg.openai_model else " "
        if label == model_id:
            typer.echo(f"{marker} {model_id}")
        else:
            typer.echo(f"{marker} {model_id:<16}  {label}")


@app.command()
def config(
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenAI API key."),
    model: Optional[str] = typer.Option(None, "--model", help="Chat model id, e.g. gpt-4o-mini."),
    system_prompt: Optional[str] = typer.Option(None, "--system-prompt", help="Instruction sent with every request."),
    hotkey: Optional[str] = typer.Option(None, "--hotkey", help="Hotkey binding used by front ends."),
    name: Optional[str] = typer.Option(None, "--name", help="Your display name."),
    email: Optional[str] = typer.Option(None, "--email", help="Your email address."),
    show: bool = typer.Option(False, "--show", help="Display the active configuration."),
) -> None:
    """Update or inspect configuration settings."""

    updates: Dict[str, object] = {
        key: value
        for key, value in {
            "openai_api_key": api_key,
            "openai_model": model,
            "system_prompt": system_prompt,
            "hotkey": hotkey,
            "user_name": name,
            "user_email": email,
        }.items()
        if value is not None
    }

    if show or not updates:
        cfg = config_mod.load_config()
        if cfg is None:
            typer.secho(f"Failed to parse configuration file {config_mod.CONFIG_PATH}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        data = asdict(cfg)
        data["openai_api_key"] = _mask_secret(cfg.openai_api_key)
        typer.echo(json.dumps(data, indent=2))
        if not config_mod.is_valid(cfg):
            typer.secho("The API key is not set yet.", fg=typer.colors.YELLOW, err=True)
        return

    try:
        config_mod.update_config(**updates)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.secho("Configuration updated.", fg=typer.colors.BLUE)


@app.command()
def path() -> None:
    """Print the location of the configuration file."""

    typer.echo(str(config_mod.CONFIG_PATH))


@app.command()
def setup() -> None:
    """Run the interactive setup wizard."""

    try:
        from .onboarding import run_onboarding
    except ImportError as exc:
        typer.secho(
            "Missing dependencies for setup. Reinstall with `pip install mailassist`.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1) from exc

    try:
        run_onboarding()
    except Exception as exc:
        typer.secho(f"Setup failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def settings() -> None:
    """Open the interactive preferences form."""

    try:
        from .settings_ui import show_settings_ui
    except ImportError as exc:
        typer.secho(
            "Missing dependencies for the settings UI. Reinstall with `pip install mailassist`.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1) from exc

    try:
        show_settings_ui()
    except Exception as exc:
        typer.secho(f"Settings UI failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":  # pragma: no cover
    app()
