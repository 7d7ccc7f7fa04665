from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from .client import fetch_available_models, model_choices
from . import config as config_mod
from .config import is_valid, load_config, save_config
from .models import Config


def run_onboarding() -> Config:
    console = Console()

    console.clear()

    welcome_text = Text()
    welcome_text.append("Welcome to mailassist!\n\n", style="bold cyan")
    welcome_text.append("Select text in an email, get a reply written for you\n", style="dim")

    console.print(Panel(welcome_text, border_style="cyan", expand=False))
    console.print()

    config = load_config() or Config()

    console.print("[bold]OpenAI Account[/bold]")
    console.print()
    console.print("Enter your OpenAI API key:")
    console.print("(Get one at https://platform.openai.com/api-keys)")
    api_key = Prompt.ask("API Key", password=True, default=config.openai_api_key or "", show_default=False)
    config.openai_api_key = api_key.strip() or None

    if not is_valid(config):
        console.print("[yellow]That key does not look valid; you can change it later with 'mailassist config'.[/yellow]")

    console.print()
    console.print("[bold]Model[/bold]")
    console.print()

    fetched = fetch_available_models(config.openai_api_key) if is_valid(config) else []
    options = model_choices(config.openai_model, fetched)
    for index, (label, _) in enumerate(options, start=1):
        console.print(f"  {index}. {label}")
    console.print()

    current = next((str(i) for i, (_, model_id) in enumerate(options, start=1) if model_id == config.openai_model), "1")
    choice = Prompt.ask("Select option", choices=[str(i) for i in range(1, len(options) + 1)], default=current)
    config.openai_model = options[int(choice) - 1][1]

    console.print()
    console.print("[bold]Assistant Behaviour[/bold]")
    console.print()
    console.print("The system prompt is sent with every request, e.g. tone, language and signature.")
    config.system_prompt = Prompt.ask("System prompt", default=config.system_prompt)

    console.print()
    console.print("[bold]About You[/bold]")
    console.print()
    name = Prompt.ask("Your name", default=config.user_name or "")
    email = Prompt.ask("Your email", default=config.user_email or "")
    config.user_name = name.strip() or None
    config.user_email = email.strip() or None

    console.print()
    console.print("[bold green]Setup Complete![/bold green]")
    console.print()

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="cyan")
    summary.add_column()

    summary.add_row("API key:", "set" if is_valid(config) else "[red]missing[/red]")
    summary.add_row("Model:", config.openai_model)
    summary.add_row("System prompt:", config.system_prompt)
    summary.add_row("Hotkey:", config.hotkey)

    console.print(Panel(summary, title="Your Configuration", border_style="green"))
    console.print()

    if Confirm.ask("Save this configuration?", default=True):
        if not save_config(config):
            console.print("[red]Could not write[/red]", config_mod.CONFIG_PATH)
            return config
        console.print("[green]Configuration saved to[/green]", config_mod.CONFIG_PATH)
        console.print()
        console.print("[bold]To generate a reply, run:[/bold]")
        console.print("  [cyan]mailassist generate \"Thank them for the invite and decline politely\"[/cyan]")
        console.print()
        return config
    else:
        console.print("[yellow]Configuration not saved. Run 'mailassist setup' to try again.[/yellow]")
        return config
