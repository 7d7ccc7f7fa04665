from __future__ import annotations

import dataclasses
from typing import Callable, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Button, Footer, Header, Input, Label, Select, Static, TextArea

from .client import fetch_available_models, model_choices
from . import config as config_mod
from .config import is_valid, load_config, save_config
from .models import DEFAULT_HOTKEY, DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT, Config

SYSTEM_PROMPT_HINT = (
    "The system prompt sets the behavior of the assistant, e.g. 'You are a support operator "
    "that helps users find their answers. Keep the answer short and slightly informal but "
    "still professional. Sign with The support team'"
)


def apply_form_values(
    config: Config,
    *,
    api_key: str,
    model: Optional[str],
    system_prompt: str,
    hotkey: str,
    user_name: str,
    user_email: str,
) -> Config:
    """Return a copy of ``config`` updated from the form fields."""

    return dataclasses.replace(
        config,
        openai_api_key=api_key.strip() or None,
        openai_model=(model or "").strip() or DEFAULT_MODEL,
        system_prompt=system_prompt.strip() or DEFAULT_SYSTEM_PROMPT,
        hotkey=hotkey.strip() or DEFAULT_HOTKEY,
        user_name=user_name.strip() or None,
        user_email=user_email.strip() or None,
    )


class SettingsApp(App):
    CSS = """
    Screen {
        align: center middle;
    }

    #settings-container {
        width: 80;
        height: auto;
        border: solid $primary;
        background: $surface;
        padding: 1 2;
    }

    .section-title {
        text-style: bold;
        color: $accent;
        margin: 1 0;
    }

    .field-row {
        height: 3;
        margin: 0 0 0 2;
    }

    .field-label {
        width: 18;
        content-align: left middle;
    }

    .field-input {
        width: 50;
    }

    .hint {
        color: $text-muted;
        margin: 0 0 0 2;
    }

    #system_prompt {
        height: 8;
        margin: 0 0 0 2;
    }

    #button-container {
        height: 3;
        margin: 1 0 0 0;
        align: center middle;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+s", "save", "Save"),
        Binding("escape", "cancel", "Cancel"),
        Binding("ctrl+c", "quit", "Quit"),
    ]

    def __init__(
        self,
        config: Optional[Config] = None,
        on_save: Optional[Callable[[Config], bool]] = None,
        fetch_models: Callable[[Optional[str]], List[str]] = fetch_available_models,
    ):
        super().__init__()
        self.config = config if config is not None else (load_config() or Config())
        self._on_save = on_save or save_config
        # Recomputed every time the form opens.
        fetched = fetch_models(self.config.openai_api_key) if is_valid(self.config) else []
        self._model_options = model_choices(self.config.openai_model, fetched)

    def compose(self) -> ComposeResult:
        yield Header()

        with Container(id="settings-container"):
            yield Static("mailassist Preferences", classes="section-title")

            yield Static("OpenAI", classes="section-title")
            with Horizontal(classes="field-row"):
                yield Label("API Key:", classes="field-label")
                yield Input(
                    value=self.config.openai_api_key or "",
                    placeholder="sk-...",
                    password=True,
                    id="api_key",
                    classes="field-input",
                )
            yield Static("Get an API key at https://platform.openai.com/api-keys", classes="hint")

            with Horizontal(classes="field-row"):
                yield Label("Model:", classes="field-label")
                yield Select(
                    options=self._model_options,
                    value=self.config.openai_model,
                    id="model",
                    allow_blank=False,
                )
            yield Static("Recommended: gpt-4o-mini (best balance of speed, quality, and cost)", classes="hint")

            yield Label("System Prompt:", classes="field-label")
            yield TextArea(self.config.system_prompt, id="system_prompt")
            yield Static(SYSTEM_PROMPT_HINT, classes="hint")

            yield Static("You", classes="section-title")
            with Horizontal(classes="field-row"):
                yield Label("Hotkey:", classes="field-label")
                yield Input(value=self.config.hotkey, placeholder=DEFAULT_HOTKEY, id="hotkey", classes="field-input")
            with Horizontal(classes="field-row"):
                yield Label("Name:", classes="field-label")
                yield Input(value=self.config.user_name or "", id="user_name", classes="field-input")
            with Horizontal(classes="field-row"):
                yield Label("Email:", classes="field-label")
                yield Input(value=self.config.user_email or "", id="user_email", classes="field-input")

            with Horizontal(id="button-container"):
                yield Button("Save", variant="primary", id="save-button")
                yield Button("Cancel", variant="default", id="cancel-button")

        yield Footer()

    def action_save(self) -> None:
        self.save_settings()

    def action_cancel(self) -> None:
        self.exit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-button":
            self.save_settings()
        elif event.button.id == "cancel-button":
            self.exit()

    def save_settings(self) -> None:
        model_value = self.query_one("#model", Select).value
        updated = apply_form_values(
            self.config,
            api_key=self.query_one("#api_key", Input).value,
            model=model_value if isinstance(model_value, str) else None,
            system_prompt=self.query_one("#system_prompt", TextArea).text,
            hotkey=self.query_one("#hotkey", Input).value,
            user_name=self.query_one("#user_name", Input).value,
            user_email=self.query_one("#user_email", Input).value,
        )
        if not self._on_save(updated):
            self.notify("Failed to save settings", severity="error")
            return
        self.config = updated
        self.notify(self.saved_message(), severity="information")
        self.exit(updated)

    def saved_message(self) -> str:
        # A custom saver may write somewhere other than the default file.
        if self._on_save is save_config:
            return f"Settings saved to {config_mod.CONFIG_PATH}"
        return "Settings saved"


def show_settings_ui(on_save: Optional[Callable[[Config], bool]] = None) -> Optional[Config]:
    app = SettingsApp(on_save=on_save)
    return app.run()
