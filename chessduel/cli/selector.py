"""
Interactive credential and model selection at game start.

Displays a numbered table of all configured models, prompts for one, then asks
for the provider's API key until it passes validation.
"""

from __future__ import annotations

from rich.console import Console
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from chessduel.config import Config, ModelEntry
from chessduel.credentials import CredentialError, Credentials, validate_credentials

console = Console(legacy_windows=False)


def select_model(config: Config) -> tuple[str, ModelEntry]:
    """Display all available models and prompt the user to pick the opponent."""
    entries = config.all_models()

    if not entries:
        raise ValueError("No models available. Check your config.yaml providers section.")

    _print_model_table(entries)

    choices = [str(i) for i in range(1, len(entries) + 1)]
    idx = IntPrompt.ask(
        "\n[bold]Which model do you want to play against?[/]",
        choices=choices,
        show_choices=False,
        default=1,
    )
    return entries[idx - 1]


def ask_credentials(config: Config, provider_name: str, model: ModelEntry) -> Credentials:
    """Prompt for an API key until it validates. A key in config.yaml is used as the default."""
    configured = config.providers[provider_name].api_key
    while True:
        key = Prompt.ask(
            f"[bold]{provider_name} API key[/]",
            password=True,
            default=configured or None,
            show_default=False,
        )
        try:
            return validate_credentials(provider_name, key or "", model.id, config)
        except CredentialError as exc:
            console.print(f"  [red]{exc}[/]")


def _print_model_table(entries: list[tuple[str, ModelEntry]]) -> None:
    table = Table(
        title="Available Models",
        show_header=True,
        header_style="bold",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("Name", min_width=20)
    table.add_column("Provider", style="dim", min_width=12)
    table.add_column("Model ID", style="dim")

    for i, (provider_name, model) in enumerate(entries, 1):
        table.add_row(str(i), model.name, provider_name, model.id)

    console.print()
    console.print(table)
