"""
Rich-based terminal output for the voxclean CLI.

Shows correction results, provider status and errors with consistent
panels and tables.
"""

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import AppConfig, get_llm_model_name, is_provider_configured


class TerminalUI:
    """Formats CLI output. Holds only the console it prints to."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def show_correction(self, raw_text: str, corrected_text: str, provider_name: str) -> None:
        """Show the raw and corrected text side by side."""
        table = Table(
            title="Transcript Cleanup",
            title_style="bold cyan",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold white",
        )
        table.add_column("Provider", style="magenta")
        table.add_column("Raw", style="dim")
        table.add_column("Corrected", style="white")
        table.add_row(provider_name, Text(raw_text), Text(corrected_text))
        self.console.print(table)

    def show_status(self, config: AppConfig) -> bool:
        """
        Print whether the selected provider is ready to use.

        Returns:
            True if the provider has every required field.
        """
        provider = getattr(config.llm, "provider", "")
        configured = is_provider_configured(provider, config.llm)

        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        table.add_row("Provider", provider)
        table.add_row("Model", get_llm_model_name(config.llm) or "[dim]not set[/dim]")
        table.add_row("Configured", "[green]yes[/green]" if configured else "[red]no[/red]")
        table.add_row("Enhancement enabled", "yes" if config.enable_llm_enhancement else "no")
        table.add_row("Connection tested", "yes" if config.llm_connection_tested else "no")
        table.add_row("Dictionary terms", str(len(config.dictionary)))
        table.add_row("Speech languages", ", ".join(config.speech_languages) or "[dim]auto[/dim]")
        self.console.print(Panel(table, title="LLM Provider", title_align="left", border_style="cyan"))
        return configured

    def show_validation_errors(self, errors: Sequence[str]) -> None:
        if not errors:
            self.console.print("✅ All scenario files are valid", style="green")
            return
        self.console.print(f"❌ {len(errors)} scenario problem(s):", style="bold red")
        for error in errors:
            self.console.print(f"  • {error}", markup=False)

    def show_lines(self, title: str, lines: List[str]) -> None:
        self.console.print(Panel("\n".join(lines), title=title, title_align="left", border_style="cyan"))

    def show_error(self, error: Exception) -> None:
        """Display an error with a hint for the common causes."""
        error_message = str(error)
        lowered = error_message.lower()

        if "not fully configured" in lowered:
            guidance = "\n\n💡 Fill in the provider fields in your config file, then run `voxclean check`."
        elif "401" in lowered or "403" in lowered:
            guidance = "\n\n💡 Check your API key or token."
        elif "timeout" in lowered or "timed out" in lowered:
            guidance = "\n\n💡 Try again - the service might be temporarily slow."
        else:
            guidance = ""

        self.console.print(Panel(
            Text(f"❌ {error_message}{guidance}", style="red"),
            title="Error",
            title_align="center",
            border_style="red",
            padding=(1, 2),
        ))

    def show_success(self, message: str) -> None:
        self.console.print(Panel(
            Text(f"✅ {message}"),
            title="Success",
            title_align="center",
            border_style="green",
            padding=(1, 2),
        ))
