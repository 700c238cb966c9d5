"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from docconv_cli.core.session import ConversionSession
from docconv_cli.models.config import ConverterConfig
from docconv_cli.models.session import SessionStatus
from docconv_cli.utils.formatting import format_duration, format_size

BANNER_STYLES = {
    SessionStatus.DONE: "green",
    SessionStatus.ERROR: "red",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `docconv init --force` to write a fresh one.",
        ],
        "FileSelectionError": [
            "• Check that the path exists and is readable.",
            "• Quote paths that contain spaces.",
        ],
        "TransportError": [
            "• Check that the conversion service is running.",
            "• Verify the endpoint URL with `docconv --show-config`.",
            "• Run `docconv diagnose` to test connectivity.",
        ],
        "UploadInProgressError": [
            "• Wait for the current conversion to finish.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def message_banner(session: ConversionSession) -> Panel | None:
    """
    The session message: red for Error, green for Done, yellow for guidance
    given before anything was sent.
    """
    if not session.message:
        return None
    style = BANNER_STYLES.get(session.status, "yellow")
    return Panel(
        Text(session.message, style=style),
        border_style=style,
        expand=False,
    )


def print_session_state(console: Console, session: ConversionSession) -> None:
    """Displays the selected file, status and progress, like the status line of a form."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    selected = session.selected_file
    if selected:
        table.add_row("File:", f"{selected.name} [dim]({format_size(selected.size)})[/dim]")
    else:
        table.add_row("File:", "[dim]none selected[/dim]")
    table.add_row("Status:", session.status.value)
    table.add_row("Progress:", f"{session.progress_percent}%")
    if session.saved_path:
        table.add_row("Saved to:", f"[dim]{session.saved_path}[/dim]")

    console.print(table)
    if banner := message_banner(session):
        console.print(banner)


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the settings stored in the configuration file."""
    console = Console()
    if not config_data:
        console.print(
            f"[yellow]No configuration file at '{config_path}'. "
            "Built-in defaults are in use.[/yellow]"
        )
        return

    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: ConverterConfig):
    """Displays a summary of the effective settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Endpoint:", f"[green]{config.endpoint_url}[/green]")
    table.add_row("Timeout:", format_duration(config.timeout_seconds))
    table.add_row("Output Directory:", f"[dim]{config.output_dir}[/dim]")
    table.add_row("Overwrite:", "✓ Enabled" if config.overwrite else "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_summary_panel(console: Console, session: ConversionSession, duration_s: float):
    """Displays the outcome of a conversion run."""
    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=14)
    stats_table.add_column(style="white", justify="left")

    if session.selected_file:
        stats_table.add_row("Source:", session.selected_file.name)
        stats_table.add_row("Uploaded:", format_size(session.selected_file.size))
    if session.saved_path:
        stats_table.add_row("Saved to:", f"[green]{session.saved_path}[/green]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if session.status is SessionStatus.DONE:
        title = "📄 [bold]Conversion Complete![/bold]"
        border_color = "green"
    else:
        title = "[bold]Conversion Failed[/bold]"
        border_color = "red"
        stats_table.add_row("Reason:", f"[red]{session.message}[/red]")

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
