"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from docconv_cli import __version__
from docconv_cli.api.client import ConversionClient
from docconv_cli.core.session import ConversionSession
from docconv_cli.exceptions import DocconvError, FileSelectionError, TransportError
from docconv_cli.files.delivery import DownloadTrigger
from docconv_cli.models.config import ConverterConfig
from docconv_cli.models.session import SessionStatus
from docconv_cli.storage.config_manager import ConfigManager

from .formatters import (
    message_banner,
    print_config,
    print_session_state,
    print_summary_panel,
    print_validation_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("docconv_cli")

app = typer.Typer(
    name="docconv",
    help=(
        "Convert DOCX documents to PDF and PDF documents to DOCX through a"
        " conversion service. Use 'docconv <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

DROP_PROMPT = "Drop a .docx or .pdf file here (or type its path)"


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "docconv-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict) -> ConverterConfig:
    """Loads settings, exiting with a readable message when they are invalid."""
    try:
        return ConfigManager(CONFIG_FILE).load_config(
            {key: value for key, value in cli_options.items() if value is not None}
        )
    except DocconvError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e


def _new_session(client: ConversionClient, config: ConverterConfig) -> ConversionSession:
    return ConversionSession(client, DownloadTrigger(config.output_dir, config.overwrite))


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Document Converter CLI"""
    if version:
        console.print(f"[bold]docconv-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("docconv_cli").setLevel(log_level)

    if show_config:
        try:
            config_data = ConfigManager(CONFIG_FILE).get_config_as_dict()
        except DocconvError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    endpoint: str | None = typer.Option(
        None, "--endpoint", "-e", help="URL of the conversion endpoint."
    ),
    output_dir: str | None = typer.Option(
        None, "--output-dir", "-o", help="Directory where converted files are saved."
    ),
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait for a conversion (default 300)."
    ),
    overwrite: bool | None = typer.Option(
        None,
        "--overwrite/--no-overwrite",
        help="Replace existing files instead of numbering new ones.",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Write a configuration file with the conversion service settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        key: value
        for key, value in {
            "endpoint_url": endpoint,
            "output_dir": output_dir,
            "timeout_seconds": timeout,
            "overwrite": overwrite,
        }.items()
        if value is not None
    }
    try:
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except DocconvError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to convert! Try: [cyan]docconv convert <FILE>[/cyan]")


@app.command(name="convert")
def convert_command(
    file: str | None = typer.Argument(
        None, help="The .docx or .pdf file to convert. Prompts for a drop if omitted."
    ),
    output_dir: str | None = typer.Option(
        None, "--output", "-o", help="Directory where the converted file is saved."
    ),
    endpoint: str | None = typer.Option(
        None, "--endpoint", "-e", help="URL of the conversion endpoint."
    ),
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait before giving up."
    ),
    overwrite: bool | None = typer.Option(
        None,
        "--overwrite/--no-overwrite",
        help="Replace an existing file instead of saving a numbered copy.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Do not show the progress bar."
    ),
):
    """Convert one document: DOCX to PDF, or PDF to DOCX."""
    config = _load_config(
        {
            "output_dir": output_dir,
            "endpoint_url": endpoint,
            "timeout_seconds": timeout,
            "overwrite": overwrite,
        }
    )

    dropped = file is None
    if dropped:
        file = typer.prompt(DROP_PROMPT)

    async def _convert_async() -> tuple[ConversionSession, float]:
        async with ConversionClient(config) as client:
            session = _new_session(client, config)
            if dropped:
                session.select_dropped(file)
            else:
                session.select_path(file)

            start_time = time.monotonic()
            async with ProgressManager(console=console, quiet=quiet) as progress_manager:
                progress_manager.attach(session)
                await session.submit()
            return session, time.monotonic() - start_time

    try:
        session, duration = asyncio.run(_convert_async())
    except FileSelectionError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e

    if session.status is SessionStatus.IDLE:
        # Rejected before upload: only the guidance message applies
        console.print(message_banner(session))
        raise typer.Exit(code=1)

    print_summary_panel(console, session, duration)
    if session.status is not SessionStatus.DONE:
        raise typer.Exit(code=1)


INTERACTIVE_HELP = """\
[bold]Commands[/bold]
  [cyan]pick <path>[/cyan]   choose a file
  [cyan]drop[/cyan]          drag a file onto the terminal, then press Enter
  [cyan]remove[/cyan]        unselect the current file
  [cyan]convert[/cyan]       upload and convert the selected file
  [cyan]reset[/cyan]         start over
  [cyan]status[/cyan]        show file, status, progress and message
  [cyan]quit[/cyan]          leave"""


@app.command()
def interactive(
    output_dir: str | None = typer.Option(
        None, "--output", "-o", help="Directory where converted files are saved."
    ),
    endpoint: str | None = typer.Option(
        None, "--endpoint", "-e", help="URL of the conversion endpoint."
    ),
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait before giving up."
    ),
):
    """Pick, drop, convert and reset files in one session."""
    config = _load_config(
        {"output_dir": output_dir, "endpoint_url": endpoint, "timeout_seconds": timeout}
    )

    async def _interactive_async() -> None:
        async with ConversionClient(config) as client:
            session = _new_session(client, config)
            progress_manager = ProgressManager(console=console)
            progress_manager.attach(session)
            console.print(INTERACTIVE_HELP)

            while True:
                try:
                    line = await asyncio.to_thread(
                        console.input, "[bold cyan]docconv>[/bold cyan] "
                    )
                except (EOFError, KeyboardInterrupt):
                    console.print()
                    return

                command, _, argument = line.strip().partition(" ")
                command = command.lower()
                argument = argument.strip()

                try:
                    if command in ("quit", "exit", "q"):
                        return
                    if command == "pick":
                        if not argument:
                            argument = await asyncio.to_thread(
                                typer.prompt, "Path to file"
                            )
                        session.select_path(argument)
                        print_session_state(console, session)
                    elif command == "drop":
                        text = argument or await asyncio.to_thread(
                            typer.prompt, DROP_PROMPT
                        )
                        session.select_dropped(text)
                        print_session_state(console, session)
                    elif command == "remove":
                        session.clear_file()
                        print_session_state(console, session)
                    elif command == "convert":
                        if session.is_busy:
                            console.print(
                                "[yellow]A conversion is already running.[/yellow]"
                            )
                            continue
                        async with progress_manager:
                            await session.submit()
                        if banner := message_banner(session):
                            console.print(banner)
                    elif command == "reset":
                        session.reset()
                        console.print("[dim]Session reset.[/dim]")
                    elif command == "status":
                        print_session_state(console, session)
                    elif command in ("help", "?", ""):
                        console.print(INTERACTIVE_HELP)
                    else:
                        console.print(f"[yellow]Unknown command '{command}'.[/yellow]")
                except DocconvError as e:
                    console.print(f"[red]✗ {e}[/red]")

    asyncio.run(_interactive_async())


@app.command()
def validate(
    endpoint: str | None = typer.Option(
        None, "--endpoint", "-e", help="URL of the conversion endpoint."
    ),
):
    """Validate the current configuration."""
    config = _load_config({"endpoint_url": endpoint})
    print_validation_table(config)


@app.command()
def diagnose(
    endpoint: str | None = typer.Option(
        None, "--endpoint", "-e", help="URL of the conversion endpoint."
    ),
):
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False

    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]○[/] No config file found, using defaults. "
            "Run [cyan]docconv init[/cyan] to create one."
        )

    try:
        config = ConfigManager(CONFIG_FILE).load_config(
            {"endpoint_url": endpoint} if endpoint else None
        )
        console.print("[green]✓[/] Configuration is valid.")
    except DocconvError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[dim]Testing connectivity to {config.service_root} ...[/dim]")

    async def test_connection() -> bool:
        async with ConversionClient(config) as client:
            try:
                status = await client.check_health()
            except TransportError as e:
                console.print(f"[red]✗ Connection test failed: {e}[/red]")
                return False
        if 200 <= status < 300:
            console.print("[green]✓[/] Conversion service is reachable.")
            return True
        console.print(
            f"[red]✗ Conversion service answered with status {status}.[/red]"
        )
        return False

    if not asyncio.run(test_connection()):
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
