"""Command-line interface for remote-term.

Inspect a term's source and run one refresh cycle from a TOML config file.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from remote_term import __version__
from remote_term.config import TermOptions, load_term_options, settings
from remote_term.errors import ConfigError, RemoteTermError
from remote_term.fetchers import build_fetcher
from remote_term.logging_config import setup_logging
from remote_term.models import CycleEvent, CycleOutcome
from remote_term.term import RemoteTerm

console = Console()

app = typer.Typer(
    name="remote-term",
    help="Inspect and fetch remote terms",
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"remote-term version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    log_level: str = typer.Option(
        settings.REMOTE_TERM_LOG_LEVEL, "--log-level", "-l", help="Log level"
    ),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """remote-term: keep a remote blob cached in-process.

    ## Commands

    * [bold cyan]version[/bold cyan] - Show the current version at the source
    * [bold cyan]fetch[/bold cyan] - Run one refresh cycle and report the result
    """
    try:
        setup_logging(log_level, log_file)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


def _load(config: Path) -> TermOptions:
    try:
        return load_term_options(config)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]Invalid config:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command("version")
def show_version(
    config: Path = typer.Argument(..., help="Path to the term's TOML config"),
) -> None:
    """Show the version currently published at the term's source."""
    options = _load(config)

    async def _current_version():
        fetcher, fetcher_options = build_fetcher(options)
        state = fetcher.init(fetcher_options)
        version, _ = await fetcher.current_version(state)
        return version

    try:
        version = asyncio.run(_current_version())
    except RemoteTermError as e:
        console.print(f"[red]Failed to get current version:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"[bold]{options.name}[/bold] ({options.source}): {version}")


@app.command()
def fetch(
    config: Path = typer.Argument(..., help="Path to the term's TOML config"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the payload to this file"
    ),
) -> None:
    """Run one refresh cycle and report the outcome."""
    options = _load(config)
    events: List[CycleEvent] = []

    async def _fetch():
        term = RemoteTerm.from_options(
            options.model_copy(update={"lazy_init": False, "refresh_interval": None}),
            listeners=[events.append],
        )
        try:
            await term.start()
        finally:
            await term.stop()
        return term

    try:
        term = asyncio.run(_fetch())
    except ConfigError as e:
        console.print(f"[red]Invalid config:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    event = events[-1] if events else None
    if event is None or event.outcome == CycleOutcome.FAILED:
        reason = event.error if event else "no refresh cycle ran"
        console.print(f"[red]Failed to fetch {options.name}:[/red] {escape(str(reason))}")
        raise typer.Exit(1)

    value = term.get()
    payload = value.encode("utf-8") if isinstance(value, str) else value

    table = Table(title=f"Remote term: {options.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Source", options.source)
    table.add_row("Version", str(term.version))
    table.add_row("Outcome", event.outcome.value)
    table.add_row("Duration", f"{event.duration:.3f}s")
    if isinstance(payload, (bytes, bytearray)):
        table.add_row("Size", f"{len(payload)} bytes")
    console.print(table)

    if output is not None:
        if not isinstance(payload, (bytes, bytearray)):
            console.print("[red]Payload is not binary; nothing written[/red]")
            raise typer.Exit(1)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(payload)
        console.print(f"[green]Wrote payload to {output}[/green]")


if __name__ == "__main__":
    app()
