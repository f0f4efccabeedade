"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.busy_time_provider import StaticBusyTimeProvider
from ..adapters.memory_store import InMemoryStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import CallGuardError
from ..domain.models import BusyInterval, Slot, SuspensionRecord
from ..domain.window import normalize_window
from ..services.availability import AvailabilityService, fetch_external_busy
from ..services.standing import StandingService, StandingStatus

app = typer.Typer(
    name="callguard",
    help="List bookable call slots and inspect account standing",
    add_completion=False
)

console = Console()

CALENDAR_TIMEOUT_SECONDS = 10.0

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./callguard.yaml"),
]
DataOption = Annotated[
    Optional[Path],
    typer.Option("--data", help="JSON/YAML file with subjects, bookings and calendar entries"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load the config file; an absent default config means built-in defaults."""
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()


def _resolve_data_file(config: AppConfig, data_file: Optional[Path]) -> Path:
    path = data_file or config.data_file
    if path is None:
        console.print("[red]Error: no data file given. Use --data or set data_file in the config.[/red]")
        raise typer.Exit(1)
    return path


def _format_suspension(record: Optional[SuspensionRecord], tz: str) -> str:
    if record is None:
        return "-"
    start = record.start_date.in_timezone(tz).format("YYYY-MM-DD HH:mm")
    end = record.end_date.in_timezone(tz).format("YYYY-MM-DD HH:mm") if record.end_date else "open-ended"
    state = "active" if record.is_active else "inactive"
    return f"{record.suspension_type} ({state}) {start} -> {end}"


def _conflict_label(conflicts: List[BusyInterval]) -> str:
    return ", ".join(
        f"{c.source.value}:{c.booking_id or c.summary or '-'}" for c in conflicts
    )


def _render_slots(slots: List[Slot], tz: str, show_all: bool) -> None:
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Slot", style="bold")
    table.add_column("Status")
    table.add_column("Conflicts", style="dim")

    for slot in slots:
        if not show_all and not slot.is_available:
            continue
        if slot.is_available:
            label = "[green]available[/green]"
        elif slot.blocked_by_suspension and not slot.conflicts:
            label = "[yellow]suspended[/yellow]"
        else:
            label = "[red]busy[/red]"
        table.add_row(slot.format_display(tz), label, _conflict_label(slot.conflicts))

    console.print(table)


@app.command()
def slots(
    subject: Annotated[str, typer.Argument(help="Subject (decision maker) id")],
    date: Annotated[Optional[str], typer.Option("--date", help="Single day (YYYY-MM-DD or ISO instant)")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="Window start (date or ISO instant)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Window end (date or ISO instant)")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Slot duration in minutes")] = None,
    step: Annotated[Optional[int], typer.Option("--step", help="Minutes between slot starts")] = None,
    requester: Annotated[Optional[str], typer.Option("--requester", "-r", help="Also avoid this requester's calls")] = None,
    exact: Annotated[bool, typer.Option("--exact", help="Use --start/--end as exact instants instead of whole UTC days")] = False,
    show_all: Annotated[bool, typer.Option("--all", help="Show unavailable slots too")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    List slots for a subject.

    Examples:

        callguard slots dm-1 --date 2025-09-02 --data bookings.yaml

        callguard slots dm-1 --start 2025-09-01 --end 2025-09-05 -d 30 --step 15 --all

        callguard slots dm-1 --date 2025-09-02 --requester rep-7
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        path = _resolve_data_file(config, data_file)
        tz = config.display_timezone

        if date and (start or end):
            console.print("[red]Error: --date cannot be combined with --start/--end.[/red]")
            raise typer.Exit(1)

        window_start = date or start
        if window_start is None:
            console.print("[red]Error: give --date or --start.[/red]")
            raise typer.Exit(1)
        window_end = None if date else end

        store = InMemoryStore.from_file(path)
        provider = StaticBusyTimeProvider.from_file(path)

        policy = config.suspension.to_policy()
        service = AvailabilityService(store, store, policy=policy)

        window = normalize_window(window_start, window_end, whole_days=not exact)
        external_busy = asyncio.run(
            asyncio.wait_for(
                fetch_external_busy(provider, subject, window),
                timeout=CALENDAR_TIMEOUT_SECONDS,
            )
        )

        result = service.list_available_slots(
            subject,
            window.start,
            window.end,
            duration if duration is not None else config.defaults.duration_minutes,
            step_minutes=step if step is not None else config.defaults.step_minutes,
            whole_days=False,
            requester_id=requester,
            external_busy=external_busy,
        )

        available = [s for s in result if s.is_available]

        console.print()
        console.print(
            f"[bold]{subject}[/bold]: "
            f"{window.start.in_timezone(tz).format('YYYY-MM-DD HH:mm')} - "
            f"{window.end.in_timezone(tz).format('YYYY-MM-DD HH:mm')} ({tz})"
        )

        if result and result[0].blocked_by_suspension:
            console.print("[yellow]⚠ Subject is suspended - no slot can be booked.[/yellow]")

        if not result:
            console.print("[yellow]⚠ The window is too short for the requested duration.[/yellow]")
        elif not available and not show_all:
            console.print("[yellow]⚠ No available slots found.[/yellow]")
        else:
            console.print(f"[bold green]✓ {len(available)} of {len(result)} slot(s) available[/bold green]\n")
            _render_slots(result, tz, show_all)

        console.print()

    except (FileNotFoundError, ValueError, CallGuardError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    except asyncio.TimeoutError:
        console.print("[bold red]Error:[/bold red] Calendar lookup timed out")
        raise typer.Exit(1)


def _status_table(statuses: List[StandingStatus], tz: str, title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Subject", style="bold yellow")
    table.add_column("Flags")
    table.add_column("Standing")
    table.add_column("Suspension", style="dim")
    table.add_column("Reason", style="dim")

    for entry in statuses:
        table.add_row(
            entry.subject_id,
            str(entry.flags_received),
            entry.standing.value,
            _format_suspension(entry.suspension, tz),
            entry.suspension.reason if entry.suspension else "",
        )

    return table


@app.command()
def status(
    subject: Annotated[str, typer.Argument(help="Subject (decision maker) id")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    Show flags, standing and suspension of a subject.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        store = InMemoryStore.from_file(_resolve_data_file(config, data_file))
        service = StandingService(store, policy=config.suspension.to_policy())

        result = service.get_status(subject)

        console.print()
        console.print(_status_table([result], config.display_timezone, "Account standing"))
        console.print()

    except (FileNotFoundError, ValueError, CallGuardError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def suspended(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    verbose: VerboseOption = False,
):
    """
    List subjects that are suspended right now.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
        store = InMemoryStore.from_file(_resolve_data_file(config, data_file))
        service = StandingService(store, policy=config.suspension.to_policy())

        statuses = service.list_suspended()

        if not statuses:
            console.print("[green]No suspended subjects.[/green]")
            return

        console.print()
        console.print(_status_table(statuses, config.display_timezone, "Suspended subjects"))
        console.print()

    except (FileNotFoundError, ValueError, CallGuardError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]callguard[/bold cyan] version [bold]{__version__}[/bold]\n")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
