"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional, Tuple

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.memory_repository import InMemoryScheduleRepository
from ..api.available_slots import AvailableSlotsEndpoint
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import ScheduleError
from ..services.availability import AvailabilityService
from ..services.schedule_management import ScheduleManagementService

app = typer.Typer(
    name="salonschedule",
    help="Compute bookable appointment slots from salon and staff schedules",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)

WEEKDAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
DataOption = Annotated[
    Optional[Path],
    typer.Option("--data", help="Schedule data file (YAML/JSON). Overrides the config."),
]
TenantOption = Annotated[
    Optional[str],
    typer.Option("--tenant", "-t", help="Tenant ID. Defaults to tenant_id from the config."),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_context(
    config_file: Optional[Path],
    data_file: Optional[Path],
) -> Tuple[AppConfig, InMemoryScheduleRepository]:
    """
    Load configuration and the schedule repository.

    An explicit ``--config`` must exist; the default config file is optional.
    """
    config_path = config_file or get_default_config_path()
    if config_file is not None or config_path.exists():
        config = AppConfig.load_from_yaml(config_path)
    else:
        config = AppConfig()
        config_path = None

    _configure_logging(config.log_level)

    data_path = data_file or config.resolve_data_file(config_path)
    repository = InMemoryScheduleRepository.from_file(data_path)
    return config, repository


def _resolve_tenant(config: AppConfig, tenant: Optional[str]) -> str:
    tenant_id = tenant or config.tenant_id
    if not tenant_id:
        console.print("[bold red]Error:[/bold red] No tenant given. Use --tenant or set tenant_id in the config.")
        raise typer.Exit(1)
    return tenant_id


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Local date (YYYY-MM-DD)")],
    tenant: TenantOption = None,
    staff: Annotated[Optional[str], typer.Option("--staff", "-s", help="Staff member ID")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes (15-480)")] = None,
    buffer: Annotated[Optional[int], typer.Option("--buffer", "-b", help="Buffer around bookings in minutes (0-60)")] = None,
    only_available: Annotated[bool, typer.Option("--only-available", help="Hide unavailable slots.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw response as JSON.")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Show the slots of one day with their availability.

    Examples:

        salonschedule slots 2025-11-20 --tenant salon-1

        salonschedule slots 2025-11-20 -t salon-1 --staff anna -d 60 -b 15

        salonschedule slots 2025-11-20 -t salon-1 --only-available --json
    """
    try:
        config, repository = _load_context(config_file, data_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    query = {
        "date": date,
        "tenantId": _resolve_tenant(config, tenant),
        "serviceDurationMinutes": duration if duration is not None else config.defaults.service_duration_minutes,
        "bufferMinutes": buffer if buffer is not None else config.defaults.buffer_minutes,
    }
    if staff:
        query["staffId"] = staff

    endpoint = AvailableSlotsEndpoint(AvailabilityService(repository))
    response = asyncio.run(endpoint.handle(query))
    body = response.body

    if as_json:
        if only_available and response.status_code == 200:
            body = {**body, "slots": [slot for slot in body["slots"] if slot["available"]]}
        typer.echo(json.dumps(body, indent=2))
        if response.status_code != 200:
            raise typer.Exit(1)
        return

    if response.status_code != 200:
        console.print(f"[bold red]Error ({response.status_code}):[/bold red] {body['error']}")
        for detail in body.get("details", []):
            console.print(f"  • {detail['field']}: {detail['message']}")
        raise typer.Exit(1)

    shown = [slot for slot in body["slots"] if slot["available"] or not only_available]
    free_count = sum(1 for slot in body["slots"] if slot["available"])

    table = Table(
        title=f"Slots {body['date']} ({body['timezone']})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Local", style="bold")
    table.add_column("UTC", style="dim")
    table.add_column("Status")

    for slot in shown:
        status = "[green]available[/green]" if slot["available"] else f"[red]{slot['unavailableReason']}[/red]"
        table.add_row(
            f"{slot['startLocal']} - {slot['endLocal']}",
            f"{slot['startUtc']} - {slot['endUtc']}",
            status,
        )

    console.print()
    console.print(table)
    console.print(f"\n[bold green]✓ {free_count} of {len(body['slots'])} slot(s) available[/bold green]\n")


@app.command()
def check(
    start: Annotated[str, typer.Argument(help="Start instant (ISO 8601, e.g. 2025-11-20T10:15:00Z)")],
    tenant: TenantOption = None,
    staff: Annotated[Optional[str], typer.Option("--staff", "-s", help="Staff member ID")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    buffer: Annotated[Optional[int], typer.Option("--buffer", "-b", help="Buffer in minutes")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Check whether a concrete start time is still free (advisory).
    """
    try:
        config, repository = _load_context(config_file, data_file)
        start_at = pendulum.parse(start)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    service = AvailabilityService(repository)
    try:
        free = asyncio.run(
            service.is_slot_free(
                tenant_id=_resolve_tenant(config, tenant),
                start_utc=start_at,
                service_duration_minutes=duration if duration is not None else config.defaults.service_duration_minutes,
                buffer_minutes=buffer if buffer is not None else config.defaults.buffer_minutes,
                staff_id=staff,
            )
        )
    except (ScheduleError, ValueError) as e:
        _fail(e)

    if free:
        console.print(f"[green]✓ {start} is free[/green]")
    else:
        console.print(f"[yellow]✗ {start} is not available[/yellow]")
        raise typer.Exit(2)


@app.command()
def working_hours(
    tenant: TenantOption = None,
    staff: Annotated[Optional[str], typer.Option("--staff", "-s", help="Show a staff member's hours instead")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    List the weekly working hours of the salon or of one staff member.
    """
    try:
        config, repository = _load_context(config_file, data_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    tenant_id = _resolve_tenant(config, tenant)
    service = ScheduleManagementService(repository)
    try:
        if staff:
            rules = asyncio.run(service.get_staff_schedule(tenant_id, staff)).working_hours
        else:
            rules = asyncio.run(service.get_salon_working_hours(tenant_id))
    except ScheduleError as e:
        _fail(e)

    if not rules:
        console.print("[yellow]No working hours configured.[/yellow]")
        return

    table = Table(
        title=f"Working hours ({'staff ' + staff if staff else 'salon'})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Hours")

    for rule in rules:
        hours = f"{rule.start_time} - {rule.end_time}" if rule.is_working_day else "[dim]closed[/dim]"
        table.add_row(WEEKDAY_NAMES[rule.day_of_week], hours)

    console.print()
    console.print(table)
    console.print()


@app.command()
def staff_schedule(
    staff_id: Annotated[str, typer.Argument(help="Staff member ID")],
    tenant: TenantOption = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Show a staff member's weekly hours and schedule exceptions.
    """
    try:
        config, repository = _load_context(config_file, data_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(e)

    service = ScheduleManagementService(repository)
    try:
        schedule = asyncio.run(service.get_staff_schedule(_resolve_tenant(config, tenant), staff_id))
    except ScheduleError as e:
        _fail(e)

    hours = "\n".join(
        f"{WEEKDAY_NAMES[rule.day_of_week]:<10} "
        f"{rule.start_time + ' - ' + rule.end_time if rule.is_working_day else 'closed'}"
        for rule in schedule.working_hours
    ) or "inherits salon hours"
    exceptions = "\n".join(
        f"{exception.start_date} → {exception.end_date}  {exception.type.value}"
        + (f" {exception.custom_start_time}-{exception.custom_end_time}" if exception.custom_start_time else "")
        + (f"  ({exception.reason})" if exception.reason else "")
        for exception in schedule.exceptions
    ) or "none"

    console.print(Panel.fit(
        f"[bold]Working hours:[/bold]\n{hours}\n\n[bold]Exceptions:[/bold]\n{exceptions}",
        title=f"{schedule.staff.name or schedule.staff.id}"
    ))


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonschedule[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
