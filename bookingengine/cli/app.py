"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.config_source import StaticConfigurationSource
from ..adapters.http_config_source import HttpConfigurationSource
from ..adapters.memory_store import JsonBookingStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import (
    BookingEngineError,
    BookingValidationError,
    ConcurrentConflictError,
    NotFoundError,
    SlotConflictError,
)
from ..domain.models import Booking
from ..domain.timegrid import TimeOfDay
from ..services.booking_request import BookingRequest, parse_date
from ..services.booking_service import BookingService, BusinessProfile, CallerContext

app = typer.Typer(
    name="bookingengine",
    help="Check appointment availability and manage bookings",
    add_completion=False
)

console = Console()

EXIT_VALIDATION = 1
EXIT_SLOT_CONFLICT = 2
EXIT_CONCURRENT_CONFLICT = 3
EXIT_NOT_FOUND = 4

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")]
StaffOption = Annotated[Optional[str], typer.Option("--staff", "-s", help="Staff member id")]
OwnerOption = Annotated[
    bool,
    typer.Option("--owner", help="Act as business owner: overlapping bookings are allowed."),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_service(config_file: Optional[Path], verbose: bool) -> Tuple[AppConfig, BookingService]:
    """Load configuration and wire the service to its collaborators."""
    config_path = config_file or get_default_config_path()
    try:
        config = AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _configure_logging("DEBUG" if verbose else config.log_level)

    if config.config_api_url:
        config_source = HttpConfigurationSource(config.config_api_url)
    else:
        config_source = StaticConfigurationSource(config)

    try:
        store = JsonBookingStore(config.bookings_path(config_path))
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    return config, BookingService(config_source=config_source, store=store)


def _resolve_staff(config: AppConfig, business: str, staff: Optional[str]) -> Optional[str]:
    """Accept a staff member's name as well as their id."""
    business_config = config.find_business(business)
    if staff is None or business_config is None:
        return staff
    member = business_config.find_staff(staff)
    return member.id if member else staff


def _fail(exc: Exception) -> NoReturn:
    """Print an engine error and exit with a code callers can branch on."""
    if isinstance(exc, SlotConflictError):
        console.print(f"[bold red]Slot not available:[/bold red] {exc}")
        console.print("Run [bold]slots[/bold] to see other times.")
        raise typer.Exit(EXIT_SLOT_CONFLICT)
    if isinstance(exc, ConcurrentConflictError):
        console.print(f"[bold red]Booking collided:[/bold red] {exc}")
        raise typer.Exit(EXIT_CONCURRENT_CONFLICT)
    if isinstance(exc, NotFoundError):
        console.print(f"[bold red]Not found:[/bold red] {exc}")
        raise typer.Exit(EXIT_NOT_FOUND)
    if isinstance(exc, BookingValidationError):
        console.print(f"[bold red]Invalid input:[/bold red] {exc}")
        raise typer.Exit(EXIT_VALIDATION)
    console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(1)


def _print_booking(booking: Booking, profile: BusinessProfile, title: str) -> None:
    start = TimeOfDay.of(booking.start_time.hour, booking.start_time.minute)
    end = TimeOfDay.of(booking.end_time.hour, booking.end_time.minute)
    console.print(f"[bold green]✓ {title}[/bold green]")
    console.print(f"   ID: {booking.id}")
    console.print(
        f"   When: {booking.start_time.format('dddd, DD.MM.YYYY')} "
        f"{start.format(profile.time_format)} - {end.format(profile.time_format)}"
    )
    console.print(f"   Service: {booking.service.name or booking.service.id}")
    console.print(f"   Staff: {booking.staff_id or '-'}")
    console.print(f"   Customer: {booking.customer_id}")


@app.command()
def slots(
    business: Annotated[str, typer.Argument(help="Business id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    service: Annotated[str, typer.Argument(help="Service id")],
    staff: StaffOption = None,
    days: Annotated[int, typer.Option("--days", "-d", help="Number of days to search")] = 1,
    owner: OwnerOption = False,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List bookable start times for a service.

    Examples:

        bookingengine slots salon 2024-11-25 haircut
        bookingengine slots salon 2024-11-25 haircut --staff anna --days 7
    """
    config, booking_service = _build_service(config_file, verbose)
    staff = _resolve_staff(config, business, staff)
    caller = CallerContext.owner() if owner else CallerContext.customer()

    try:
        profile = asyncio.run(booking_service.get_business(business))
        if days <= 1:
            result = {
                parse_date(date): asyncio.run(
                    booking_service.get_available_slots(business, date, service, staff, caller)
                )
            }
        else:
            start = parse_date(date)
            result = asyncio.run(
                booking_service.get_availability_by_day(
                    business, start, start.add(days=days - 1), service, staff, caller
                )
            )
    except BookingEngineError as e:
        _fail(e)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(EXIT_VALIDATION)

    console.print()
    if not any(result.values()):
        console.print(
            "[yellow]⚠ No available slots found.[/yellow]\n"
            "Try another day or another staff member."
        )
        console.print()
        return

    for day, day_slots in result.items():
        if not day_slots:
            continue
        console.print(f"[bold cyan]{day.format('dddd, DD.MM.YYYY')}[/bold cyan] ({len(day_slots)} slots)")
        console.print("  " + "  ".join(slot.format(profile.time_format) for slot in day_slots))
    console.print()


@app.command()
def check(
    business: Annotated[str, typer.Argument(help="Business id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    service: Annotated[str, typer.Argument(help="Service id")],
    staff: StaffOption = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Check whether a single slot is free.
    """
    config, booking_service = _build_service(config_file, verbose)
    staff = _resolve_staff(config, business, staff)

    try:
        result = asyncio.run(
            booking_service.check_availability(business, service, date, time, staff)
        )
    except BookingEngineError as e:
        _fail(e)

    if result.available:
        console.print(f"[bold green]✓ Available:[/bold green] {result.start.format('DD.MM.YYYY HH:mm')}")
    else:
        console.print(f"[bold red]✗ Not available:[/bold red] {result.start.format('DD.MM.YYYY HH:mm')}")

    for booking in result.overlapping:
        console.print(f"   overlaps {booking.id} ({booking.interval})")


@app.command()
def book(
    business: Annotated[str, typer.Argument(help="Business id")],
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    service: Annotated[str, typer.Argument(help="Service id")],
    customer: Annotated[Optional[str], typer.Option("--customer", help="Customer id")] = None,
    staff: StaffOption = None,
    note: Annotated[Optional[str], typer.Option("--note", help="Note for the appointment")] = None,
    owner: OwnerOption = False,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Create a booking.
    """
    config, booking_service = _build_service(config_file, verbose)
    staff = _resolve_staff(config, business, staff)
    caller = CallerContext.owner() if owner else CallerContext.customer(customer)

    try:
        request = BookingRequest.from_payload(
            {
                "service_id": service,
                "customer_id": customer,
                "staff_id": staff,
                "date": date,
                "time": time,
                "note": note,
            }
        )
        booking = asyncio.run(booking_service.create_booking(business, request, caller))
        profile = asyncio.run(booking_service.get_business(business))
    except BookingEngineError as e:
        _fail(e)

    console.print()
    _print_booking(booking, profile, "Booking created")
    console.print()


@app.command()
def reschedule(
    business: Annotated[str, typer.Argument(help="Business id")],
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    date: Annotated[str, typer.Argument(help="New date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="New start time (HH:MM)")],
    service: Annotated[str, typer.Argument(help="Service id")],
    customer: Annotated[Optional[str], typer.Option("--customer", help="Customer id")] = None,
    staff: StaffOption = None,
    note: Annotated[Optional[str], typer.Option("--note", help="Note for the appointment")] = None,
    owner: OwnerOption = False,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Replace an existing booking. All fields are resubmitted, as on the edit form.
    """
    config, booking_service = _build_service(config_file, verbose)
    staff = _resolve_staff(config, business, staff)
    caller = CallerContext.owner() if owner else CallerContext.customer(customer)

    try:
        request = BookingRequest.from_payload(
            {
                "service_id": service,
                "customer_id": customer,
                "staff_id": staff,
                "date": date,
                "time": time,
                "note": note,
            }
        )
        booking = asyncio.run(
            booking_service.update_booking(business, booking_id, request, caller)
        )
        profile = asyncio.run(booking_service.get_business(business))
    except BookingEngineError as e:
        _fail(e)

    console.print()
    _print_booking(booking, profile, "Booking updated")
    console.print()


@app.command()
def cancel(
    business: Annotated[str, typer.Argument(help="Business id")],
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Delete a booking.
    """
    _, booking_service = _build_service(config_file, verbose)

    try:
        booking = asyncio.run(booking_service.delete_booking(business, booking_id))
    except BookingEngineError as e:
        _fail(e)

    console.print(f"\n[green]✓ Booking {booking.id} deleted.[/green]\n")


@app.command()
def hours(
    business: Annotated[str, typer.Argument(help="Business id")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Show the weekly opening hours and booking policy.
    """
    _, booking_service = _build_service(config_file, verbose)

    try:
        profile = asyncio.run(booking_service.get_business(business))
    except BookingEngineError as e:
        _fail(e)

    schedule = profile.schedule
    table = Table(
        title=f"Opening hours - {profile.name or profile.id}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Hours")

    for window in schedule.week().values():
        if window.is_open:
            table.add_row(
                window.weekday_name,
                f"{window.open_time.format(profile.time_format)} - "
                f"{window.close_time.format(profile.time_format)}",
            )
        else:
            table.add_row(window.weekday_name, "[dim]Closed[/dim]")

    console.print()
    console.print(table)
    console.print(f"Slot size: {schedule.slot_size.value} {schedule.slot_size.unit}")
    console.print(f"Double booking: {schedule.double_booking_policy.value}")
    console.print(f"Timezone: {schedule.timezone}")
    console.print()


@app.command()
def services(
    business: Annotated[str, typer.Argument(help="Business id")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List the services of a business.
    """
    _, booking_service = _build_service(config_file, verbose)

    try:
        profile = asyncio.run(booking_service.get_business(business))
    except BookingEngineError as e:
        _fail(e)

    if not profile.services:
        console.print("[yellow]No services configured for this business.[/yellow]")
        return

    table = Table(title="Services", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold yellow")
    table.add_column("Name")
    table.add_column("Duration", justify="right")
    table.add_column("Price", justify="right")

    for item in profile.services.values():
        name = f"{item.name} [dim](hidden)[/dim]" if item.hidden else item.name
        table.add_row(
            item.id,
            name,
            f"{item.duration_minutes} min",
            f"{item.price_cents / 100:.2f}",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
