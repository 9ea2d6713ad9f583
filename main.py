import argparse
import datetime as dt
import logging
import sys
from dataclasses import replace

from barberbook.booking import BookingDesk, DaySnapshot, shift_date
from barberbook.config import Settings, load_settings
from barberbook.domain import Appointment, BookingError, InvalidBookingError, InvalidServiceError, parse_date
from barberbook.store_file import JsonFileStore
from barberbook.store_http import HttpStore

logger = logging.getLogger(__name__)


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _build_desk(settings: Settings) -> BookingDesk:
    if settings.store_backend == "http":
        http_store = HttpStore.from_settings(settings)
        return BookingDesk(http_store.appointments, http_store.services)

    file_store = JsonFileStore(settings.store_file)
    return BookingDesk(file_store.appointments, file_store.services)


def _date_arg(raw: str) -> dt.date:
    try:
        return parse_date(raw)
    except InvalidBookingError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="BarberBook: daily appointment calendar")
    parser.add_argument("--date", type=_date_arg, default=None, help="Day to work on (YYYY-MM-DD), default today")

    sub = parser.add_subparsers(dest="command", required=True)

    day = sub.add_parser("day", help="List the day's appointments")
    day.add_argument("--offset", type=int, default=0, help="Shift the date by N days")

    slots = sub.add_parser("slots", help="Show start times that fit a service")
    slots.add_argument("service")
    slots.add_argument("--edit", metavar="ID", help="Appointment being rescheduled")

    book = sub.add_parser("book", help="Create an appointment")
    book.add_argument("client")
    book.add_argument("service")
    book.add_argument("--time", help="HH:MM, default is the first free time")

    reschedule = sub.add_parser("reschedule", help="Edit an appointment")
    reschedule.add_argument("id")
    reschedule.add_argument("--client")
    reschedule.add_argument("--service")
    reschedule.add_argument("--time")

    cancel = sub.add_parser("cancel", help="Delete an appointment")
    cancel.add_argument("id")

    services = sub.add_parser("services", help="Manage the service catalog")
    services_sub = services.add_subparsers(dest="services_command", required=True)
    services_sub.add_parser("list")
    add = services_sub.add_parser("add")
    add.add_argument("name")
    add.add_argument("duration", type=int, nargs="?", default=30, help="Minutes (30, 60, 90, 120...)")
    remove = services_sub.add_parser("remove")
    remove.add_argument("id")

    return parser


def _print_day(snapshot: DaySnapshot) -> None:
    print(f"{snapshot.date.isoformat()}: {len(snapshot.appointments)} appointment(s)")
    for app in snapshot.appointments:
        print(f"  {app.time}  {app.client_name}  ({app.service_name})  id={app.id}")


def _require_appointment(snapshot: DaySnapshot, appointment_id: str) -> Appointment:
    appointment = snapshot.find(appointment_id)
    if appointment is None:
        raise InvalidBookingError(f"No appointment {appointment_id} on {snapshot.date.isoformat()}.")
    return appointment


def _require_service(snapshot: DaySnapshot, name: str) -> None:
    if snapshot.service(name) is None:
        raise InvalidServiceError(f"Unknown service {name!r}.")


def _run(desk: BookingDesk, args: argparse.Namespace) -> None:
    date = args.date or dt.date.today()

    if args.command == "services":
        if args.services_command == "list":
            for s in desk.list_services():
                print(f"  {s.name} - {s.duration_minutes} min  id={s.id}")
        elif args.services_command == "add":
            service = desk.add_service(args.name, args.duration)
            print(f"Added {service.name} ({service.duration_minutes} min) id={service.id}")
        else:
            desk.delete_service(args.id)
            print(f"Removed service {args.id}")
        return

    if args.command == "day":
        date = shift_date(date, args.offset)

    snapshot = desk.load(date)
    if snapshot.load_error:
        print(f"Warning: could not load data for {date.isoformat()}: {snapshot.load_error}", file=sys.stderr)

    if args.command == "day":
        _print_day(snapshot)

    elif args.command == "slots":
        editing = _require_appointment(snapshot, args.edit) if args.edit else None
        candidates = desk.available_slots(snapshot, args.service, editing=editing)
        if not candidates:
            print("No time available for this service.")
        for slot in candidates:
            print(slot.token)

    elif args.command == "book":
        _require_service(snapshot, args.service)
        draft = desk.open_create(snapshot, client_name=args.client, service_name=args.service)
        if args.time:
            draft = desk.choose_time(snapshot, draft, args.time)
        _print_day(desk.submit(draft))

    elif args.command == "reschedule":
        appointment = _require_appointment(snapshot, args.id)
        draft = desk.open_edit(snapshot, appointment)
        if args.client:
            draft = replace(draft, client_name=args.client)
        if args.service:
            _require_service(snapshot, args.service)
            draft = desk.change_service(snapshot, draft, args.service)
        if args.time:
            draft = desk.choose_time(snapshot, draft, args.time)
        _print_day(desk.submit(draft))

    elif args.command == "cancel":
        _require_appointment(snapshot, args.id)
        _print_day(desk.cancel(snapshot, args.id))


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = load_settings()
    _setup_logging(settings.log_level)

    desk = _build_desk(settings)
    try:
        _run(desk, args)
        return 0
    except BookingError as e:
        logger.error("%s failed (%s: %s)", args.command, type(e).__name__, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
