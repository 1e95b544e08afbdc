"""Command line interface for the airline scheduling service."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, List

from tabulate import tabulate

from .booking import BookingService, ReservationRecord
from .config import load_settings
from .database import init_db, session_scope
from .dataset import generate_sample_data
from .errors import AirlineSchedulingError
from .schemas import ReservationCreate, parse, parse_id
from .services import summarize_capacity

logger = logging.getLogger(__name__)


def _render_reservations(records: Iterable[ReservationRecord]) -> str:
    rows: List[list] = [
        [
            record.id,
            record.passenger_name,
            record.flight.flight_id,
            record.flight.itinerary.code,
            f"{record.flight.origin.name}->{record.flight.destination.name}",
            record.flight.departure_time.isoformat(sep=" "),
            record.created_at.isoformat(sep=" ", timespec="seconds"),
        ]
        for record in records
    ]
    headers = ["Reservation", "Passenger", "Flight", "Itinerary", "Route", "Departure", "Booked at"]
    return tabulate(rows, headers=headers, tablefmt="github")


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Manage flights and passenger reservations.")
    parser.add_argument(
        "--db-url",
        default=settings.db_url,
        help="SQLAlchemy database URL (default: $AIRLINE_DB_URL or %(default)s).",
    )
    parser.add_argument("--echo-sql", action="store_true", default=settings.echo_sql, help="Log emitted SQL.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s).")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database schema.")

    seed = commands.add_parser("seed", help="Populate the database with deterministic sample data.")
    seed.add_argument("--flights", type=int, default=25)
    seed.add_argument("--reservations", type=int, default=500)

    commands.add_parser("capacity", help="Show reserved seats against capacity for every flight.")

    book = commands.add_parser("book", help="Book a passenger onto a flight.")
    book.add_argument("passenger_name")
    book.add_argument("flight_id")

    cancel = commands.add_parser("cancel", help="Cancel a reservation by id.")
    cancel.add_argument("reservation_id")

    listing = commands.add_parser("reservations", help="List the reservations of a flight.")
    listing.add_argument("flight_id")

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()
    session_factory = init_db(args.db_url, echo=args.echo_sql, sqlite_timeout=settings.sqlite_timeout)
    booking = BookingService(session_factory)

    try:
        if args.command == "init-db":
            print(f"Database ready at {args.db_url}")
        elif args.command == "seed":
            summary = generate_sample_data(
                session_factory, flights=args.flights, reservations=args.reservations
            )
            print(tabulate(sorted(summary.items()), headers=["Entity", "Created"], tablefmt="github"))
        elif args.command == "capacity":
            with session_scope(session_factory) as session:
                rows = summarize_capacity(session)
            print(tabulate(rows, headers="keys", tablefmt="github"))
        elif args.command == "book":
            request = parse(
                ReservationCreate,
                {"PassengerName": args.passenger_name, "FlightID": args.flight_id},
                location="argv",
            )
            record = booking.book(request.PassengerName, request.FlightID)
            print(_render_reservations([record]))
        elif args.command == "cancel":
            reservation_id = parse_id(args.reservation_id, location="argv")
            booking.cancel(reservation_id)
            print(f"Reservation {reservation_id} cancelled.")
        elif args.command == "reservations":
            records = booking.list_reservations_for_flight(parse_id(args.flight_id, location="argv"))
            print(_render_reservations(records))
        elif args.command == "serve":  # pragma: no cover - blocking server
            import uvicorn

            from .web import create_app

            uvicorn.run(create_app(session_factory), host=args.host, port=args.port)
    except AirlineSchedulingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
