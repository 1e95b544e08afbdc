"""Deterministic demo schedule: real airports, a small fleet and seeded bookings."""
from __future__ import annotations

import math
import random
from datetime import datetime, timedelta
from typing import Dict, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .booking import BookingService
from .database import session_scope
from .errors import FlightFullError
from .models import Airplane, Flight, Itinerary
from .services import add_airplane, add_airport, add_flight, add_itinerary

# IATA code, latitude, longitude, standard-time offset.
AIRPORTS: Sequence[Tuple[str, float, float, str]] = (
    ("SFO", 37.6213, -122.379, "GMT-8"),
    ("SEA", 47.4502, -122.3088, "GMT-8"),
    ("DEN", 39.8561, -104.6737, "GMT-7"),
    ("ORD", 41.9742, -87.9073, "GMT-6"),
    ("BOS", 42.3656, -71.0096, "GMT-5"),
    ("GRU", -23.4356, -46.4731, "GMT-3"),
    ("KEF", 63.985, -22.6056, "GMT+0"),
    ("AMS", 52.3105, 4.7683, "GMT+1"),
    ("NBO", -1.3192, 36.9278, "GMT+3"),
    ("DEL", 28.5562, 77.1, "GMT+5"),
    ("SIN", 1.3644, 103.9915, "GMT+8"),
    ("SYD", -33.9399, 151.1753, "GMT+10"),
)
# Model and seat count; kept small so seeded bookings fill flights up.
FLEET: Sequence[Tuple[str, int]] = (("E175", 6), ("A220", 9), ("B738", 12), ("A321", 16))
GIVEN_NAMES = ("Amara", "Bjorn", "Chen", "Dalia", "Emeka", "Freya", "Goran", "Hana", "Ines", "Jonas")
FAMILY_NAMES = ("Okafor", "Lindqvist", "Tanaka", "Moreau", "Haddad", "Novak", "Reyes")

CRUISE_KMH = 820
EARTH_RADIUS_KM = 6371.0


def _block_minutes(origin: Tuple[str, float, float, str], destination: Tuple[str, float, float, str]) -> int:
    """Great-circle distance at cruise speed plus taxi and climb allowance."""

    lat1, lon1, lat2, lon2 = map(math.radians, (origin[1], origin[2], destination[1], destination[2]))
    hav = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    )
    distance = 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(hav))
    return 30 + round(distance / CRUISE_KMH * 60)


def _departure(day: int) -> datetime:
    start = datetime(2030, 1, 1) + timedelta(days=day)
    return start.replace(hour=random.randint(6, 21), minute=random.choice((0, 10, 25, 40, 55)))


def generate_sample_data(
    session_factory: sessionmaker[Session],
    *,
    airplanes: int = 4,
    itineraries: int = 12,
    flights: int = 25,
    reservations: int = 500,
) -> Dict[str, int]:
    """Populate the database with the same pseudo-random schedule on every call."""

    random.seed(42)
    with session_scope(session_factory, write_lock=True) as session:
        airport_ids: Dict[str, int] = {}
        for code, latitude, longitude, offset in AIRPORTS:
            airport = add_airport(
                session, name=code, latitude=latitude, longitude=longitude, timezone=offset
            )
            airport_ids[code] = airport.id
        for index in range(airplanes):
            model, seats = FLEET[index % len(FLEET)]
            add_airplane(session, name=f"Tail{index + 1:03d}", model=model, capacity=seats)
        for index in range(itineraries):
            origin, destination = random.sample(list(AIRPORTS), 2)
            add_itinerary(
                session,
                code=f"{origin[0]}{destination[0]}{index + 1}",
                origin_airport_id=airport_ids[origin[0]],
                destination_airport_id=airport_ids[destination[0]],
                duration_minutes=_block_minutes(origin, destination),
            )
        itinerary_rows = list(session.scalars(select(Itinerary)))
        airplane_ids = list(session.scalars(select(Airplane.id)))
        for _ in range(flights):
            itinerary = random.choice(itinerary_rows)
            departure = _departure(random.randint(1, 14))
            add_flight(
                session,
                itinerary_id=itinerary.id,
                departure_time=departure,
                arrival_time=departure + timedelta(minutes=itinerary.duration_minutes),
                airplane_id=random.choice(airplane_ids),
            )

    with session_scope(session_factory) as session:
        flight_ids = list(session.scalars(select(Flight.id)))

    booking = BookingService(session_factory)
    successful = 0
    for _ in range(reservations if flight_ids else 0):
        name = random.choice(GIVEN_NAMES) + random.choice(FAMILY_NAMES)
        try:
            booking.book(name, random.choice(flight_ids))
        except FlightFullError:
            continue
        successful += 1
    return {
        "airports": len(AIRPORTS),
        "airplanes": airplanes,
        "itineraries": itineraries,
        "flights": flights,
        "reservations": successful,
    }
