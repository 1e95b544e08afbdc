"""Administrative operations on airports, itineraries, airplanes and flights."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional, Type

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .allocator import CapacityAllocator
from .errors import AlreadyExistsError, ConflictError, FieldError, NotFoundError, ValidationError
from .models import Airplane, Airport, Base, Flight, Itinerary, Reservation
from .resolver import FlightContext, fetch, require, resolve_flight_context

logger = logging.getLogger(__name__)


def _get_or_404(session: Session, model: Type[Any], kind: str, entity_id: int) -> Any:
    row = fetch(session, model, entity_id)
    if row is None:
        raise NotFoundError(kind, entity_id)
    return row


def _ensure_unique(
    session: Session,
    model: Type[Base],
    column: Any,
    value: str,
    *,
    kind: str,
    field: str,
    exclude_id: Optional[int] = None,
) -> None:
    stmt = select(model.id).where(column == value)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if session.scalar(stmt) is not None:
        raise AlreadyExistsError(kind, field, value)


def _flush_unique(session: Session, *, kind: str, field: str, value: str) -> None:
    """Flush pending writes, turning a lost uniqueness race into a conflict."""

    try:
        session.flush()
    except IntegrityError as exc:
        raise AlreadyExistsError(kind, field, value) from exc


def _refuse_if_referenced(count: int, *, kind: str, entity_id: int, dependents: str) -> None:
    if count:
        logger.info("Refusing to delete %s %s: %s %s still reference it", kind, entity_id, count, dependents)
        raise ConflictError(
            f"{kind.capitalize()} {entity_id} is still referenced by {count} {dependents}."
        )


def _count(session: Session, stmt: Select[Any]) -> int:
    return session.scalar(stmt) or 0


# Airports


def add_airport(
    session: Session,
    *,
    name: str,
    latitude: float,
    longitude: float,
    timezone: str,
) -> Airport:
    """Create an airport with a unique name."""

    _ensure_unique(session, Airport, Airport.name, name, kind="airport", field="name")
    airport = Airport(name=name, latitude=latitude, longitude=longitude, timezone=timezone)
    session.add(airport)
    _flush_unique(session, kind="airport", field="name", value=name)
    return airport


def update_airport(
    session: Session,
    *,
    airport_id: int,
    name: str,
    latitude: float,
    longitude: float,
    timezone: str,
) -> Airport:
    airport = _get_or_404(session, Airport, "airport", airport_id)
    _ensure_unique(
        session, Airport, Airport.name, name, kind="airport", field="name", exclude_id=airport_id
    )
    airport.name = name
    airport.latitude = latitude
    airport.longitude = longitude
    airport.timezone = timezone
    _flush_unique(session, kind="airport", field="name", value=name)
    return airport


def get_airport(session: Session, airport_id: int) -> Airport:
    return _get_or_404(session, Airport, "airport", airport_id)


def list_airports(session: Session) -> List[Airport]:
    return list(session.scalars(select(Airport).order_by(Airport.id)))


def delete_airport(session: Session, *, airport_id: int) -> None:
    airport = _get_or_404(session, Airport, "airport", airport_id)
    references = _count(
        session,
        select(func.count(Itinerary.id)).where(
            (Itinerary.origin_airport_id == airport_id)
            | (Itinerary.destination_airport_id == airport_id)
        ),
    )
    _refuse_if_referenced(references, kind="airport", entity_id=airport_id, dependents="itineraries")
    session.delete(airport)
    session.flush()


# Itineraries


def _require_airports(session: Session, origin_airport_id: int, destination_airport_id: int) -> None:
    require(session, Airport, origin_airport_id, field="originAirportId")
    require(session, Airport, destination_airport_id, field="destinationAirportId")


def add_itinerary(
    session: Session,
    *,
    code: str,
    origin_airport_id: int,
    destination_airport_id: int,
    duration_minutes: int,
) -> Itinerary:
    """Create an itinerary between two existing airports."""

    _require_airports(session, origin_airport_id, destination_airport_id)
    _ensure_unique(session, Itinerary, Itinerary.code, code, kind="itinerary", field="code")
    itinerary = Itinerary(
        code=code,
        origin_airport_id=origin_airport_id,
        destination_airport_id=destination_airport_id,
        duration_minutes=duration_minutes,
    )
    session.add(itinerary)
    _flush_unique(session, kind="itinerary", field="code", value=code)
    return itinerary


def update_itinerary(
    session: Session,
    *,
    itinerary_id: int,
    code: str,
    origin_airport_id: int,
    destination_airport_id: int,
    duration_minutes: int,
) -> Itinerary:
    itinerary = _get_or_404(session, Itinerary, "itinerary", itinerary_id)
    _require_airports(session, origin_airport_id, destination_airport_id)
    _ensure_unique(
        session,
        Itinerary,
        Itinerary.code,
        code,
        kind="itinerary",
        field="code",
        exclude_id=itinerary_id,
    )
    itinerary.code = code
    itinerary.origin_airport_id = origin_airport_id
    itinerary.destination_airport_id = destination_airport_id
    itinerary.duration_minutes = duration_minutes
    _flush_unique(session, kind="itinerary", field="code", value=code)
    return itinerary


def get_itinerary(session: Session, itinerary_id: int) -> Itinerary:
    return _get_or_404(session, Itinerary, "itinerary", itinerary_id)


def list_itineraries(session: Session) -> List[Itinerary]:
    return list(session.scalars(select(Itinerary).order_by(Itinerary.id)))


def delete_itinerary(session: Session, *, itinerary_id: int) -> None:
    itinerary = _get_or_404(session, Itinerary, "itinerary", itinerary_id)
    flights = _count(session, select(func.count(Flight.id)).where(Flight.itinerary_id == itinerary_id))
    _refuse_if_referenced(flights, kind="itinerary", entity_id=itinerary_id, dependents="flights")
    session.delete(itinerary)
    session.flush()


# Airplanes


def add_airplane(session: Session, *, name: str, model: str, capacity: int) -> Airplane:
    _ensure_unique(session, Airplane, Airplane.name, name, kind="airplane", field="name")
    airplane = Airplane(name=name, model=model, capacity=capacity)
    session.add(airplane)
    _flush_unique(session, kind="airplane", field="name", value=name)
    return airplane


def get_airplane(session: Session, airplane_id: int) -> Airplane:
    return _get_or_404(session, Airplane, "airplane", airplane_id)


def list_airplanes(session: Session) -> List[Airplane]:
    return list(session.scalars(select(Airplane).order_by(Airplane.id)))


def delete_airplane(session: Session, *, airplane_id: int) -> None:
    airplane = _get_or_404(session, Airplane, "airplane", airplane_id)
    flights = _count(session, select(func.count(Flight.id)).where(Flight.airplane_id == airplane_id))
    _refuse_if_referenced(flights, kind="airplane", entity_id=airplane_id, dependents="flights")
    session.delete(airplane)
    session.flush()


# Flights


def _check_schedule(departure_time: datetime, arrival_time: datetime) -> None:
    if arrival_time <= departure_time:
        raise ValidationError(
            [FieldError("ArrivalTime", "Arrival time must be after departure time.", arrival_time.isoformat())]
        )


def add_flight(
    session: Session,
    *,
    itinerary_id: int,
    departure_time: datetime,
    arrival_time: datetime,
    airplane_id: int,
) -> Flight:
    """Schedule a flight of an existing itinerary on an existing airplane."""

    require(session, Itinerary, itinerary_id, field="ItineraryID")
    require(session, Airplane, airplane_id, field="AirplaneID")
    _check_schedule(departure_time, arrival_time)
    flight = Flight(
        itinerary_id=itinerary_id,
        departure_time=departure_time,
        arrival_time=arrival_time,
        airplane_id=airplane_id,
    )
    session.add(flight)
    session.flush()
    return flight


def update_flight(
    session: Session,
    *,
    flight_id: int,
    itinerary_id: int,
    departure_time: datetime,
    arrival_time: datetime,
    airplane_id: int,
) -> Flight:
    """Reschedule a flight; the new airplane must seat every live reservation."""

    flight = fetch(session, Flight, flight_id, with_for_update=True)
    if flight is None:
        raise NotFoundError("flight", flight_id, "Flight with this ID does not exist.")
    require(session, Itinerary, itinerary_id, field="ItineraryID")
    airplane = require(session, Airplane, airplane_id, field="AirplaneID")
    _check_schedule(departure_time, arrival_time)
    reserved = CapacityAllocator.count_reservations(session, flight_id)
    if reserved > airplane.capacity:
        raise ConflictError(
            f"Airplane {airplane_id} seats {airplane.capacity} but flight {flight_id} "
            f"already has {reserved} reservations."
        )
    flight.itinerary_id = itinerary_id
    flight.departure_time = departure_time
    flight.arrival_time = arrival_time
    flight.airplane_id = airplane_id
    session.flush()
    return flight


def get_flight(session: Session, flight_id: int) -> FlightContext:
    return resolve_flight_context(session, flight_id)


def search_flights(
    session: Session,
    *,
    airplane_id: Optional[int] = None,
    itinerary_id: Optional[int] = None,
    arrives_before: Optional[datetime] = None,
) -> List[Flight]:
    stmt: Select[tuple[Flight]] = select(Flight).options(
        joinedload(Flight.itinerary), joinedload(Flight.airplane)
    )
    if airplane_id:
        require(session, Airplane, airplane_id, field="airplaneID")
        stmt = stmt.where(Flight.airplane_id == airplane_id)
    if itinerary_id:
        require(session, Itinerary, itinerary_id, field="itineraryID")
        stmt = stmt.where(Flight.itinerary_id == itinerary_id)
    if arrives_before:
        stmt = stmt.where(Flight.arrival_time < arrives_before)
    return list(session.scalars(stmt.order_by(Flight.id)).unique())


def delete_flight(session: Session, *, flight_id: int) -> None:
    flight = fetch(session, Flight, flight_id)
    if flight is None:
        raise NotFoundError("flight", flight_id, "Flight not found.")
    reservations = _count(
        session, select(func.count(Reservation.id)).where(Reservation.flight_id == flight_id)
    )
    _refuse_if_referenced(reservations, kind="flight", entity_id=flight_id, dependents="reservations")
    session.delete(flight)
    session.flush()


def summarize_capacity(session: Session) -> List[dict]:
    rows = session.execute(
        select(
            Flight.id,
            Itinerary.code,
            Flight.departure_time,
            Airplane.name,
            Airplane.capacity,
            func.count(Reservation.id).label("reserved"),
        )
        .join(Itinerary, Flight.itinerary_id == Itinerary.id)
        .join(Airplane, Flight.airplane_id == Airplane.id)
        .outerjoin(Reservation, Reservation.flight_id == Flight.id)
        .group_by(Flight.id, Itinerary.code, Flight.departure_time, Airplane.name, Airplane.capacity)
        .order_by(Flight.id)
    ).all()
    return [
        {
            "flight": row.id,
            "itinerary": row.code,
            "departure": row.departure_time,
            "airplane": row.name,
            "reserved": row.reserved,
            "capacity": row.capacity,
            "available": row.capacity - row.reserved,
        }
        for row in rows
    ]
