"""Referential lookups and flight context hydration."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Type, TypeVar

from sqlalchemy import exists as sql_exists
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from .errors import MissingReferenceError, NoSuchFlightError
from .models import MAX_ID, Airplane, Airport, Base, Flight, Itinerary, Reservation

EntityKind = Literal["airport", "itinerary", "airplane", "flight", "reservation"]

_MODELS: Dict[str, Type[Base]] = {
    "airport": Airport,
    "itinerary": Itinerary,
    "airplane": Airplane,
    "flight": Flight,
    "reservation": Reservation,
}

ModelT = TypeVar("ModelT", bound=Base)


def isoformat(value: datetime) -> str:
    return value.isoformat()


def _storable(entity_id: int) -> bool:
    return 1 <= entity_id <= MAX_ID


def fetch(
    session: Session, model: Type[ModelT], entity_id: int, *, with_for_update: bool = False
) -> Optional[ModelT]:
    """Primary-key lookup; ids outside the INTEGER key range do not exist."""

    if not _storable(entity_id):
        return None
    return session.get(model, entity_id, with_for_update=with_for_update)


@dataclass(frozen=True)
class AirportView:
    id: int
    name: str
    latitude: float
    longitude: float
    timezone: str

    @classmethod
    def from_model(cls, airport: Airport) -> "AirportView":
        return cls(airport.id, airport.name, airport.latitude, airport.longitude, airport.timezone)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ID": self.id,
            "Name": self.name,
            "Latitude": self.latitude,
            "Longitude": self.longitude,
            "Timezone": self.timezone,
        }


@dataclass(frozen=True)
class ItineraryView:
    id: int
    code: str
    origin: AirportView
    destination: AirportView
    duration_minutes: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ID": self.id,
            "Code": self.code,
            "OriginAirport": self.origin.as_dict(),
            "DestinationAirport": self.destination.as_dict(),
            "DurationMinutes": self.duration_minutes,
        }


@dataclass(frozen=True)
class AirplaneView:
    id: int
    name: str
    model: str
    capacity: int

    def as_dict(self) -> Dict[str, Any]:
        return {"ID": self.id, "Name": self.name, "Model": self.model, "Capacity": self.capacity}


@dataclass(frozen=True)
class FlightContext:
    """A flight with its itinerary, both airports and its airplane, read once."""

    flight_id: int
    departure_time: datetime
    arrival_time: datetime
    itinerary: ItineraryView
    airplane: AirplaneView

    @property
    def origin(self) -> AirportView:
        return self.itinerary.origin

    @property
    def destination(self) -> AirportView:
        return self.itinerary.destination

    @property
    def capacity(self) -> int:
        return self.airplane.capacity

    @classmethod
    def from_model(cls, flight: Flight) -> "FlightContext":
        itinerary = flight.itinerary
        airplane = flight.airplane
        return cls(
            flight_id=flight.id,
            departure_time=flight.departure_time,
            arrival_time=flight.arrival_time,
            itinerary=ItineraryView(
                id=itinerary.id,
                code=itinerary.code,
                origin=AirportView.from_model(itinerary.origin_airport),
                destination=AirportView.from_model(itinerary.destination_airport),
                duration_minutes=itinerary.duration_minutes,
            ),
            airplane=AirplaneView(airplane.id, airplane.name, airplane.model, airplane.capacity),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ID": self.flight_id,
            "DepartureTime": isoformat(self.departure_time),
            "ArrivalTime": isoformat(self.arrival_time),
            "Itinerary": self.itinerary.as_dict(),
            "Airplane": self.airplane.as_dict(),
        }


def resolve_flight_context(session: Session, flight_id: int) -> FlightContext:
    """Load a flight and everything it points at, or raise :class:`NoSuchFlightError`."""

    if not _storable(flight_id):
        raise NoSuchFlightError(flight_id)
    stmt = (
        select(Flight)
        .where(Flight.id == flight_id)
        .options(
            joinedload(Flight.itinerary).joinedload(Itinerary.origin_airport),
            joinedload(Flight.itinerary).joinedload(Itinerary.destination_airport),
            joinedload(Flight.airplane),
        )
    )
    flight = session.scalars(stmt).unique().one_or_none()
    if flight is None:
        raise NoSuchFlightError(flight_id)
    return FlightContext.from_model(flight)


def exists(session: Session, kind: EntityKind, entity_id: int) -> bool:
    if not _storable(entity_id):
        return False
    model = _MODELS[kind]
    return bool(session.scalar(select(sql_exists().where(model.id == entity_id))))


def require(session: Session, model: Type[ModelT], entity_id: int, *, field: str) -> ModelT:
    """Return the referenced row or raise :class:`MissingReferenceError`."""

    row = fetch(session, model, entity_id)
    if row is None:
        kind = next(name for name, candidate in _MODELS.items() if candidate is model)
        raise MissingReferenceError(kind, entity_id, field)
    return row


__all__ = [
    "AirplaneView",
    "AirportView",
    "EntityKind",
    "FlightContext",
    "ItineraryView",
    "exists",
    "fetch",
    "isoformat",
    "require",
    "resolve_flight_context",
]
