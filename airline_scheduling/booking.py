"""Reservation booking, listing and cancellation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .allocator import CapacityAllocator
from .database import session_scope
from .errors import NotFoundError
from .models import Reservation
from .resolver import FlightContext, fetch, isoformat, resolve_flight_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationRecord:
    """A reservation together with the flight it holds a seat on."""

    id: int
    passenger_name: str
    flight: FlightContext
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, reservation: Reservation, flight: FlightContext) -> "ReservationRecord":
        return cls(
            id=reservation.id,
            passenger_name=reservation.passenger_name,
            flight=flight,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ID": self.id,
            "PassengerName": self.passenger_name,
            "Flight": self.flight.as_dict(),
            "updatedAt": isoformat(self.updated_at),
            "createdAt": isoformat(self.created_at),
        }


class BookingService:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def book(self, passenger_name: str, flight_id: int) -> ReservationRecord:
        """Admit ``passenger_name`` onto ``flight_id`` if a seat is left.

        Raises :class:`NoSuchFlightError` for unknown flights and
        :class:`FlightFullError` once the airplane's capacity is reached.
        """

        with session_scope(self._session_factory, write_lock=True) as session:
            context = resolve_flight_context(session, flight_id)
            reservation = CapacityAllocator.admit(session, context, passenger_name)
            return ReservationRecord.build(reservation, context)

    def list_reservations_for_flight(self, flight_id: int) -> List[ReservationRecord]:
        with session_scope(self._session_factory) as session:
            context = resolve_flight_context(session, flight_id)
            reservations = session.scalars(
                select(Reservation)
                .where(Reservation.flight_id == flight_id)
                .order_by(Reservation.id)
            )
            return [ReservationRecord.build(reservation, context) for reservation in reservations]

    def get_reservation(self, reservation_id: int) -> ReservationRecord:
        with session_scope(self._session_factory) as session:
            reservation = fetch(session, Reservation, reservation_id)
            if reservation is None:
                raise NotFoundError("reservation", reservation_id, "Reservation not found.")
            context = resolve_flight_context(session, reservation.flight_id)
            return ReservationRecord.build(reservation, context)

    def cancel(self, reservation_id: int) -> None:
        with session_scope(self._session_factory) as session:
            reservation = fetch(session, Reservation, reservation_id)
            if reservation is None:
                raise NotFoundError("reservation", reservation_id, "Reservation not found.")
            session.delete(reservation)
        logger.info("Cancelled reservation %s", reservation_id)


__all__ = ["BookingService", "ReservationRecord"]
