"""Capacity checks that admit reservations onto a flight."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .errors import FlightFullError
from .models import Flight, Reservation
from .resolver import FlightContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admission:
    flight_id: int
    reserved: int
    capacity: int

    @property
    def admitted(self) -> bool:
        return self.reserved < self.capacity

    @property
    def remaining(self) -> int:
        return max(self.capacity - self.reserved, 0)


class CapacityAllocator:
    """Admit reservations against a live count of the flight's bookings.

    Callers must run :meth:`admit` inside a write-locked transaction (see
    ``session_scope(..., write_lock=True)``); the flight row lock below keys
    the serialization on the flight for databases that honour ``FOR UPDATE``.
    """

    @classmethod
    def count_reservations(cls, session: Session, flight_id: int) -> int:
        return session.scalar(
            select(func.count(Reservation.id)).where(Reservation.flight_id == flight_id)
        ) or 0

    @classmethod
    def try_admit(cls, session: Session, context: FlightContext) -> Admission:
        session.execute(
            select(Flight.id).where(Flight.id == context.flight_id).with_for_update()
        )
        reserved = cls.count_reservations(session, context.flight_id)
        return Admission(context.flight_id, reserved, context.capacity)

    @classmethod
    def admit(cls, session: Session, context: FlightContext, passenger_name: str) -> Reservation:
        admission = cls.try_admit(session, context)
        if not admission.admitted:
            logger.info(
                "Rejected %s on flight %s: %s/%s seats taken",
                passenger_name,
                context.flight_id,
                admission.reserved,
                admission.capacity,
            )
            raise FlightFullError(context.flight_id, context.capacity)
        reservation = Reservation(passenger_name=passenger_name, flight_id=context.flight_id)
        session.add(reservation)
        session.flush()
        logger.info(
            "Admitted %s on flight %s as reservation %s (%s seats left)",
            passenger_name,
            context.flight_id,
            reservation.id,
            admission.remaining - 1,
        )
        return reservation


__all__ = ["Admission", "CapacityAllocator"]
