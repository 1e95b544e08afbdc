"""SQLAlchemy models for airline scheduling and reservations."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Largest key a 64-bit INTEGER primary key can hold.
MAX_ID = 2**63 - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class Airport(TimestampMixin, Base):
    __tablename__ = "airports"
    __table_args__ = (
        UniqueConstraint("name", name="uq_airport_name"),
        CheckConstraint("latitude BETWEEN -90 AND 90", name="ck_airport_latitude"),
        CheckConstraint("longitude BETWEEN -180 AND 180", name="ck_airport_longitude"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    timezone: Mapped[str] = mapped_column(String(6), nullable=False)


class Itinerary(TimestampMixin, Base):
    __tablename__ = "itineraries"
    __table_args__ = (
        UniqueConstraint("code", name="uq_itinerary_code"),
        CheckConstraint("duration_minutes >= 1", name="ck_itinerary_duration_positive"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    origin_airport_id: Mapped[int] = mapped_column(
        ForeignKey("airports.id", ondelete="RESTRICT"), nullable=False
    )
    destination_airport_id: Mapped[int] = mapped_column(
        ForeignKey("airports.id", ondelete="RESTRICT"), nullable=False
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    origin_airport: Mapped[Airport] = relationship(foreign_keys=[origin_airport_id])
    destination_airport: Mapped[Airport] = relationship(foreign_keys=[destination_airport_id])
    flights: Mapped[List["Flight"]] = relationship(back_populates="itinerary")


class Airplane(TimestampMixin, Base):
    __tablename__ = "airplanes"
    __table_args__ = (
        UniqueConstraint("name", name="uq_airplane_name"),
        CheckConstraint("capacity >= 1", name="ck_airplane_capacity_positive"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    model: Mapped[str] = mapped_column(String(64), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    flights: Mapped[List["Flight"]] = relationship(back_populates="airplane")


class Flight(TimestampMixin, Base):
    __tablename__ = "flights"
    __table_args__ = (
        CheckConstraint("arrival_time > departure_time", name="ck_flight_arrival_after_departure"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    itinerary_id: Mapped[int] = mapped_column(
        ForeignKey("itineraries.id", ondelete="RESTRICT"), nullable=False
    )
    departure_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    arrival_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    airplane_id: Mapped[int] = mapped_column(
        ForeignKey("airplanes.id", ondelete="RESTRICT"), nullable=False
    )

    itinerary: Mapped[Itinerary] = relationship(back_populates="flights")
    airplane: Mapped[Airplane] = relationship(back_populates="flights")
    reservations: Mapped[List["Reservation"]] = relationship(
        back_populates="flight", order_by="Reservation.id", passive_deletes="all"
    )


class Reservation(TimestampMixin, Base):
    __tablename__ = "reservations"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    passenger_name: Mapped[str] = mapped_column(String(120), nullable=False)
    flight_id: Mapped[int] = mapped_column(
        ForeignKey("flights.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    flight: Mapped[Flight] = relationship(back_populates="reservations")
