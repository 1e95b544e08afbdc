"""Airline scheduling and capacity-checked passenger reservations."""
from .allocator import Admission, CapacityAllocator
from .booking import BookingService, ReservationRecord
from .config import Settings, load_settings
from .database import create_session_factory, init_db, session_scope
from .dataset import generate_sample_data
from .errors import (
    AirlineSchedulingError,
    AlreadyExistsError,
    ConflictError,
    FlightFullError,
    MissingReferenceError,
    NoSuchFlightError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .resolver import FlightContext, exists, resolve_flight_context

__all__ = [
    "Admission",
    "AirlineSchedulingError",
    "AlreadyExistsError",
    "BookingService",
    "CapacityAllocator",
    "ConflictError",
    "FlightContext",
    "FlightFullError",
    "MissingReferenceError",
    "NoSuchFlightError",
    "NotFoundError",
    "ReservationRecord",
    "Settings",
    "StoreError",
    "ValidationError",
    "create_session_factory",
    "exists",
    "generate_sample_data",
    "init_db",
    "load_settings",
    "resolve_flight_context",
    "session_scope",
]
