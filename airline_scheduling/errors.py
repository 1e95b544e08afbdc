"""Exception hierarchy shared by the services, the CLI and the HTTP layer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence


class AirlineSchedulingError(RuntimeError):
    """Base class for every rejection raised by the service layer."""

    status_code = 500

    def to_payload(self) -> Dict[str, Any]:
        return {"error": str(self)}


@dataclass(frozen=True)
class FieldError:
    """A single rejected request field."""

    field: str
    message: str
    value: Any = None
    location: str = "body"
    kind: str = "field"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "value": self.value,
            "msg": self.message,
            "path": self.field,
            "location": self.location,
        }


class ValidationError(AirlineSchedulingError):
    """Raised when request fields are missing or malformed."""

    status_code = 422

    def __init__(self, errors: Sequence[FieldError], *, status_code: Optional[int] = None) -> None:
        self.errors: List[FieldError] = list(errors)
        if status_code is not None:
            self.status_code = status_code
        summary = "; ".join(f"{error.field}: {error.message}" for error in self.errors)
        super().__init__(summary or "invalid request")

    def to_payload(self) -> Dict[str, Any]:
        if len(self.errors) == 1 and self.status_code == 400:
            return {"error": self.errors[0].message}
        return {"errors": [error.as_dict() for error in self.errors]}


class NotFoundError(AirlineSchedulingError):
    """Raised when an entity addressed by id does not exist."""

    status_code = 404

    def __init__(self, kind: str, entity_id: int, message: Optional[str] = None) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(message or f"{kind.capitalize()} not found.")


class NoSuchFlightError(NotFoundError):
    """Raised when a reservation targets a flight that does not exist."""

    status_code = 409

    def __init__(self, flight_id: int) -> None:
        super().__init__("flight", flight_id, "No such flight exists.")


class MissingReferenceError(NotFoundError):
    """Raised when a write references a related entity that does not exist."""

    status_code = 409

    def __init__(self, kind: str, entity_id: int, field: str) -> None:
        self.field = field
        super().__init__(kind, entity_id, f"Invalid {kind} ID {entity_id} in field '{field}'.")


class ConflictError(AirlineSchedulingError):
    """Raised when a write would break a uniqueness or capacity rule."""

    status_code = 409


class AlreadyExistsError(ConflictError):
    def __init__(self, kind: str, field: str, value: Any) -> None:
        self.kind = kind
        self.field = field
        self.value = value
        super().__init__(f"{kind.capitalize()} {field} already exists.")


class FlightFullError(ConflictError):
    def __init__(self, flight_id: int, capacity: int) -> None:
        self.flight_id = flight_id
        self.capacity = capacity
        super().__init__("The flight is already full.")


class StoreError(AirlineSchedulingError):
    """Raised when the underlying database fails; details are logged, not returned."""

    status_code = 500

    def to_payload(self) -> Dict[str, Any]:
        return {"error": "Server error"}


__all__ = [
    "AirlineSchedulingError",
    "AlreadyExistsError",
    "ConflictError",
    "FieldError",
    "FlightFullError",
    "MissingReferenceError",
    "NoSuchFlightError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
]
