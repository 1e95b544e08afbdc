"""Pydantic request models for the HTTP API and the CLI.

Field names follow the wire format of each entity. Failures are reported as
:class:`~airline_scheduling.errors.FieldError` records so the HTTP layer and
the CLI render them the same way.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import FieldError, ValidationError
from .models import MAX_ID

ModelT = TypeVar("ModelT", bound=BaseModel)

_LOCATIONS = ("body", "query", "path")


def to_naive_utc(value: datetime) -> datetime:
    """Drop timezone information after converting to UTC."""

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


EntityId = Annotated[int, Field(ge=1, le=MAX_ID)]
Alphanumeric = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, pattern=r"^[A-Za-z0-9]+$")]
PassengerNameStr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=2, pattern=r"^[A-Za-z0-9]+$")
]
GmtOffset = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^GMT[+-](?:[0-9]|1[0-2])$")]
# Epoch seconds or ISO 8601.
Timestamp = Annotated[datetime, AfterValidator(to_naive_utc)]


class AirportFields(BaseModel):
    Name: Alphanumeric
    Latitude: float = Field(..., ge=-90, le=90)
    Longitude: float = Field(..., ge=-180, le=180)
    Timezone: GmtOffset


class AirportUpdate(AirportFields):
    id: EntityId


class ItineraryFields(BaseModel):
    code: Alphanumeric
    originAirportId: EntityId
    destinationAirportId: EntityId
    duration: int = Field(..., ge=1, description="Flight duration in minutes")


class ItineraryUpdate(ItineraryFields):
    id: EntityId


class AirplaneFields(BaseModel):
    name: Alphanumeric
    model: Alphanumeric
    capacity: int = Field(..., ge=1, le=MAX_ID)


class FlightFields(BaseModel):
    ItineraryID: EntityId
    DepartureTime: Timestamp
    ArrivalTime: Timestamp
    AirplaneID: EntityId


class FlightUpdate(FlightFields):
    id: EntityId


class ReservationCreate(BaseModel):
    PassengerName: PassengerNameStr
    FlightID: EntityId


class EntityIdBody(BaseModel):
    """Body of the administrative delete routes: exactly ``{"id": ...}``."""

    model_config = ConfigDict(extra="forbid")

    id: EntityId


class RecordIdBody(BaseModel):
    """Body of the flight and reservation delete routes: exactly ``{"ID": ...}``."""

    model_config = ConfigDict(extra="forbid")

    ID: EntityId


def field_errors(errors: Iterable[Dict[str, Any]], *, location: Optional[str] = None) -> List[FieldError]:
    """Translate pydantic error dicts into :class:`FieldError` records.

    FastAPI prefixes each ``loc`` with where the value came from; plain model
    validation does not, in which case ``location`` names it.
    """

    converted: List[FieldError] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        where = location or "body"
        if location is None and loc and loc[0] in _LOCATIONS:
            where = loc.pop(0)
        converted.append(
            FieldError(
                field=".".join(loc),
                message=error.get("msg", "Invalid value."),
                value=error.get("input"),
                location=where,
                kind=error.get("type", "value_error"),
            )
        )
    return converted


def parse(
    model: Type[ModelT],
    data: Any,
    *,
    location: str = "body",
    status_code: Optional[int] = None,
) -> ModelT:
    """Validate ``data`` against ``model`` or raise one :class:`ValidationError`."""

    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            field_errors(exc.errors(), location=location), status_code=status_code
        ) from exc


_ENTITY_ID = TypeAdapter(EntityId)


def parse_id(value: Any, field: str = "ID", *, location: str = "body") -> int:
    try:
        return _ENTITY_ID.validate_python(value)
    except PydanticValidationError as exc:
        errors = [{**error, "loc": (field,)} for error in exc.errors()]
        raise ValidationError(field_errors(errors, location=location)) from exc


__all__ = [
    "AirplaneFields",
    "AirportFields",
    "AirportUpdate",
    "EntityId",
    "EntityIdBody",
    "FlightFields",
    "FlightUpdate",
    "ItineraryFields",
    "ItineraryUpdate",
    "RecordIdBody",
    "ReservationCreate",
    "field_errors",
    "parse",
    "parse_id",
    "to_naive_utc",
]
