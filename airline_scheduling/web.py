"""FastAPI application exposing scheduling administration and reservations."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path as FilePath
from typing import Any, Callable, Coroutine, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Path, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.routing import APIRoute
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session, sessionmaker

from . import services
from .booking import BookingService
from .config import Settings, load_settings
from .database import init_db, session_scope
from .errors import AirlineSchedulingError, FieldError, ValidationError
from .models import MAX_ID, Airplane, Airport, Flight, Itinerary
from .resolver import isoformat
from .schemas import (
    AirplaneFields,
    AirportFields,
    AirportUpdate,
    EntityIdBody,
    FlightFields,
    FlightUpdate,
    ItineraryFields,
    ItineraryUpdate,
    RecordIdBody,
    ReservationCreate,
    field_errors,
    to_naive_utc,
)

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(FilePath(__file__).parent / "templates"))


def _id_path(description: str) -> Any:
    return Path(..., ge=1, le=MAX_ID, description=description)


def _id_query(alias: str) -> Any:
    return Query(None, alias=alias, ge=1, le=MAX_ID)


class CancelBodyRoute(APIRoute):
    """Answer malformed cancel bodies with 400 and a single readable message."""

    messages = {
        "missing": "ID is required in the body.",
        "extra_forbidden": "Only the ID should be provided in the body.",
    }

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()

        async def route_handler(request: Request) -> Response:
            try:
                return await handler(request)
            except RequestValidationError as exc:
                errors = [
                    FieldError(
                        error.field,
                        self.messages.get(error.kind, error.message),
                        error.value,
                        error.location,
                        error.kind,
                    )
                    for error in field_errors(exc.errors())
                ]
                raise ValidationError(errors, status_code=400) from exc

        return route_handler


def _timestamps(row: Any) -> Dict[str, str]:
    return {"updatedAt": isoformat(row.updated_at), "createdAt": isoformat(row.created_at)}


def _airport_payload(airport: Airport) -> Dict[str, Any]:
    return {
        "ID": airport.id,
        "Name": airport.name,
        "Latitude": airport.latitude,
        "Longitude": airport.longitude,
        "Timezone": airport.timezone,
        **_timestamps(airport),
    }


def _itinerary_payload(itinerary: Itinerary) -> Dict[str, Any]:
    return {
        "id": itinerary.id,
        "code": itinerary.code,
        "originAirportId": itinerary.origin_airport_id,
        "destinationAirportId": itinerary.destination_airport_id,
        "duration": itinerary.duration_minutes,
        **_timestamps(itinerary),
    }


def _airplane_payload(airplane: Airplane) -> Dict[str, Any]:
    return {
        "id": airplane.id,
        "name": airplane.name,
        "model": airplane.model,
        "capacity": airplane.capacity,
        **_timestamps(airplane),
    }


def _flight_payload(flight: Flight) -> Dict[str, Any]:
    return {
        "id": flight.id,
        "itineraryID": flight.itinerary_id,
        "departureTime": isoformat(flight.departure_time),
        "arrivalTime": isoformat(flight.arrival_time),
        "airplaneID": flight.airplane_id,
        **_timestamps(flight),
    }


def _airport_router(session_factory: sessionmaker[Session]) -> APIRouter:
    router = APIRouter(prefix="/airport", tags=["airports"])

    @router.post("/create")
    def create_airport(body: AirportFields) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            airport = services.add_airport(
                session,
                name=body.Name,
                latitude=body.Latitude,
                longitude=body.Longitude,
                timezone=body.Timezone,
            )
            return {"message": "Airport created successfully", "airport": _airport_payload(airport)}

    @router.put("/update")
    def update_airport(body: AirportUpdate) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            airport = services.update_airport(
                session,
                airport_id=body.id,
                name=body.Name,
                latitude=body.Latitude,
                longitude=body.Longitude,
                timezone=body.Timezone,
            )
            return {
                "message": f"Airport {body.id} successfully updated",
                "airport": _airport_payload(airport),
            }

    @router.get("/list")
    def list_airports() -> List[Dict[str, Any]]:
        with session_scope(session_factory) as session:
            return [_airport_payload(airport) for airport in services.list_airports(session)]

    @router.get("/all", response_class=HTMLResponse)
    def render_airports(request: Request) -> HTMLResponse:
        with session_scope(session_factory) as session:
            airports = services.list_airports(session)
        return templates.TemplateResponse(request, "airports.html", {"airports": airports})

    @router.get("/{airport_id}")
    def read_airport(airport_id: int = _id_path("Airport ID")) -> Dict[str, Any]:
        with session_scope(session_factory) as session:
            return _airport_payload(services.get_airport(session, airport_id))

    @router.delete("/delete")
    def delete_airport(body: EntityIdBody) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            services.delete_airport(session, airport_id=body.id)
        return {"message": "Airport deleted"}

    return router


def _itinerary_router(session_factory: sessionmaker[Session]) -> APIRouter:
    router = APIRouter(prefix="/itinerary", tags=["itineraries"])

    def _write(session: Session, body: ItineraryFields, itinerary_id: Optional[int] = None) -> Itinerary:
        kwargs = dict(
            code=body.code,
            origin_airport_id=body.originAirportId,
            destination_airport_id=body.destinationAirportId,
            duration_minutes=body.duration,
        )
        if itinerary_id is None:
            return services.add_itinerary(session, **kwargs)
        return services.update_itinerary(session, itinerary_id=itinerary_id, **kwargs)

    @router.post("/create")
    def create_itinerary(body: ItineraryFields) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            itinerary = _write(session, body)
            return {
                "message": "Itinerary created successfully",
                "itinerary": _itinerary_payload(itinerary),
            }

    @router.put("/update")
    def update_itinerary(body: ItineraryUpdate) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            itinerary = _write(session, body, body.id)
            return {
                "message": f"Itinerary {body.id} updated successfully",
                "itinerary": _itinerary_payload(itinerary),
            }

    @router.get("/list")
    def list_itineraries() -> List[Dict[str, Any]]:
        with session_scope(session_factory) as session:
            return [_itinerary_payload(row) for row in services.list_itineraries(session)]

    @router.get("/{itinerary_id}")
    def read_itinerary(itinerary_id: int = _id_path("Itinerary ID")) -> Dict[str, Any]:
        with session_scope(session_factory) as session:
            return _itinerary_payload(services.get_itinerary(session, itinerary_id))

    @router.delete("/delete")
    def delete_itinerary(body: EntityIdBody) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            services.delete_itinerary(session, itinerary_id=body.id)
        return {"message": f"Itinerary {body.id} deleted successfully"}

    return router


def _airplane_router(session_factory: sessionmaker[Session]) -> APIRouter:
    router = APIRouter(prefix="/airplane", tags=["airplanes"])

    @router.post("/create")
    def create_airplane(body: AirplaneFields) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            airplane = services.add_airplane(
                session, name=body.name, model=body.model, capacity=body.capacity
            )
            return {"message": "Airplane created successfully", "airplane": _airplane_payload(airplane)}

    @router.get("/list")
    def list_airplanes() -> List[Dict[str, Any]]:
        with session_scope(session_factory) as session:
            return [_airplane_payload(row) for row in services.list_airplanes(session)]

    @router.get("/{airplane_id}")
    def read_airplane(airplane_id: int = _id_path("Airplane ID")) -> Dict[str, Any]:
        with session_scope(session_factory) as session:
            return _airplane_payload(services.get_airplane(session, airplane_id))

    @router.delete("/delete")
    def delete_airplane(body: EntityIdBody) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            services.delete_airplane(session, airplane_id=body.id)
        return {"message": f"Airplane {body.id} deleted successfully"}

    return router


def _flight_router(session_factory: sessionmaker[Session]) -> APIRouter:
    router = APIRouter(prefix="/flight", tags=["flights"])

    @router.post("/create")
    def create_flight(body: FlightFields) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            flight = services.add_flight(
                session,
                itinerary_id=body.ItineraryID,
                departure_time=body.DepartureTime,
                arrival_time=body.ArrivalTime,
                airplane_id=body.AirplaneID,
            )
            return {"message": "Flight created successfully", "flight": _flight_payload(flight)}

    @router.put("/update")
    def update_flight(body: FlightUpdate) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            flight = services.update_flight(
                session,
                flight_id=body.id,
                itinerary_id=body.ItineraryID,
                departure_time=body.DepartureTime,
                arrival_time=body.ArrivalTime,
                airplane_id=body.AirplaneID,
            )
            return {"message": "Flight updated successfully", "flight": _flight_payload(flight)}

    @router.get("/list")
    def list_flights(
        airplane_id: Optional[int] = _id_query("airplaneID"),
        itinerary_id: Optional[int] = _id_query("itineraryID"),
        arrives_before: Optional[datetime] = Query(None, alias="arrivesBefore"),
    ) -> List[Dict[str, Any]]:
        with session_scope(session_factory) as session:
            flights = services.search_flights(
                session,
                airplane_id=airplane_id,
                itinerary_id=itinerary_id,
                arrives_before=to_naive_utc(arrives_before) if arrives_before else None,
            )
            return [
                {
                    **_flight_payload(flight),
                    "Itinerary": _itinerary_payload(flight.itinerary),
                    "Airplane": _airplane_payload(flight.airplane),
                }
                for flight in flights
            ]

    @router.get("/{flight_id}")
    def read_flight(flight_id: int = _id_path("Flight ID")) -> Dict[str, Any]:
        with session_scope(session_factory) as session:
            context = services.get_flight(session, flight_id)
        return context.as_dict()

    @router.delete("/delete")
    def delete_flight(body: RecordIdBody) -> Dict[str, Any]:
        with session_scope(session_factory, write_lock=True) as session:
            services.delete_flight(session, flight_id=body.ID)
        return {"message": "Flight deleted successfully."}

    return router


def _reservation_router(booking: BookingService) -> APIRouter:
    router = APIRouter(prefix="/reservation", tags=["reservations"])

    @router.post("/create")
    def create_reservation(body: ReservationCreate) -> Dict[str, Any]:
        record = booking.book(body.PassengerName, body.FlightID)
        return {"message": "Reservation created successfully", "reservation": record.as_dict()}

    def delete_reservation(body: RecordIdBody) -> Dict[str, Any]:
        booking.cancel(body.ID)
        return {"message": "Reservation deleted successfully."}

    router.add_api_route(
        "/delete", delete_reservation, methods=["DELETE"], route_class_override=CancelBodyRoute
    )

    @router.get("/flight/{flight_id}")
    def list_flight_reservations(flight_id: int = _id_path("Flight ID")) -> Dict[str, Any]:
        records = booking.list_reservations_for_flight(flight_id)
        return {
            "message": "Reservations retrieved successfully",
            "reservations": [record.as_dict() for record in records],
        }

    return router


def create_app(
    session_factory: sessionmaker[Session] | None = None,
    *,
    settings: Settings | None = None,
) -> FastAPI:
    """Return an application bound to ``session_factory`` (or the configured database)."""

    if session_factory is None:
        settings = settings or load_settings()
        session_factory = init_db(
            settings.db_url, echo=settings.echo_sql, sqlite_timeout=settings.sqlite_timeout
        )

    app = FastAPI(title="Airline Scheduling", description="Flights, airplanes and reservations")
    app.state.session_factory = session_factory
    app.state.booking = BookingService(session_factory)

    @app.exception_handler(AirlineSchedulingError)
    async def handle_service_error(request: Request, exc: AirlineSchedulingError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError(field_errors(exc.errors()))
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    api = APIRouter(prefix="/api")
    api.include_router(_airport_router(session_factory))
    api.include_router(_itinerary_router(session_factory))
    api.include_router(_airplane_router(session_factory))
    api.include_router(_flight_router(session_factory))
    api.include_router(_reservation_router(app.state.booking))
    app.include_router(api)
    return app


__all__ = ["CancelBodyRoute", "create_app"]
