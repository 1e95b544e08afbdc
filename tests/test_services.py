from __future__ import annotations

import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from airline_scheduling import services
from airline_scheduling.booking import BookingService
from airline_scheduling.database import create_session_factory, session_scope
from airline_scheduling.dataset import generate_sample_data
from airline_scheduling.errors import (
    AlreadyExistsError,
    ConflictError,
    MissingReferenceError,
    NotFoundError,
    ValidationError,
)
from airline_scheduling.models import Airplane, Airport, Base, Flight, Itinerary, Reservation

DEPARTURE = datetime(2030, 3, 14, 8, 0)


def make_session_factory():
    db_file = Path(tempfile.mkstemp(prefix="airline-test", suffix=".db")[1])
    engine, session_factory = create_session_factory(f"sqlite+pysqlite:///{db_file}", echo=False)
    Base.metadata.create_all(engine)
    return session_factory


def seed_route(session):
    origin = services.add_airport(session, name="SEA", latitude=47.45, longitude=-122.31, timezone="GMT-8")
    destination = services.add_airport(session, name="DEN", latitude=39.86, longitude=-104.67, timezone="GMT-7")
    itinerary = services.add_itinerary(
        session,
        code="SEADEN1",
        origin_airport_id=origin.id,
        destination_airport_id=destination.id,
        duration_minutes=150,
    )
    return origin, destination, itinerary


def test_airport_names_are_unique():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        services.add_airport(session, name="ORD", latitude=41.97, longitude=-87.9, timezone="GMT-6")

    with pytest.raises(AlreadyExistsError) as excinfo:
        with session_scope(session_factory) as session:
            services.add_airport(session, name="ORD", latitude=0, longitude=0, timezone="GMT+0")

    assert excinfo.value.field == "name"
    with session_scope(session_factory) as session:
        assert len(services.list_airports(session)) == 1


def test_update_airport_keeps_its_own_name_and_rejects_others():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        first = services.add_airport(session, name="HND", latitude=35.55, longitude=139.78, timezone="GMT+9")
        services.add_airport(session, name="NRT", latitude=35.77, longitude=140.39, timezone="GMT+9")

    with session_scope(session_factory) as session:
        updated = services.update_airport(
            session, airport_id=first.id, name="HND", latitude=35.5, longitude=139.8, timezone="GMT+9"
        )
        assert updated.latitude == 35.5

    with pytest.raises(AlreadyExistsError):
        with session_scope(session_factory) as session:
            services.update_airport(
                session, airport_id=first.id, name="NRT", latitude=35.5, longitude=139.8, timezone="GMT+9"
            )

    with pytest.raises(NotFoundError):
        with session_scope(session_factory) as session:
            services.update_airport(
                session, airport_id=999, name="XYZ", latitude=0, longitude=0, timezone="GMT+1"
            )


def test_itinerary_requires_existing_airports():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        origin = services.add_airport(session, name="LHR", latitude=51.47, longitude=-0.45, timezone="GMT+0")

    with pytest.raises(MissingReferenceError) as excinfo:
        with session_scope(session_factory) as session:
            services.add_itinerary(
                session,
                code="LHR1",
                origin_airport_id=origin.id,
                destination_airport_id=77,
                duration_minutes=60,
            )

    assert excinfo.value.kind == "airport"
    assert excinfo.value.entity_id == 77
    assert excinfo.value.field == "destinationAirportId"


def test_flight_requires_itinerary_airplane_and_ordered_times():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        _, _, itinerary = seed_route(session)
        airplane = services.add_airplane(session, name="Jet1", model="B737", capacity=3)

    with pytest.raises(MissingReferenceError) as excinfo:
        with session_scope(session_factory) as session:
            services.add_flight(
                session,
                itinerary_id=itinerary.id,
                departure_time=DEPARTURE,
                arrival_time=DEPARTURE + timedelta(hours=2),
                airplane_id=404,
            )
    assert excinfo.value.kind == "airplane"

    with pytest.raises(ValidationError) as excinfo:
        with session_scope(session_factory) as session:
            services.add_flight(
                session,
                itinerary_id=itinerary.id,
                departure_time=DEPARTURE,
                arrival_time=DEPARTURE,
                airplane_id=airplane.id,
            )
    assert excinfo.value.errors[0].field == "ArrivalTime"


def test_update_flight_cannot_shrink_below_live_reservations():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        _, _, itinerary = seed_route(session)
        large = services.add_airplane(session, name="Large", model="A350", capacity=3)
        small = services.add_airplane(session, name="Small", model="E175", capacity=1)
        flight = services.add_flight(
            session,
            itinerary_id=itinerary.id,
            departure_time=DEPARTURE,
            arrival_time=DEPARTURE + timedelta(hours=2),
            airplane_id=large.id,
        )
    booking = BookingService(session_factory)
    booking.book("One", flight.id)
    booking.book("Two", flight.id)

    with pytest.raises(ConflictError):
        with session_scope(session_factory) as session:
            services.update_flight(
                session,
                flight_id=flight.id,
                itinerary_id=itinerary.id,
                departure_time=DEPARTURE,
                arrival_time=DEPARTURE + timedelta(hours=2),
                airplane_id=small.id,
            )

    with session_scope(session_factory) as session:
        moved = services.update_flight(
            session,
            flight_id=flight.id,
            itinerary_id=itinerary.id,
            departure_time=DEPARTURE + timedelta(days=1),
            arrival_time=DEPARTURE + timedelta(days=1, hours=2),
            airplane_id=large.id,
        )
        assert moved.departure_time == DEPARTURE + timedelta(days=1)
        assert services.get_flight(session, flight.id).capacity == 3


def test_deletes_are_restricted_while_referenced():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        origin, _, itinerary = seed_route(session)
        airplane = services.add_airplane(session, name="Jet2", model="B787", capacity=2)
        flight = services.add_flight(
            session,
            itinerary_id=itinerary.id,
            departure_time=DEPARTURE,
            arrival_time=DEPARTURE + timedelta(hours=3),
            airplane_id=airplane.id,
        )
    reservation = BookingService(session_factory).book("Hopper", flight.id)

    for delete, kwargs in (
        (services.delete_airport, {"airport_id": origin.id}),
        (services.delete_itinerary, {"itinerary_id": itinerary.id}),
        (services.delete_airplane, {"airplane_id": airplane.id}),
        (services.delete_flight, {"flight_id": flight.id}),
    ):
        with pytest.raises(ConflictError):
            with session_scope(session_factory) as session:
                delete(session, **kwargs)

    BookingService(session_factory).cancel(reservation.id)
    with session_scope(session_factory) as session:
        services.delete_flight(session, flight_id=flight.id)
        services.delete_airplane(session, airplane_id=airplane.id)
        services.delete_itinerary(session, itinerary_id=itinerary.id)
        services.delete_airport(session, airport_id=origin.id)

    with session_scope(session_factory) as session:
        assert session.get(Flight, flight.id) is None
        assert session.get(Airplane, airplane.id) is None
        assert session.get(Itinerary, itinerary.id) is None
        assert session.get(Airport, origin.id) is None


def test_search_flights_filters_and_validates_references():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        _, _, itinerary = seed_route(session)
        first = services.add_airplane(session, name="First", model="A320", capacity=2)
        second = services.add_airplane(session, name="Second", model="A320", capacity=2)
        early = services.add_flight(
            session,
            itinerary_id=itinerary.id,
            departure_time=DEPARTURE,
            arrival_time=DEPARTURE + timedelta(hours=2),
            airplane_id=first.id,
        )
        late = services.add_flight(
            session,
            itinerary_id=itinerary.id,
            departure_time=DEPARTURE + timedelta(days=2),
            arrival_time=DEPARTURE + timedelta(days=2, hours=2),
            airplane_id=second.id,
        )

    with session_scope(session_factory) as session:
        assert [f.id for f in services.search_flights(session)] == [early.id, late.id]
        assert [f.id for f in services.search_flights(session, airplane_id=second.id)] == [late.id]
        cutoff = DEPARTURE + timedelta(days=1)
        assert [f.id for f in services.search_flights(session, arrives_before=cutoff)] == [early.id]
        with pytest.raises(MissingReferenceError):
            services.search_flights(session, itinerary_id=55)


def test_summarize_capacity_counts_live_reservations():
    session_factory = make_session_factory()
    with session_scope(session_factory) as session:
        _, _, itinerary = seed_route(session)
        airplane = services.add_airplane(session, name="Jet3", model="A320", capacity=3)
        flight = services.add_flight(
            session,
            itinerary_id=itinerary.id,
            departure_time=DEPARTURE,
            arrival_time=DEPARTURE + timedelta(hours=2),
            airplane_id=airplane.id,
        )
    BookingService(session_factory).book("Barbara", flight.id)

    with session_scope(session_factory) as session:
        rows = services.summarize_capacity(session)

    assert rows == [
        {
            "flight": flight.id,
            "itinerary": "SEADEN1",
            "departure": DEPARTURE,
            "airplane": "Jet3",
            "reserved": 1,
            "capacity": 3,
            "available": 2,
        }
    ]


def test_dataset_generator_never_overbooks():
    session_factory = make_session_factory()
    summary = generate_sample_data(session_factory, flights=5, reservations=60)

    with session_scope(session_factory) as session:
        rows = services.summarize_capacity(session)
        reservation_count = session.query(Reservation).count()

    assert summary["flights"] == 5
    assert len(rows) == 5
    assert reservation_count == summary["reservations"] <= 60
    assert all(row["reserved"] <= row["capacity"] for row in rows)


def test_dataset_uses_real_airport_positions():
    session_factory = make_session_factory()
    generate_sample_data(session_factory, flights=2, reservations=0)

    with session_scope(session_factory) as session:
        airports = {airport.name: airport for airport in services.list_airports(session)}
        itineraries = services.list_itineraries(session)

    assert (airports["SFO"].latitude, airports["SFO"].longitude, airports["SFO"].timezone) == (
        37.6213,
        -122.379,
        "GMT-8",
    )
    assert airports["SYD"].timezone == "GMT+10"
    assert all(itinerary.duration_minutes > 30 for itinerary in itineraries)
