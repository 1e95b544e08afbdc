from datetime import datetime

import pytest

from airline_scheduling.errors import ValidationError
from airline_scheduling.models import MAX_ID
from airline_scheduling.schemas import (
    AirportFields,
    FlightFields,
    ItineraryFields,
    RecordIdBody,
    ReservationCreate,
    field_errors,
    parse,
    parse_id,
)


def test_reservation_request_strips_and_converts():
    request = parse(ReservationCreate, {"PassengerName": "  Ada ", "FlightID": "7"})

    assert request.PassengerName == "Ada"
    assert request.FlightID == 7


@pytest.mark.parametrize("name", ["", "A", "Jo Smith", "Zoë", None, 12])
def test_passenger_name_must_be_alphanumeric_and_long_enough(name):
    with pytest.raises(ValidationError) as excinfo:
        parse(ReservationCreate, {"PassengerName": name, "FlightID": 1})

    assert [error.field for error in excinfo.value.errors] == ["PassengerName"]


@pytest.mark.parametrize(
    "timezone,valid",
    [("GMT+0", True), ("GMT-12", True), ("GMT+5", True), ("GMT+13", False), ("UTC+1", False), ("GMT5", False)],
)
def test_airport_timezone_offsets(timezone, valid):
    payload = {"Name": "CDG", "Latitude": 49.0, "Longitude": 2.55, "Timezone": timezone}

    if valid:
        assert parse(AirportFields, payload).Timezone == timezone
    else:
        with pytest.raises(ValidationError):
            parse(AirportFields, payload)


def test_airport_coordinates_are_range_checked():
    payload = {"Name": "CDG", "Latitude": 91, "Longitude": "-181", "Timezone": "GMT+1"}

    with pytest.raises(ValidationError) as excinfo:
        parse(AirportFields, payload)

    assert [error.field for error in excinfo.value.errors] == ["Latitude", "Longitude"]
    assert excinfo.value.status_code == 422
    first = excinfo.value.to_payload()["errors"][0]
    assert first["type"] == "less_than_equal"
    assert first["value"] == 91
    assert first["location"] == "body"


def test_itinerary_duration_must_be_positive():
    payload = {"code": "AB12", "originAirportId": 1, "destinationAirportId": 2, "duration": 0}

    with pytest.raises(ValidationError) as excinfo:
        parse(ItineraryFields, payload)

    assert [error.field for error in excinfo.value.errors] == ["duration"]


def test_flight_times_accept_epoch_and_iso_as_naive_utc():
    request = parse(
        FlightFields,
        {
            "ItineraryID": 1,
            "DepartureTime": 1893456000,
            "ArrivalTime": "2030-01-01T04:00:00+02:00",
            "AirplaneID": "3",
        },
    )

    assert request.DepartureTime == datetime(2030, 1, 1, 0, 0)
    assert request.ArrivalTime == datetime(2030, 1, 1, 2, 0)
    assert request.AirplaneID == 3


def test_ids_stop_at_the_integer_key_range():
    assert parse_id(MAX_ID) == MAX_ID
    assert parse_id("12") == 12

    for bad in (MAX_ID + 1, 10**20, 0, "-1", "abc"):
        with pytest.raises(ValidationError) as excinfo:
            parse_id(bad, "ID", location="argv")
        assert excinfo.value.errors[0].field == "ID"
        assert excinfo.value.errors[0].location == "argv"


def test_record_id_body_forbids_extra_fields():
    with pytest.raises(ValidationError) as excinfo:
        parse(RecordIdBody, {"ID": 3, "force": True}, status_code=400)

    assert excinfo.value.status_code == 400
    assert [error.kind for error in excinfo.value.errors] == ["extra_forbidden"]


def test_field_errors_split_request_location_from_path():
    errors = field_errors(
        [
            {"type": "missing", "loc": ("body", "ID"), "msg": "Field required", "input": {}},
            {"type": "int_parsing", "loc": ("path", "flight_id"), "msg": "bad", "input": "x"},
        ]
    )

    assert [(error.location, error.field, error.kind) for error in errors] == [
        ("body", "ID", "missing"),
        ("path", "flight_id", "int_parsing"),
    ]
