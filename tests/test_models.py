from punctuality.models import DelayCause, Flight, format_date, parse_flight_date


def test_delay_cause_labels():
    assert [c.label for c in DelayCause] == [
        "Airline",
        "Weather",
        "Air Traffic Control",
        "Security",
        "Late Aircraft",
    ]


def test_delay_cause_columns():
    assert DelayCause.LATE_AIRCRAFT.column == "DELAY_DUE_LATE_AIRCRAFT"
    assert DelayCause.NAS.column == "DELAY_DUE_NAS"


def test_flight_helpers():
    flight = Flight(
        date="20231224",
        airline_code="UA",
        flight_number=88,
        scheduled_arrival=2350,
        actual_arrival=10,
    )
    assert flight.full_flight_number == "UA88"
    assert flight.delay_minutes == 20
    assert flight.flight_date.isoformat() == "2023-12-24"


def test_flight_without_arrival_times():
    assert Flight(date="20231224").delay_minutes == 0


def test_parse_and_format_date():
    assert format_date("20210102") == "02/01/2021"
    assert format_date("2021010") == "N/A"
    assert parse_flight_date("20211332") is None
    assert parse_flight_date(None) is None
