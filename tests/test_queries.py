from datetime import date

import pytest

from punctuality.load_data import CsvImporter
from punctuality.models import DelayCause
from punctuality import queries

from conftest import SAMPLE_ROWS

EXTRA_ROWS = [
    # late B6 arrival at FLL, security delay
    "2022-11-05,JetBlue Airways,B6,1,JFK,New York,FLL,Fort Lauderdale,700,815,1010,1125,0,0,0,0,40,35",
    # crosses midnight: scheduled 23:50, landed 00:30
    "2022-11-20,JetBlue Airways,B6,2,JFK,New York,FLL,Fort Lauderdale,2000,2030,2350,0030,0,40,0,0,0,0",
    # early arrival
    "2022-12-01,Delta Air Lines,DL,1234,JFK,New York,LAX,Los Angeles,900,855,1200,1150,0,0,0,0,0,0",
]


@pytest.fixture
def loaded(session, write_csv):
    CsvImporter(session).import_csv(write_csv(SAMPLE_ROWS + EXTRA_ROWS))
    return session


def test_search_by_airline(loaded):
    df = queries.search_flights(loaded, airline="dl")
    assert sorted(df["date"]) == ["20210101", "20221201"]
    assert set(df["airline_name"]) == {"Delta Air Lines"}


def test_search_by_full_flight_number(loaded):
    df = queries.search_flights(loaded, flight_number="DL1234")
    assert len(df) == 2
    assert queries.search_flights(loaded, flight_number="AA1234").empty


def test_search_by_bare_flight_number(loaded):
    df = queries.search_flights(loaded, flight_number=4321)
    assert list(df["airline_code"]) == ["AA"]


def test_search_by_origin_and_date_range(loaded):
    df = queries.search_flights(
        loaded, origin="JFK", start_date=date(2022, 11, 1), end_date="2022-11-30"
    )
    assert list(df["flight_number"]) == [1, 2]


def test_search_min_delay_uses_arrival_times(loaded):
    df = queries.search_flights(loaded, airline="B6", destination="FLL", min_delay=60)
    assert list(df["flight_number"]) == [1]
    assert list(df["delay_minutes"]) == [75]


def test_search_midnight_crossing_delay(loaded):
    df = queries.search_flights(loaded, flight_number="B62")
    assert list(df["delay_minutes"]) == [40]


def test_search_by_delay_reason(loaded):
    df = queries.search_flights(loaded, delay_reason="security")
    assert list(df["flight_number"]) == [1]
    df = queries.search_flights(loaded, delay_reason=DelayCause.CARRIER)
    assert sorted(df["flight_number"]) == [2, 1234]


def test_search_unknown_delay_reason(loaded):
    with pytest.raises(ValueError):
        queries.search_flights(loaded, delay_reason="ALIENS")


def test_search_limit(loaded):
    assert len(queries.search_flights(loaded, limit=2)) == 2


def test_search_no_match_has_columns(loaded):
    df = queries.search_flights(loaded, origin="XXX")
    assert df.empty
    assert list(df.columns) == queries.SEARCH_COLUMNS


def test_get_delay_reasons(loaded):
    flight_id = int(queries.search_flights(loaded, flight_number="B61")["flight_id"][0])
    df = queries.get_delay_reasons(loaded, flight_id)
    assert list(df["reason"]) == ["SECURITY", "LATE_AIRCRAFT"]
    assert list(df["label"]) == ["Security", "Late Aircraft"]
    assert list(df["delay_length"]) == [40, 35]


def test_average_delay_by_airline(loaded):
    df = queries.average_delay_by_airline(loaded, 2022)
    by_code = df.set_index("airline_code")
    assert by_code.loc["B6", "avg_delay"] == pytest.approx((75 + 40) / 2)
    assert by_code.loc["DL", "avg_delay"] == 0
    assert list(df["airline_code"]) == ["B6", "DL"]


def test_average_delay_by_airport(loaded):
    """Delays are attributed to the departure airport."""
    df = queries.average_delay_by_airport(loaded, 2021)
    by_airport = df.set_index("airport")
    assert set(by_airport.index) == {"ATL", "JFK", "ORD"}
    assert by_airport.loc["ATL", "avg_delay"] == 10
    assert by_airport.loc["JFK", "avg_delay"] == 90
    assert by_airport.loc["ORD", "avg_delay"] == 0
    assert by_airport.loc["ATL", "airport_name"] == "Atlanta"

    df = queries.average_delay_by_airport(loaded, 2022)
    assert list(df["airport"]) == ["JFK"]
    assert df["avg_delay"][0] == pytest.approx((75 + 40 + 0) / 3)
    assert df["flights"][0] == 3


def test_average_delay_empty_year(loaded):
    assert queries.average_delay_by_airline(loaded, 1999).empty
    assert queries.average_delay_by_airport(loaded, 1999).empty


def test_delays_by_month(loaded):
    df = queries.delays_by_month(loaded, "jfk", 2020, 2023)
    assert list(df["month"]) == ["2021-01", "2022-11", "2022-12"]
    assert list(df["avg_delay"]) == pytest.approx([90, 57.5, 0])
    assert list(df["flights"]) == [1, 2, 1]


def test_delays_by_month_ignores_arrivals(loaded):
    assert queries.delays_by_month(loaded, "FLL", 2020, 2023).empty


def test_table_counts(loaded):
    assert queries.table_counts(loaded) == {
        "Airline": 4,
        "Airport": 7,
        "Flight": 6,
        "Delay_Reason": 5,
    }


def test_split_flight_number():
    assert queries.split_flight_number("aa1") == ("AA", 1)
    assert queries.split_flight_number("B6 123") == ("B6", 123)
    assert queries.split_flight_number("77") == (None, 77)
    with pytest.raises(ValueError):
        queries.split_flight_number("DLX")
