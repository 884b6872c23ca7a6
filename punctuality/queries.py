import logging
from datetime import date
from typing import Optional, Union

import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from .delays import delay_minutes
from .models import Airline, Airport, DelayCause, DelayReason, Flight

logger = logging.getLogger("flight-queries")

SEARCH_COLUMNS = [
    "flight_id",
    "date",
    "airline_code",
    "airline_name",
    "flight_number",
    "origin",
    "origin_city",
    "destination",
    "destination_city",
    "scheduled_departure",
    "actual_departure",
    "scheduled_arrival",
    "actual_arrival",
    "delay_minutes",
]


def _date_key(value: Union[date, str]) -> str:
    if isinstance(value, date):
        return value.strftime("%Y%m%d")
    return str(value).replace("-", "")


def split_flight_number(value: Union[int, str]):
    """Split "AA1" into ("AA", 1); a bare number has no airline part."""
    text = str(value).strip().upper()
    if text.isdecimal():
        return None, int(text)
    airline, number = text[:2], text[2:].strip()
    if not number.isdecimal():
        raise ValueError(f"Invalid flight number: {value!r}")
    return airline, int(number)


def _as_cause(value: Union[DelayCause, str]) -> DelayCause:
    if isinstance(value, DelayCause):
        return value
    try:
        return DelayCause[str(value).strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown delay reason: {value!r}") from None


def _with_delay(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        df["delay_minutes"] = pd.Series(dtype="int64")
        return df
    df["delay_minutes"] = [
        delay_minutes(s, a) for s, a in zip(df["scheduled_arrival"], df["actual_arrival"])
    ]
    return df


def search_flights(
    session: Session,
    airline: Optional[str] = None,
    flight_number: Optional[Union[int, str]] = None,
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    start_date: Optional[Union[date, str]] = None,
    end_date: Optional[Union[date, str]] = None,
    min_delay: Optional[int] = None,
    delay_reason: Optional[Union[DelayCause, str]] = None,
    limit: Optional[int] = None,
) -> pd.DataFrame:
    """Return flights matching every given filter, with their arrival delay."""
    origin_airport = aliased(Airport)
    dest_airport = aliased(Airport)

    stmt = (
        select(
            Flight.flight_id,
            Flight.date,
            Flight.airline_code,
            Airline.name.label("airline_name"),
            Flight.flight_number,
            Flight.flight_origin.label("origin"),
            origin_airport.name.label("origin_city"),
            Flight.flight_destination.label("destination"),
            dest_airport.name.label("destination_city"),
            Flight.scheduled_departure,
            Flight.actual_departure,
            Flight.scheduled_arrival,
            Flight.actual_arrival,
        )
        .join(Airline, Flight.airline_code == Airline.iata_code)
        .join(origin_airport, Flight.flight_origin == origin_airport.iata_code)
        .join(dest_airport, Flight.flight_destination == dest_airport.iata_code)
        .order_by(Flight.date, Flight.airline_code, Flight.flight_number, Flight.flight_id)
    )

    if airline:
        stmt = stmt.where(Flight.airline_code == airline.strip().upper())
    if flight_number not in (None, ""):
        number_airline, number = split_flight_number(flight_number)
        stmt = stmt.where(Flight.flight_number == number)
        if number_airline:
            stmt = stmt.where(Flight.airline_code == number_airline)
    if origin:
        stmt = stmt.where(Flight.flight_origin == origin.strip().upper())
    if destination:
        stmt = stmt.where(Flight.flight_destination == destination.strip().upper())
    if start_date:
        stmt = stmt.where(Flight.date >= _date_key(start_date))
    if end_date:
        stmt = stmt.where(Flight.date <= _date_key(end_date))
    if delay_reason:
        cause = _as_cause(delay_reason)
        stmt = stmt.where(
            Flight.flight_id.in_(
                select(DelayReason.flight_id).where(DelayReason.reason == cause)
            )
        )
    # min_delay is computed from the arrival times, so the limit has to wait for it
    if limit and not min_delay:
        stmt = stmt.limit(limit)

    rows = session.execute(stmt).mappings().all()
    df = _with_delay(pd.DataFrame([dict(r) for r in rows], columns=SEARCH_COLUMNS[:-1]))

    if min_delay:
        df = df[df["delay_minutes"] >= min_delay]
        if limit:
            df = df.head(limit)

    logger.debug("search_flights matched %d flights", len(df))
    return df.reset_index(drop=True)


def get_delay_reasons(session: Session, flight_id: int) -> pd.DataFrame:
    stmt = (
        select(DelayReason)
        .where(DelayReason.flight_id == flight_id)
        .order_by(DelayReason.delay_length.desc())
    )
    data = [
        {
            "reason": r.reason.name,
            "label": r.reason.label,
            "delay_length": r.delay_length,
        }
        for r in session.execute(stmt).scalars().all()
    ]
    return pd.DataFrame(data, columns=["reason", "label", "delay_length"])


def _known_arrivals(session: Session, stmt) -> pd.DataFrame:
    stmt = stmt.where(Flight.scheduled_arrival != 0, Flight.actual_arrival != 0)
    rows = session.execute(stmt).mappings().all()
    return _with_delay(pd.DataFrame([dict(r) for r in rows]))


def average_delay_by_airline(session: Session, year: int) -> pd.DataFrame:
    """Mean arrival delay per airline over flights of the given year."""
    stmt = (
        select(
            Flight.airline_code,
            Airline.name.label("airline_name"),
            Flight.scheduled_arrival,
            Flight.actual_arrival,
        )
        .join(Airline, Flight.airline_code == Airline.iata_code)
        .where(Flight.date.like(f"{year}%"))
    )
    df = _known_arrivals(session, stmt)
    if df.empty:
        return pd.DataFrame(columns=["airline_code", "airline_name", "avg_delay", "flights"])

    return (
        df.groupby(["airline_code", "airline_name"], as_index=False)
        .agg(avg_delay=("delay_minutes", "mean"), flights=("delay_minutes", "size"))
        .sort_values("avg_delay", ascending=False)
        .reset_index(drop=True)
    )


def average_delay_by_airport(session: Session, year: int) -> pd.DataFrame:
    """Mean arrival delay per departure airport over flights of the given year."""
    stmt = (
        select(
            Flight.flight_origin.label("airport"),
            Airport.name.label("airport_name"),
            Flight.scheduled_arrival,
            Flight.actual_arrival,
        )
        .join(Airport, Flight.flight_origin == Airport.iata_code)
        .where(Flight.date.like(f"{year}%"))
    )
    df = _known_arrivals(session, stmt)
    if df.empty:
        return pd.DataFrame(columns=["airport", "airport_name", "avg_delay", "flights"])

    return (
        df.groupby(["airport", "airport_name"], as_index=False)
        .agg(avg_delay=("delay_minutes", "mean"), flights=("delay_minutes", "size"))
        .sort_values("avg_delay", ascending=False)
        .reset_index(drop=True)
    )


def delays_by_month(
    session: Session, airport: str, start_year: int, end_year: int
) -> pd.DataFrame:
    """Mean arrival delay per YYYY-MM for flights departing an airport."""
    stmt = select(
        Flight.date, Flight.scheduled_arrival, Flight.actual_arrival
    ).where(
        Flight.flight_origin == airport.strip().upper(),
        Flight.date >= f"{start_year}0101",
        Flight.date <= f"{end_year}1231",
    )
    df = _known_arrivals(session, stmt)
    if df.empty:
        return pd.DataFrame(columns=["month", "avg_delay", "flights"])

    df["month"] = df["date"].str[:4] + "-" + df["date"].str[4:6]
    return (
        df.groupby("month", as_index=False)
        .agg(avg_delay=("delay_minutes", "mean"), flights=("delay_minutes", "size"))
        .sort_values("month")
        .reset_index(drop=True)
    )


def table_counts(session: Session) -> dict:
    return {
        model.__tablename__: session.execute(select(func.count()).select_from(model)).scalar_one()
        for model in (Airline, Airport, Flight, DelayReason)
    }
