import enum
import datetime
from typing import Optional

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .db import Base
from .delays import delay_minutes


class DelayCause(enum.Enum):
    """Fixed set of causes a flight's arrival delay is attributed to."""

    CARRIER = "Airline"
    WEATHER = "Weather"
    NAS = "Air Traffic Control"
    SECURITY = "Security"
    LATE_AIRCRAFT = "Late Aircraft"

    @property
    def label(self) -> str:
        return self.value

    @property
    def column(self) -> str:
        """Name of the CSV column carrying this cause's minutes."""
        return f"DELAY_DUE_{self.name}"


class Airport(Base):
    __tablename__ = "Airport"

    iata_code = Column(String(3), primary_key=True)
    name = Column(Text)

    def __repr__(self) -> str:
        return f"<Airport(iata_code={self.iata_code}, name={self.name})>"


class Airline(Base):
    __tablename__ = "Airline"

    iata_code = Column(String(2), primary_key=True)
    name = Column(Text)

    flights = relationship("Flight", back_populates="airline")

    def __repr__(self) -> str:
        return f"<Airline(iata_code={self.iata_code}, name={self.name})>"


class Flight(Base):
    __tablename__ = "Flight"
    # Secondary indices live in schema.create_indices, built after the bulk load
    __table_args__ = {"sqlite_autoincrement": True}

    flight_id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(String(8))
    airline_code = Column(String(2), ForeignKey("Airline.iata_code"))
    flight_number = Column(Integer)
    flight_origin = Column(String(3), ForeignKey("Airport.iata_code"))
    flight_destination = Column(String(3), ForeignKey("Airport.iata_code"))

    # HHMM-encoded, 0 = unknown
    scheduled_departure = Column(Integer)
    actual_departure = Column(Integer)
    scheduled_arrival = Column(Integer)
    actual_arrival = Column(Integer)

    airline = relationship("Airline", back_populates="flights")
    origin = relationship("Airport", foreign_keys=[flight_origin])
    destination = relationship("Airport", foreign_keys=[flight_destination])
    delay_reasons = relationship("DelayReason", back_populates="flight")

    @property
    def delay_minutes(self) -> int:
        return delay_minutes(self.scheduled_arrival or 0, self.actual_arrival or 0)

    @property
    def full_flight_number(self) -> str:
        return f"{self.airline_code}{self.flight_number}"

    @property
    def flight_date(self) -> Optional[datetime.date]:
        return parse_flight_date(self.date)

    def __repr__(self) -> str:
        return (
            f"<Flight(flight_id={self.flight_id}, {self.full_flight_number} "
            f"{self.flight_origin}->{self.flight_destination} on {self.date})>"
        )


class DelayReason(Base):
    __tablename__ = "Delay_Reason"
    __table_args__ = {"sqlite_autoincrement": True}

    delay_id = Column(Integer, primary_key=True, autoincrement=True)
    flight_id = Column(Integer, ForeignKey("Flight.flight_id"))
    reason = Column(Enum(DelayCause, native_enum=False, length=16))
    delay_length = Column(Integer)

    flight = relationship("Flight", back_populates="delay_reasons")

    def __repr__(self) -> str:
        return (
            f"<DelayReason(flight_id={self.flight_id}, reason={self.reason.name}, "
            f"delay_length={self.delay_length})>"
        )


def parse_flight_date(value) -> Optional[datetime.date]:
    """Parse the stored YYYYMMDD string, None when it is not a valid date."""
    if not value or len(value) != 8:
        return None
    try:
        return datetime.datetime.strptime(value, "%Y%m%d").date()
    except ValueError:
        return None


def format_date(value) -> str:
    parsed = parse_flight_date(value)
    return parsed.strftime("%d/%m/%Y") if parsed else "N/A"
