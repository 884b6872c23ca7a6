"""
CSV-to-relational import of flight punctuality records.

Each data line goes through parse -> validate -> dimension upsert -> flight
insert -> delay reason inserts, and is then counted towards the current
batch. Data problems skip the row and the import carries on; store and
I/O errors abort the whole run.
"""
import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .db import SessionLocal, engine as default_engine
from .models import Airline, Airport, DelayCause, DelayReason, Flight
from .parsing import (
    column_value,
    is_cancelled,
    map_column_indices,
    min_required_columns,
    parse_csv_line,
    parse_delay_minutes,
    parse_flight_number,
    parse_time_value,
)
from .schema import create_indices, create_schema

logger = logging.getLogger("flight-import")

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_PATH = Path(os.getenv("FLIGHTS_CSV_PATH", BASE_DIR / "data" / "flights.csv"))
BATCH_SIZE = int(os.getenv("FLIGHTS_BATCH_SIZE", "1000"))
PROGRESS_INTERVAL = int(os.getenv("FLIGHTS_PROGRESS_INTERVAL", "10000"))


class EmptyCsvError(ValueError):
    """The input has no header line."""


class RowSkipped(ValueError):
    """A data row was rejected; the import continues with the next line."""

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


@dataclass
class FlightRecord:
    date: str
    airline_code: str
    airline_name: str
    flight_number: str
    origin: str
    origin_city: str
    destination: str
    destination_city: str
    scheduled_departure: int
    actual_departure: int
    scheduled_arrival: int
    actual_arrival: int
    delays: Dict[DelayCause, str] = field(default_factory=dict)


@dataclass
class ImportStats:
    processed: int = 0
    commits: int = 0
    skipped: Counter = field(default_factory=Counter)

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())


def normalize_row(row, column_map) -> FlightRecord:
    """
    Extract and convert the fields of one parsed data row.

    Raises RowSkipped for rows missing an airline, origin or destination
    code and for cancelled flights. The flight number is left as text;
    it is checked only once the dimension rows are in place.
    """

    def value(name):
        return column_value(row, column_map, name)

    record = FlightRecord(
        date=value("FL_DATE").replace("-", ""),
        airline_code=value("AIRLINE_CODE"),
        airline_name=value("AIRLINE"),
        flight_number=value("FL_NUMBER"),
        origin=value("ORIGIN"),
        origin_city=value("ORIGIN_CITY"),
        destination=value("DEST"),
        destination_city=value("DEST_CITY"),
        scheduled_departure=parse_time_value(value("CRS_DEP_TIME")),
        actual_departure=parse_time_value(value("DEP_TIME")),
        scheduled_arrival=parse_time_value(value("CRS_ARR_TIME")),
        actual_arrival=parse_time_value(value("ARR_TIME")),
        delays={cause: value(cause.column) for cause in DelayCause},
    )

    if not record.airline_code or not record.origin or not record.destination:
        raise RowSkipped("missing_essential_data")

    if is_cancelled(value("CANCELLED")):
        raise RowSkipped("cancelled")

    return record


class BatchCommitter:
    """Commits the session once every `size` recorded rows."""

    def __init__(self, session: Session, size: int = BATCH_SIZE):
        if size < 1:
            raise ValueError(f"batch size must be positive, got {size}")
        self.session = session
        self.size = size
        self.pending = 0
        self.commits = 0

    def record(self) -> bool:
        """Count one processed row; returns True when this row closed a batch."""
        self.pending += 1
        if self.pending >= self.size:
            self.commit()
            return True
        return False

    def flush(self):
        """Commit the final partial batch, if any."""
        if self.pending > 0:
            self.commit()

    def commit(self):
        self.session.commit()
        self.commits += 1
        self.pending = 0


class CsvImporter:
    """
    Loads one CSV file through the given session.

    The session is owned by the caller, which is expected to close it on
    every exit path. Airline and airport codes already sent in this run
    are remembered so the insert-if-absent statement is issued once per
    code; the store's conflict handling stays the source of truth.
    """

    def __init__(
        self,
        session: Session,
        batch_size: int = BATCH_SIZE,
        progress_interval: int = PROGRESS_INTERVAL,
    ):
        self.session = session
        self.batch_size = batch_size
        self.progress_interval = progress_interval
        self.stats = ImportStats()
        self._airline_codes = set()
        self._airport_codes = set()

    def import_csv(self, csv_path) -> ImportStats:
        self.stats = ImportStats()
        batcher = BatchCommitter(self.session, self.batch_size)

        try:
            with open(csv_path, encoding="utf-8-sig") as f:
                header = f.readline()
                if not header:
                    raise EmptyCsvError(f"CSV file is empty: {csv_path}")

                column_map = map_column_indices(parse_csv_line(header.rstrip("\r\n")))
                required = min_required_columns(column_map)

                for line_no, line in enumerate(f, start=1):
                    if self._import_line(line.rstrip("\r\n"), line_no, column_map, required):
                        batcher.record()
                        self.stats.commits = batcher.commits
                        if self.stats.processed % self.progress_interval == 0:
                            logger.info("Processed %d rows", self.stats.processed)

                batcher.flush()
                self.stats.commits = batcher.commits
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            "Import completed. Processed %d rows, skipped %d, %d commits.",
            self.stats.processed,
            self.stats.total_skipped,
            self.stats.commits,
        )
        return self.stats

    def _import_line(self, line, line_no, column_map, required) -> bool:
        """Run one line through the pipeline; False when the row was skipped."""
        try:
            self.load_row(parse_csv_line(line), column_map, required)
        except RowSkipped as e:
            self.stats.skipped[e.reason] += 1
            logger.info("Skipping row %d: %s", line_no, e)
            return False
        except (SQLAlchemyError, OSError):
            raise
        except Exception:
            self.stats.skipped["error"] += 1
            logger.exception("Error processing row %d", line_no)
            return False

        self.stats.processed += 1
        return True

    def load_row(self, row, column_map, required: Optional[int] = None) -> int:
        """Validate and store one parsed row, returning the new flight_id."""
        if required is None:
            required = min_required_columns(column_map)
        if len(row) < required:
            raise RowSkipped("insufficient_columns", f"{len(row)} < {required}")

        record = normalize_row(row, column_map)

        self.upsert_airline(record.airline_code, record.airline_name)
        self.upsert_airport(record.origin, record.origin_city)
        self.upsert_airport(record.destination, record.destination_city)

        # Dimension rows above stay pending in the transaction even if this fails
        flight_number = parse_flight_number(record.flight_number)
        if flight_number is None:
            raise RowSkipped("invalid_flight_number", repr(record.flight_number))

        flight_id = self.insert_flight(record, flight_number)
        self.insert_delay_reasons(flight_id, record.delays)
        return flight_id

    def upsert_airline(self, code: str, name: str):
        if code in self._airline_codes:
            return
        self._insert_if_absent(Airline, code, name)
        self._airline_codes.add(code)

    def upsert_airport(self, code: str, name: str):
        if code in self._airport_codes:
            return
        self._insert_if_absent(Airport, code, name)
        self._airport_codes.add(code)

    def _insert_if_absent(self, model, code: str, name: str):
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            stmt = sqlite.insert(model.__table__).on_conflict_do_nothing(index_elements=["iata_code"])
        elif dialect == "postgresql":
            stmt = postgresql.insert(model.__table__).on_conflict_do_nothing(index_elements=["iata_code"])
        else:
            exists = self.session.execute(
                select(model.iata_code).where(model.iata_code == code)
            ).first()
            if exists:
                return
            stmt = insert(model.__table__)
        self.session.execute(stmt.values(iata_code=code, name=name))

    def insert_flight(self, record: FlightRecord, flight_number: int) -> int:
        result = self.session.execute(
            insert(Flight.__table__).values(
                date=record.date,
                airline_code=record.airline_code,
                flight_number=flight_number,
                flight_origin=record.origin,
                flight_destination=record.destination,
                scheduled_departure=record.scheduled_departure,
                actual_departure=record.actual_departure,
                scheduled_arrival=record.scheduled_arrival,
                actual_arrival=record.actual_arrival,
            )
        )
        return result.inserted_primary_key[0]

    def insert_delay_reasons(self, flight_id: int, delays: Dict[DelayCause, str]) -> int:
        rows = []
        for cause, raw in delays.items():
            minutes = parse_delay_minutes(raw, cause.name)
            if minutes is not None:
                rows.append({"flight_id": flight_id, "reason": cause, "delay_length": minutes})

        if rows:
            self.session.execute(insert(DelayReason.__table__), rows)
        return len(rows)


def load_csv_to_db(
    csv_path: Path = DATA_PATH,
    engine=None,
    batch_size: int = BATCH_SIZE,
) -> ImportStats:
    """Recreate the schema, import the CSV, then build the indices."""
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    if engine is None:
        engine = default_engine
        session_factory = SessionLocal
    else:
        session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    logger.info("Loading data from %s ...", csv_path)
    create_schema(engine)

    with session_factory() as session:
        stats = CsvImporter(session, batch_size=batch_size).import_csv(csv_path)

    create_indices(engine)
    return stats


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    load_csv_to_db()
