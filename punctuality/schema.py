import logging

from sqlalchemy import text

from .db import Base
from . import models  # noqa: F401  registers the tables on Base.metadata

logger = logging.getLogger("flight-import.schema")

# Built after the bulk load so inserts don't pay for index maintenance
INDEX_DDL = (
    'CREATE INDEX idx_flight_date ON "Flight" (date)',
    'CREATE INDEX idx_flight_origin ON "Flight" (flight_origin)',
    'CREATE INDEX idx_flight_dest ON "Flight" (flight_destination)',
    'CREATE INDEX idx_flight_airline ON "Flight" (airline_code)',
    'CREATE INDEX idx_flight_number ON "Flight" (flight_number)',
    'CREATE INDEX idx_delay_reason_flight ON "Delay_Reason" (flight_id)',
    'CREATE INDEX idx_delay_reason ON "Delay_Reason" (reason)',
)


def create_schema(engine):
    """Drop and recreate the four tables. Every import run starts from an empty schema."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema created.")


def create_indices(engine):
    with engine.begin() as conn:
        for ddl in INDEX_DDL:
            conn.execute(text(ddl))
    logger.info("Database indices created.")
