from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DB_URL = f"sqlite:///{BASE_DIR / 'flights.db'}"

DB_URL = os.getenv("FLIGHTS_DB_URL", DEFAULT_DB_URL)


def make_engine(url: str = DB_URL):
    return create_engine(url, echo=False, future=True)


engine = make_engine()
# Non-autocommit: batch commits in load_data are the only durability points
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
