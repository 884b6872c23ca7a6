import pytest
from sqlalchemy.orm import sessionmaker

from punctuality.db import make_engine
from punctuality.schema import create_schema

HEADER = (
    "FL_DATE,AIRLINE,AIRLINE_CODE,FL_NUMBER,ORIGIN,ORIGIN_CITY,DEST,DEST_CITY,"
    "CRS_DEP_TIME,DEP_TIME,CRS_ARR_TIME,ARR_TIME,CANCELLED,"
    "DELAY_DUE_CARRIER,DELAY_DUE_WEATHER,DELAY_DUE_NAS,DELAY_DUE_SECURITY,"
    "DELAY_DUE_LATE_AIRCRAFT"
)

# Three flights, distinct airlines and airports, two with a single positive delay cause
SAMPLE_ROWS = [
    "2021-01-01,Delta Air Lines,DL,1234,ATL,Atlanta,LAX,Los Angeles,900,910,1200,1210,0,10,0,0,0,0",
    "2021-01-02,American Airlines,AA,4321,JFK,New York,SFO,San Francisco,1000,1115,1400,1530,0.0,,0,45.4,0,0",
    "2021-01-03,United Airlines,UA,5678,ORD,Chicago,DEN,Denver,1300,1300,1500,1455,0,0,0,0,0,0",
]


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'flights.db'}")
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def write_csv(tmp_path):
    """Write a CSV with the standard header (or a custom one) and return its path."""

    def _write(rows, header=HEADER, name="flights.csv"):
        path = tmp_path / name
        lines = [header] + list(rows) if header is not None else list(rows)
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return path

    return _write
