"""
Tolerant parsing of raw flight CSV lines and fields.

The input files come from external exports with inconsistent quoting and
number formats, so nothing here raises on bad data: lines are split on a
best-effort basis and unparseable fields fall back to "unknown".
"""
import csv
import logging
import math
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger("flight-import")

REQUIRED_COLUMNS = ("FL_DATE", "AIRLINE_CODE", "FL_NUMBER", "ORIGIN", "DEST")
NOT_CANCELLED = ("0", "0.0")


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into fields.

    Quoted fields may hold commas and doubled quotes. The reader runs
    non-strict, so unbalanced quotes never raise; the rest of the line is
    simply read as quoted.
    """
    return next(csv.reader([line]), [])


def map_column_indices(headers: Sequence[str]) -> Dict[str, int]:
    """Map each trimmed header name to its zero-based position."""
    return {name.strip(): i for i, name in enumerate(headers)}


def min_required_columns(column_map: Dict[str, int]) -> int:
    """Number of fields a row needs to reach every required column present in the header."""
    indices = [column_map[c] for c in REQUIRED_COLUMNS if c in column_map]
    return max(indices, default=0) + 1


def column_value(row: Sequence[str], column_map: Dict[str, int], name: str) -> str:
    """Trimmed value of a column, or "" when the column is absent from the header or row."""
    index = column_map.get(name)
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def is_cancelled(value: str) -> bool:
    value = value.strip()
    return bool(value) and value not in NOT_CANCELLED


def parse_time_value(value: str) -> int:
    """
    Parse a time of day into HHMM form.

    Accepts plain integers (fraction dropped) and HH:MM notation.
    Anything else is treated as unknown and yields 0.
    """
    value = value.strip()
    if not value:
        return 0

    if "." in value:
        value = value[: value.index(".")]

    try:
        parsed = int(value)
    except ValueError:
        parsed = None
    if parsed is not None:
        if parsed >= 0:
            return parsed
        logger.warning("Negative time value: %r", value)
        return 0

    if ":" in value:
        parts = value.split(":")
        if len(parts) >= 2 and parts[0].isdecimal() and parts[1].isdecimal():
            return int(parts[0]) * 100 + int(parts[1])

    logger.warning("Invalid time format: %r", value)
    return 0


def parse_flight_number(value: str) -> Optional[int]:
    value = value.strip()
    if not value.isdecimal():
        return None
    return int(value)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def parse_delay_minutes(value: str, reason: str = "") -> Optional[int]:
    """
    Whole minutes of a delay cause, or None when nothing should be stored.

    Empty, zero, negative and sub-half-minute values give None, as do
    values that are not numbers (logged).
    """
    value = value.strip()
    if not value:
        return None

    try:
        minutes = float(value)
    except ValueError:
        logger.warning("Invalid delay value for %s: %r", reason, value)
        return None

    if not math.isfinite(minutes):
        logger.warning("Invalid delay value for %s: %r", reason, value)
        return None

    rounded = round_half_up(minutes)
    return rounded if rounded > 0 else None
