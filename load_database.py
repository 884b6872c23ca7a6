#!/usr/bin/env python
"""Load a flight punctuality CSV file into the database."""

import argparse
import logging
import sys
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from punctuality.load_data import DATA_PATH, load_csv_to_db


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "csv_path",
        nargs="?",
        default=str(DATA_PATH),
        help=f"Path to the flights CSV (default: {DATA_PATH})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    csv_path = Path(args.csv_path)
    if not csv_path.is_file():
        print(f"Error: CSV file not found: {csv_path}", file=sys.stderr)
        return 1

    print("Flight Punctuality Data Import")
    print(f"Using CSV file: {csv_path}")
    try:
        stats = load_csv_to_db(csv_path)
    except SQLAlchemyError as e:
        logging.getLogger("flight-import").exception("Database error")
        print(f"Database error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        logging.getLogger("flight-import").exception("I/O error")
        print(f"I/O error: {e}", file=sys.stderr)
        return 1

    print("Data load complete!")
    print(f"Total rows processed: {stats.processed}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
