"""
Duplicate Repair Script - cleans legacy duplicate result rows.

Keeps the earliest row of every (registration_number, class, batch,
subject, exam_date) group and then creates the unique index, so later
uploads replace rows instead of appending. Safe to run repeatedly.

Usage:
    python fix_duplicates.py                                  # Uses DATABASE_URL
    DATABASE_URL=postgresql://... python fix_duplicates.py
"""

import sys

from result_portal.database import DATABASE_URL, SessionLocal, create_tables
from result_portal.exceptions import StoreError
from result_portal.logging_config import setup_logging
from result_portal.services.result_store import ResultStore


def main():
    setup_logging()

    if DATABASE_URL.startswith("sqlite"):
        create_tables()

    store = ResultStore(SessionLocal)
    print("Cleaning up duplicates...")
    try:
        removed = store.deduplicate()
    except StoreError as e:
        print(f"Error during cleanup: {e.message}")
        sys.exit(1)

    print(f"Duplicates removed: {removed}")
    print("Unique index is in place.")


if __name__ == "__main__":
    main()
