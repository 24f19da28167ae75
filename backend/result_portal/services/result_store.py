"""
Result Store - persistence for result records under the natural-key rule.

The natural key (registration_number, class, batch, subject, exam_date)
is unique. Writing a record whose key already exists replaces the stored
row, so uploading the same sheet twice never produces duplicates.

Every write runs in a single transaction: a batch is applied completely
or not at all, and readers never see half of an upload.
"""

import math
import time
from typing import Dict, Iterable, List

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from result_portal.exceptions import StoreError
from result_portal.logging_config import get_logger, log_with_context
from result_portal.models.result import NATURAL_KEY_COLUMNS, Result, UNIQUE_INDEX_NAME
from result_portal.schemas import ResultRecord

logger = get_logger("store")

# bound parameters per statement on SQLite builds older than 3.32
SQLITE_MAX_VARIABLES = 999
DEFAULT_CHUNK_SIZE = SQLITE_MAX_VARIABLES // len(Result.__table__.columns)
_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def _row_values(record: ResultRecord) -> dict:
    return {
        "registration_number": record.registration_number,
        "student_name": record.student_name,
        "class": record.class_name,
        "batch": record.batch,
        "subject": record.subject,
        "marks": record.marks,
        "grade": record.grade,
        "exam_date": record.exam_date,
    }


def to_record(row: Result) -> ResultRecord:
    return ResultRecord(
        registration_number=row.registration_number,
        student_name=row.student_name,
        class_name=row.class_name,
        batch=row.batch,
        subject=row.subject,
        marks=row.marks,
        grade=row.grade,
        exam_date=row.exam_date,
    )


def collapse_batch(records: Iterable[ResultRecord]) -> List[ResultRecord]:
    """
    Keep one record per natural key, the last one seen winning.

    ON CONFLICT DO UPDATE cannot touch the same row twice in one
    statement, so repeated keys inside a batch are resolved here.
    """
    latest: Dict[tuple, ResultRecord] = {}
    for record in records:
        latest[record.natural_key] = record
    return list(latest.values())


class ResultStore:
    """Result table access built on an injected session factory."""

    def __init__(self, session_factory: sessionmaker, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.session_factory = session_factory
        self.chunk_size = chunk_size

    def _upsert_statement(self, session: Session, rows: List[dict]):
        dialect = session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise StoreError(f"Upsert is not supported on the '{dialect}' database")

        stmt = insert(Result.__table__).values(rows)
        replaced = {
            name: stmt.excluded[name]
            for name in ("student_name", "marks", "grade")
        }
        return stmt.on_conflict_do_update(index_elements=list(NATURAL_KEY_COLUMNS), set_=replaced)

    def upsert_batch(self, records: Iterable[ResultRecord]) -> int:
        """
        Insert or replace a batch of records in one transaction.

        Returns:
            Number of distinct natural keys written

        Raises:
            StoreError: if any statement fails; nothing is applied
        """
        start_time = time.time()
        unique_records = collapse_batch(records)
        if not unique_records:
            return 0

        rows = [_row_values(record) for record in unique_records]
        try:
            with self.session_factory() as session, session.begin():
                for offset in range(0, len(rows), self.chunk_size):
                    chunk = rows[offset:offset + self.chunk_size]
                    session.execute(self._upsert_statement(session, chunk))
        except SQLAlchemyError as e:
            log_with_context(logger, "ERROR", "Upsert batch rolled back: {}".format(e),
                             extra_data={"records": len(rows)})
            raise StoreError(f"Failed to save results: {e.__class__.__name__}") from e

        duration_ms = (time.time() - start_time) * 1000
        log_with_context(logger, "INFO", "Upserted {} result(s)".format(len(rows)),
                         extra_data={"duration_ms": round(duration_ms, 2),
                                     "chunks": math.ceil(len(rows) / self.chunk_size)})
        return len(rows)

    def query(self, registration_number: str, class_name: str, batch: str) -> List[ResultRecord]:
        """Exact-match lookup on registration number, class and batch."""
        stmt = (
            select(Result)
            .where(
                Result.registration_number == registration_number,
                Result.class_name == class_name,
                Result.batch == batch,
            )
            .order_by(Result.subject, Result.exam_date)
        )
        with self.session_factory() as session:
            rows = session.scalars(stmt).all()
            return [to_record(row) for row in rows]

    def count(self) -> int:
        with self.session_factory() as session:
            return session.scalar(select(func.count()).select_from(Result))

    def clear_all(self) -> int:
        """Delete every stored result. Returns the number of rows removed."""
        try:
            with self.session_factory() as session, session.begin():
                deleted = session.execute(delete(Result.__table__)).rowcount
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to clear results: {e.__class__.__name__}") from e

        log_with_context(logger, "WARNING", "Cleared all results",
                         extra_data={"deleted": deleted})
        return deleted

    def deduplicate(self) -> int:
        """
        Repair tables written before the natural key was enforced.

        For each natural-key group only the row with the lowest id (the
        earliest upload) survives. The unique index is then created if it
        is missing, so later writes upsert instead of appending. Running
        it again removes nothing.

        Returns:
            Number of duplicate rows removed
        """
        grouped = Result.__table__.alias("grouped")
        keepers = (
            select(func.min(grouped.c.id))
            .group_by(*(grouped.c[name] for name in NATURAL_KEY_COLUMNS))
        )
        unique_index = next(
            index for index in Result.__table__.indexes if index.name == UNIQUE_INDEX_NAME
        )

        try:
            with self.session_factory() as session, session.begin():
                removed = session.execute(
                    delete(Result.__table__).where(Result.__table__.c.id.not_in(keepers))
                ).rowcount
                unique_index.create(session.connection(), checkfirst=True)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to deduplicate results: {e.__class__.__name__}") from e

        log_with_context(logger, "INFO", "Removed {} duplicate result(s)".format(removed),
                         extra_data={"index": UNIQUE_INDEX_NAME})
        return removed
