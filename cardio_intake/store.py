"""
Relational store for canonical patient records.

Records are written once per upload in a single transaction and never
updated; the only removal path is clearing the whole dataset.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

import sqlalchemy
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .errors import PersistenceError
from .normalize import PatientRecord

logger = logging.getLogger(__name__)

metadata = sqlalchemy.MetaData()

PatientRecords = sqlalchemy.Table(
    "patient_records",
    metadata,
    sqlalchemy.Column("id", sqlalchemy.Integer, primary_key=True, autoincrement=True),
    sqlalchemy.Column("patient_id", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("name", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("age", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("gender", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("resting_hr", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("systolic_bp", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("diastolic_bp", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("st_depression", sqlalchemy.Float, nullable=False),
    sqlalchemy.Column("st_slope", sqlalchemy.String, nullable=False),
    sqlalchemy.Column("qrs_duration", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("pr_interval", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("mets_achieved", sqlalchemy.Float, nullable=False),
    sqlalchemy.Column("max_heart_rate", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("exercise_duration", sqlalchemy.Integer, nullable=False),
    sqlalchemy.Column("angina", sqlalchemy.Boolean, nullable=False),
    sqlalchemy.Column("created_at", sqlalchemy.DateTime(timezone=True), nullable=False),
)

StoredRecord = Dict[str, Any]


def _as_dict(row: RowMapping) -> StoredRecord:
    return dict(row)


class RecordStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecordStore":
        return cls(sqlalchemy.create_engine(settings.database_url))

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def insert_batch(self, records: Sequence[PatientRecord]) -> List[StoredRecord]:
        """
        Insert all records in one transaction and return the stored rows in
        input order. On any database error nothing is committed.
        """
        if not records:
            return []

        created_at = datetime.now(timezone.utc)
        rows = [{**record.as_row(), "created_at": created_at} for record in records]
        stmt = sqlalchemy.insert(PatientRecords).returning(
            *PatientRecords.c, sort_by_parameter_order=True
        )
        try:
            with self.engine.begin() as conn:
                inserted = [_as_dict(r) for r in conn.execute(stmt, rows).mappings()]
        except SQLAlchemyError as e:
            logger.error("batch insert of %d records failed: %s", len(rows), e)
            raise PersistenceError(f"failed to persist {len(rows)} records") from e

        logger.info("persisted %d patient records", len(inserted))
        return inserted

    def list_records(self) -> List[StoredRecord]:
        """All records, newest upload first, sheet order within an upload."""
        stmt = sqlalchemy.select(PatientRecords).order_by(
            PatientRecords.c.created_at.desc(), PatientRecords.c.id.asc()
        )
        try:
            with self.engine.connect() as conn:
                return [_as_dict(r) for r in conn.execute(stmt).mappings()]
        except SQLAlchemyError as e:
            raise PersistenceError("failed to fetch records") from e

    def clear(self) -> int:
        try:
            with self.engine.begin() as conn:
                deleted = conn.execute(sqlalchemy.delete(PatientRecords)).rowcount
        except SQLAlchemyError as e:
            raise PersistenceError("failed to clear records") from e

        logger.info("cleared %d patient records", deleted)
        return deleted
