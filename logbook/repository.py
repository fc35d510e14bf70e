"""
Storage for approvable records.

The workflow only talks to a RecordRepository. Two backings exist: an
in-memory one (tests, scripts) and the SQLAlchemy one the API uses.
Both make `compare_and_set` atomic, which is what keeps two reviewers
from resolving the same record twice.
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from logbook.errors import InvalidTransition, NotFound

logger = logging.getLogger(__name__)


class RecordRepository(ABC):
    model = None

    @abstractmethod
    def get(self, record_id):
        """Return the record or raise NotFound."""

    @abstractmethod
    def list(self):
        """All records, newest first."""

    @abstractmethod
    def save(self, record):
        """Insert or overwrite a record and return it."""

    @abstractmethod
    def compare_and_set(self, record_id, expected_status, changes):
        """
        Apply `changes` only if the stored status still equals
        `expected_status`, else raise InvalidTransition.
        """

    def not_found(self, record_id):
        return NotFound(f"{self.model.KIND} #{record_id} does not exist")

    def _lost_race(self, record_id, expected_status, current):
        logger.warning(
            "%s #%s is %s, expected %s; transition refused",
            self.model.KIND, record_id, current, expected_status
        )
        return InvalidTransition(
            f"{self.model.KIND} #{record_id} is no longer {expected_status}"
        )


class InMemoryRecordRepository(RecordRepository):

    def __init__(self, model, records=()):
        self.model = model
        self._records = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        for record in records:
            self.save(record)

    def get(self, record_id):
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            raise self.not_found(record_id)
        return record

    def list(self):
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def save(self, record):
        with self._lock:
            if record.id is None:
                record.id = next(self._ids)
            self._records[record.id] = record
        return record

    def compare_and_set(self, record_id, expected_status, changes):
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                raise self.not_found(record_id)
            if record.status != expected_status:
                raise self._lost_race(record_id, expected_status, record.status)
            for key, value in changes.items():
                setattr(record, key, value)
        return record


class SqlRecordRepository(RecordRepository):

    def __init__(self, db: Session, model):
        self.db = db
        self.model = model

    def get(self, record_id):
        record = self.db.get(self.model, record_id)
        if record is None:
            raise self.not_found(record_id)
        return record

    def list(self):
        return (
            self.db.query(self.model)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .all()
        )

    def save(self, record):
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def compare_and_set(self, record_id, expected_status, changes):
        # single UPDATE ... WHERE status = expected, so the database
        # decides the winner when two requests race
        try:
            rows = self.db.query(self.model).filter(
                self.model.id == record_id,
                self.model.status == expected_status
            ).update(changes, synchronize_session=False)
            if rows == 1:
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        if rows != 1:
            self.db.rollback()
            # read the status in a fresh transaction
            current = self.db.query(self.model.status).filter(
                self.model.id == record_id
            ).scalar()
            if current is None:
                raise self.not_found(record_id)
            raise self._lost_race(record_id, expected_status, current)

        record = self.db.get(self.model, record_id)
        self.db.refresh(record)
        return record
