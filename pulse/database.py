"""
Persistence gateway: optional durable mirror of the record collection.

The RankedStore only talks to the Persistence interface:
  - load() → (records, last_updated) or None when nothing was saved yet
  - save(records, last_updated) → None, raises PersistenceError on failure

Implementations:
  - InMemoryPersistence: no durable backend; keeps the last snapshot in-process
  - SQLPersistence: key-value table via SQLAlchemy (SQLite by default)

The backend is chosen once by get_persistence() from settings and injected
into the store; nothing in the core branches on the environment.
"""

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import Settings, get_settings
from .schemas import Record

logger = logging.getLogger(__name__)

Base = declarative_base()

RECORDS_KEY = "records"
LAST_UPDATED_KEY = "last_updated"

Snapshot = Tuple[List[Record], Optional[datetime]]


class PersistenceError(Exception):
    """Raised by a Persistence backend when it cannot load or save."""


class Persistence(ABC):
    """Durable mirror of the collection. Failures surface as PersistenceError."""

    @abstractmethod
    def load(self) -> Optional[Snapshot]:
        ...

    @abstractmethod
    def save(self, records: List[Record], last_updated: Optional[datetime]) -> None:
        ...


class InMemoryPersistence(Persistence):
    """No durable backend. Holds the last saved snapshot for the process lifetime."""

    def __init__(self):
        self._snapshot: Optional[Snapshot] = None

    def load(self) -> Optional[Snapshot]:
        if self._snapshot is None:
            return None
        records, last_updated = self._snapshot
        return list(records), last_updated

    def save(self, records: List[Record], last_updated: Optional[datetime]) -> None:
        self._snapshot = (list(records), last_updated)


# ── Models ───────────────────────────────────────────────────────────────────

class KVModel(Base):
    """Opaque key → JSON value rows."""
    __tablename__ = "kv_store"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


def _records_to_json(records: List[Record]) -> str:
    return json.dumps([r.model_dump(mode="json") for r in records])


def _records_from_json(raw: str) -> List[Record]:
    """Decode persisted records, skipping entries that no longer validate."""
    records = []
    skipped = 0
    for item in json.loads(raw):
        try:
            records.append(Record.model_validate(item))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning(f"Skipped {skipped} invalid persisted records")
    return records


class SQLPersistence(Persistence):
    """Key-value mirror of the collection in a SQL database."""

    def __init__(self, database_url: Optional[str] = None):
        url = database_url or get_settings().database_url
        self.engine = create_engine(url, echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create the kv table (safe to call multiple times)."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f"create tables failed: {e}") from e

    @contextmanager
    def get_session(self) -> Session:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load(self) -> Optional[Snapshot]:
        try:
            self.create_tables()
            with self.get_session() as session:
                rows = {
                    row.key: row.value
                    for row in session.query(KVModel)
                    .filter(KVModel.key.in_([RECORDS_KEY, LAST_UPDATED_KEY]))
                    .all()
                }
        except SQLAlchemyError as e:
            raise PersistenceError(f"load failed: {e}") from e

        if RECORDS_KEY not in rows:
            return None
        try:
            records = _records_from_json(rows[RECORDS_KEY])
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"corrupt records payload: {e}") from e

        last_updated = None
        if rows.get(LAST_UPDATED_KEY):
            try:
                last_updated = datetime.fromisoformat(rows[LAST_UPDATED_KEY])
            except ValueError:
                logger.warning(f"Ignoring unparseable last_updated: {rows[LAST_UPDATED_KEY]!r}")
        return records, last_updated

    def save(self, records: List[Record], last_updated: Optional[datetime]) -> None:
        payload = {
            RECORDS_KEY: _records_to_json(records),
            LAST_UPDATED_KEY: last_updated.isoformat() if last_updated else "",
        }
        try:
            self.create_tables()
            with self.get_session() as session:
                for key, value in payload.items():
                    session.merge(KVModel(key=key, value=value))  # merge = upsert
        except SQLAlchemyError as e:
            raise PersistenceError(f"save failed: {e}") from e
        logger.debug(f"Persisted {len(records)} records")


def get_persistence(settings: Optional[Settings] = None) -> Persistence:
    """Build the configured persistence backend."""
    settings = settings or get_settings()
    backend = (settings.persistence_backend or "memory").strip().lower()
    if backend == "memory":
        return InMemoryPersistence()
    if backend in ("sqlite", "sql"):
        persistence = SQLPersistence(settings.database_url)
        try:
            persistence.create_tables()
        except PersistenceError as e:
            logger.warning(f"SQL persistence unavailable, keeping the collection in memory: {e}")
            return InMemoryPersistence()
        return persistence
    raise ValueError(f"Unknown PERSISTENCE_BACKEND '{settings.persistence_backend}'")
