"""SQLAlchemy database setup."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from health_records.config import settings
from health_records.services.record_store import RecordStore
from health_records.services.storage import SqlKeyValueStore

_connect_args = (
    {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
)

engine = create_engine(settings.database_url, echo=settings.debug, connect_args=_connect_args)
session_factory = sessionmaker(engine, class_=Session, expire_on_commit=False)


def get_session() -> Iterator[Session]:
    """Dependency for FastAPI routes to get a database session."""
    with session_factory() as session:
        yield session


def get_record_store(session: Session = Depends(get_session)) -> RecordStore:
    """Dependency for FastAPI routes to get a record store bound to the request session."""
    return RecordStore(SqlKeyValueStore(session))
