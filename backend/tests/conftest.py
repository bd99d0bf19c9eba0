"""Test fixtures and configuration."""

from __future__ import annotations

import datetime
from collections.abc import AsyncIterator, Iterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from health_records.database import get_session
from health_records.main import app
from health_records.models.orm import Base
from health_records.models.schemas import Patient
from health_records.services.record_store import RecordStore
from health_records.services.storage import InMemoryKeyValueStore, SqlKeyValueStore

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
test_session_factory = sessionmaker(test_engine, class_=Session, expire_on_commit=False)


def override_get_session() -> Iterator[Session]:
    with test_session_factory() as session:
        yield session


app.dependency_overrides[get_session] = override_get_session


@pytest.fixture(autouse=True)
def setup_database() -> Iterator[None]:
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv: InMemoryKeyValueStore) -> RecordStore:
    """Record store over an in-memory key-value store (no database needed)."""
    return RecordStore(kv, cascade_alert_delete=False)


@pytest.fixture
def db_store() -> Iterator[RecordStore]:
    """Record store on the test database, shared with the API client."""
    with test_session_factory() as session:
        yield RecordStore(SqlKeyValueStore(session))


@pytest.fixture
def now() -> datetime.datetime:
    return datetime.datetime(2024, 6, 15, 12, 0, tzinfo=datetime.UTC)


@pytest.fixture
def seed_patient() -> Patient:
    with test_session_factory() as session:
        store = RecordStore(SqlKeyValueStore(session))
        return store.add_patient(
            {
                "name": "Test Patient",
                "age": 67,
                "gender": "female",
                "contactInfo": "test.patient@example.com",
                "visits": [
                    {
                        "date": "2024-01-15",
                        "symptoms": ["fever", "cough"],
                        "diagnosis": "Influenza",
                        "treatment": "Rest",
                        "severity": "moderate",
                        "healingDuration": 7,
                    }
                ],
            }
        )
