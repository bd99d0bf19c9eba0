"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from rich.logging import RichHandler

from health_records.config import settings
from health_records.database import engine, session_factory
from health_records.models.orm import Base
from health_records.routers.alerts import router as alerts_router
from health_records.routers.analytics import router as analytics_router
from health_records.routers.data import router as data_router
from health_records.routers.patients import router as patients_router
from health_records.services.record_store import RecordStore
from health_records.services.storage import SqlKeyValueStore

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s - %(message)s",
    datefmt="%H:%M:%S",
    handlers=[RichHandler(rich_tracebacks=True, markup=False)],
    force=True,
)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
# Our app loggers: show DEBUG when debug=True, keep third-party libs at INFO
if settings.debug:
    for name in ("health_records.services", "health_records.routers"):
        logging.getLogger(name).setLevel(logging.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    Base.metadata.create_all(engine)
    with session_factory() as session:
        RecordStore(SqlKeyValueStore(session)).initialize()
    yield
    engine.dispose()


app = FastAPI(
    title="Health Records",
    description="Patient records with visit analytics and pattern alerts",
    version=settings.export_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)

app.include_router(patients_router)
app.include_router(alerts_router)
app.include_router(analytics_router)
app.include_router(data_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
