"""Key-value persistence: named keys holding one JSON-serialized value each."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from health_records.config import settings
from health_records.models.orm import StorageEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageKeys:
    patients: str
    alerts: str
    settings: str
    pattern_config: str
    medicine_list: str
    backup_data: str

    @classmethod
    def with_prefix(cls, prefix: str) -> StorageKeys:
        return cls(
            patients=f"{prefix}patients",
            alerts=f"{prefix}alerts",
            settings=f"{prefix}settings",
            pattern_config=f"{prefix}pattern_config",
            medicine_list=f"{prefix}medicine_list",
            backup_data=f"{prefix}backup_data",
        )

    def all(self) -> tuple[str, ...]:
        return (
            self.patients,
            self.alerts,
            self.settings,
            self.pattern_config,
            self.medicine_list,
            self.backup_data,
        )


STORAGE_KEYS = StorageKeys.with_prefix(settings.storage_key_prefix)


class KeyValueStore(Protocol):
    """Raw string storage. Absence of a key is reported as None."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Dict-backed store for tests and one-off scripts."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqlKeyValueStore:
    """Store backed by the ``storage_entries`` table. Commits on every write."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, key: str) -> str | None:
        result = self.session.execute(
            select(StorageEntry.value).where(StorageEntry.key == key)
        )
        return result.scalar_one_or_none()

    def set(self, key: str, value: str) -> None:
        entry = self.session.get(StorageEntry, key)
        if entry is None:
            self.session.add(StorageEntry(key=key, value=value))
        else:
            entry.value = value
        self.session.commit()

    def remove(self, key: str) -> None:
        entry = self.session.get(StorageEntry, key)
        if entry is not None:
            self.session.delete(entry)
            self.session.commit()


def read_json(store: KeyValueStore, key: str) -> Any | None:
    """Load and decode a key. Corrupt JSON is logged and reported as absent."""
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed JSON stored under %r", key)
        return None


def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set(key, json.dumps(value))
