"""Patient list and dashboard queries."""

from __future__ import annotations

import datetime
from collections.abc import Callable, Sequence
from typing import Any, Literal

from health_records.models.schemas import DashboardSummary, Patient, RecentVisit
from health_records.services.analytics import compute_analytics
from health_records.services.dates import parse_visit_date
from health_records.services.record_store import RecordStore

SortField = Literal["name", "age", "visits", "lastVisit"]
SortOrder = Literal["asc", "desc"]


def last_visit_date(patient: Patient) -> datetime.date | None:
    dates = [d for v in patient.visits if (d := parse_visit_date(v.date)) is not None]
    return max(dates, default=None)


# Patients without visits sort as if last seen at the earliest possible date.
_SORT_KEYS: dict[str, Callable[[Patient], Any]] = {
    "name": lambda p: p.name.lower(),
    "age": lambda p: p.age,
    "visits": lambda p: len(p.visits),
    "lastVisit": lambda p: last_visit_date(p) or datetime.date.min,
}


def search_patients(
    patients: Sequence[Patient],
    term: str = "",
    sort_by: SortField = "name",
    order: SortOrder = "asc",
) -> list[Patient]:
    needle = term.lower()
    matches = [
        p for p in patients if needle in p.name.lower() or needle in p.contact_info.lower()
    ]
    key = _SORT_KEYS.get(sort_by, _SORT_KEYS["name"])
    return sorted(matches, key=key, reverse=order == "desc")


def recent_patients(patients: Sequence[Patient], limit: int = 5) -> list[Patient]:
    """Most recently added first."""
    return list(reversed(patients[-limit:])) if limit > 0 else []


def recent_visits(patients: Sequence[Patient], limit: int = 5) -> list[RecentVisit]:
    visits = [
        RecentVisit(**visit.model_dump(), patient_id=p.id, patient_name=p.name)
        for p in patients
        for visit in p.visits
    ]
    visits.sort(key=lambda v: parse_visit_date(v.date) or datetime.date.min, reverse=True)
    return visits[:limit]


def dashboard_summary(store: RecordStore) -> DashboardSummary:
    patients = store.list_patients()
    alerts = store.list_alerts()
    return DashboardSummary(
        analytics=compute_analytics(patients),
        total_alerts=len(alerts),
        unread_alerts=sum(1 for a in alerts if not a.is_read),
        recent_patients=recent_patients(patients),
        recent_visits=recent_visits(patients),
    )
