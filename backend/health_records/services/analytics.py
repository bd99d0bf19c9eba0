"""Dashboard analytics computed fresh from the patient collection."""

from __future__ import annotations

import datetime
import logging
from collections import Counter
from collections.abc import Iterable, Sequence

from health_records.models.schemas import (
    AnalyticsData,
    DiagnosisCount,
    MonthCount,
    Patient,
    SeverityCount,
    SymptomCount,
    Visit,
)
from health_records.services.dates import month_label, parse_month_label, parse_visit_date

logger = logging.getLogger(__name__)

TOP_N = 10


def _all_visits(patients: Sequence[Patient]) -> list[Visit]:
    return [visit for patient in patients for visit in patient.visits]


def count_symptoms(visits: Iterable[Visit]) -> Counter[str]:
    # Counter keeps first-seen order, and most_common() sorts stably, so
    # equal counts rank in the order they were first encountered.
    return Counter(s for visit in visits for s in visit.symptoms if s.strip())


def average_healing_duration(visits: Sequence[Visit]) -> float:
    if not visits:
        return 0
    return sum(v.healing_duration for v in visits) / len(visits)


def _visit_month(visit: Visit) -> datetime.date | None:
    day = parse_visit_date(visit.date)
    if day is None:
        logger.warning("Invalid date in visit %s: %r", visit.id, visit.date)
        return None
    return day.replace(day=1)


def compute_analytics(patients: Sequence[Patient]) -> AnalyticsData:
    """Summarize every visit of every patient. Pure: reads nothing, writes nothing."""
    visits = _all_visits(patients)

    diagnoses = Counter(v.diagnosis for v in visits if v.diagnosis.strip())
    severities = Counter(v.severity for v in visits)
    months = Counter(m for m in map(_visit_month, visits) if m is not None)

    return AnalyticsData(
        total_patients=len(patients),
        total_visits=len(visits),
        common_symptoms=[
            SymptomCount(symptom=s, count=c) for s, c in count_symptoms(visits).most_common(TOP_N)
        ],
        common_diagnoses=[
            DiagnosisCount(diagnosis=d, count=c) for d, c in diagnoses.most_common(TOP_N)
        ],
        average_healing_duration=average_healing_duration(visits),
        visit_frequency=[
            MonthCount(month=month_label(m), count=months[m]) for m in sorted(months)
        ],
        severity_distribution=[
            SeverityCount(severity=s, count=c) for s, c in severities.items()
        ],
    )


def symptoms_for_month(patients: Sequence[Patient], label: str) -> list[SymptomCount]:
    """Top symptoms among visits falling in one ``Mon YYYY`` bucket."""
    month = parse_month_label(label)
    if month is None:
        return []
    visits = [
        v
        for v in _all_visits(patients)
        if (day := parse_visit_date(v.date)) is not None and day.replace(day=1) == month
    ]
    return [SymptomCount(symptom=s, count=c) for s, c in count_symptoms(visits).most_common(TOP_N)]
