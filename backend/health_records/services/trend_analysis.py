"""Per-patient health trend and visit insights."""

from __future__ import annotations

import datetime
from collections import Counter

from health_records.models.schemas import (
    HealthTrend,
    Patient,
    PatientTrendReport,
    PatternInsights,
    SeverityCount,
    SymptomCount,
    Visit,
)
from health_records.services.analytics import average_healing_duration, count_symptoms
from health_records.services.dates import parse_visit_date

SEVERITY_ORDINAL = {"mild": 1, "moderate": 2, "severe": 3}
SLOPE_TOLERANCE = 0.1
DAYS_PER_MONTH = 30


def _dated_visits(patient: Patient) -> list[tuple[datetime.date, Visit]]:
    """Visits with a parseable date, oldest first."""
    dated = [(parse_visit_date(v.date), v) for v in patient.visits]
    return sorted(((d, v) for d, v in dated if d is not None), key=lambda pair: pair[0])


def severity_slope(ordinals: list[int]) -> float:
    """Ordinary least-squares slope of ``ordinals`` against their index."""
    n = len(ordinals)
    sum_x = n * (n - 1) / 2
    sum_y = sum(ordinals)
    sum_xy = sum(i * y for i, y in enumerate(ordinals))
    sum_x2 = sum(i * i for i in range(n))
    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


def get_health_trends(patient: Patient) -> HealthTrend:
    dated = _dated_visits(patient)
    if len(patient.visits) < 2 or len(dated) < 2:
        return HealthTrend(
            improving=False, worsening=False, stable=True, trend="Insufficient data"
        )

    slope = severity_slope([SEVERITY_ORDINAL[v.severity] for _, v in dated])
    if slope < -SLOPE_TOLERANCE:
        trend = "Improving - Severity decreasing"
    elif slope > SLOPE_TOLERANCE:
        trend = "Worsening - Severity increasing"
    else:
        trend = "Stable - No significant change"

    return HealthTrend(
        improving=slope < -SLOPE_TOLERANCE,
        worsening=slope > SLOPE_TOLERANCE,
        stable=abs(slope) <= SLOPE_TOLERANCE,
        trend=trend,
        slope=slope,
    )


def get_pattern_insights(patient: Patient) -> PatternInsights:
    visits = patient.visits
    severities = Counter(v.severity for v in visits)

    dated = _dated_visits(patient)
    visit_frequency = 0.0
    if len(dated) >= 2:
        span_days = (dated[-1][0] - dated[0][0]).days
        months = span_days / DAYS_PER_MONTH
        if months > 0:
            visit_frequency = len(visits) / months

    return PatternInsights(
        most_common_symptoms=[
            SymptomCount(symptom=s, count=c) for s, c in count_symptoms(visits).most_common(5)
        ],
        average_healing_duration=average_healing_duration(visits),
        severity_trend=[SeverityCount(severity=s, count=c) for s, c in severities.items()],
        visit_frequency=visit_frequency,
    )


def get_health_status(patient: Patient) -> str:
    """Badge text for the patient list."""
    if not patient.visits:
        return "No Data"
    trends = get_health_trends(patient)
    if trends.improving:
        return "Improving"
    if trends.worsening:
        return "Worsening"
    return "Stable"


def build_trend_report(patient: Patient) -> PatientTrendReport:
    return PatientTrendReport(
        patient_id=patient.id,
        status=get_health_status(patient),
        trends=get_health_trends(patient),
        insights=get_pattern_insights(patient),
    )
