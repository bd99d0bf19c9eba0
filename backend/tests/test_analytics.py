"""Unit tests for the analytics aggregator."""

from __future__ import annotations

import logging

from health_records.models.schemas import Patient
from health_records.services.analytics import compute_analytics, symptoms_for_month


def _patient(*visits: dict, name: str = "P") -> Patient:
    return Patient.model_validate({"name": name, "visits": list(visits)})


def test_empty_collection() -> None:
    analytics = compute_analytics([])
    assert analytics.total_patients == 0
    assert analytics.total_visits == 0
    assert analytics.average_healing_duration == 0
    assert analytics.common_symptoms == []
    assert analytics.visit_frequency == []


def test_common_symptoms_across_patients() -> None:
    p1 = _patient(
        {"date": "2024-01-05", "symptoms": ["fever", "cough"]},
        {"date": "2024-01-09", "symptoms": ["fever"]},
    )
    p2 = _patient({"date": "2024-02-01", "symptoms": ["fever"]})

    analytics = compute_analytics([p1, p2])

    assert analytics.total_patients == 2
    assert analytics.total_visits == 3
    top = analytics.common_symptoms[0]
    assert (top.symptom, top.count) == ("fever", 3)
    assert analytics.common_symptoms[1].symptom == "cough"


def test_ties_keep_first_encountered_order() -> None:
    patient = _patient(
        {"symptoms": ["rash", "itch"]},
        {"symptoms": ["nausea"]},
    )
    symptoms = [s.symptom for s in compute_analytics([patient]).common_symptoms]
    assert symptoms == ["rash", "itch", "nausea"]


def test_top_ten_limit() -> None:
    patient = _patient(*({"symptoms": [f"s{i}"], "diagnosis": f"d{i}"} for i in range(15)))
    analytics = compute_analytics([patient])
    assert len(analytics.common_symptoms) == 10
    assert len(analytics.common_diagnoses) == 10


def test_blank_diagnoses_ignored() -> None:
    patient = _patient({"diagnosis": "Flu"}, {"diagnosis": "  "}, {"diagnosis": "Flu"})
    [entry] = compute_analytics([patient]).common_diagnoses
    assert (entry.diagnosis, entry.count) == ("Flu", 2)


def test_average_healing_duration() -> None:
    patient = _patient({"healingDuration": 2}, {"healingDuration": 4}, {"healingDuration": 6})
    assert compute_analytics([patient]).average_healing_duration == 4


def test_visit_frequency_sorted_chronologically() -> None:
    patient = _patient(
        {"date": "2024-02-10"},
        {"date": "2023-12-01"},
        {"date": "2024-02-20"},
        {"date": "2024-01-15"},
    )
    frequency = [(m.month, m.count) for m in compute_analytics([patient]).visit_frequency]
    assert frequency == [("Dec 2023", 1), ("Jan 2024", 1), ("Feb 2024", 2)]


def test_unparseable_date_only_excluded_from_frequency(caplog) -> None:
    patient = _patient(
        {"date": "2024-03-01", "symptoms": ["fever"]},
        {"date": "sometime last week", "symptoms": ["fever"]},
    )
    with caplog.at_level(logging.WARNING):
        analytics = compute_analytics([patient])

    assert analytics.total_visits == 2
    assert analytics.common_symptoms[0].count == 2
    assert [(m.month, m.count) for m in analytics.visit_frequency] == [("Mar 2024", 1)]
    assert "sometime last week" in caplog.text


def test_severity_distribution_discovery_order() -> None:
    patient = _patient({"severity": "severe"}, {"severity": "mild"}, {"severity": "severe"})
    distribution = [(s.severity, s.count) for s in compute_analytics([patient]).severity_distribution]
    assert distribution == [("severe", 2), ("mild", 1)]


def test_serializes_camel_case() -> None:
    data = compute_analytics([]).model_dump(by_alias=True)
    assert set(data) == {
        "totalPatients",
        "totalVisits",
        "commonSymptoms",
        "commonDiagnoses",
        "averageHealingDuration",
        "visitFrequency",
        "severityDistribution",
    }


def test_symptoms_for_month() -> None:
    patient = _patient(
        {"date": "2024-01-05", "symptoms": ["fever", "cough"]},
        {"date": "2024-01-20", "symptoms": ["cough"]},
        {"date": "2024-02-01", "symptoms": ["rash"]},
    )
    result = [(s.symptom, s.count) for s in symptoms_for_month([patient], "Jan 2024")]
    assert result == [("cough", 2), ("fever", 1)]
    assert symptoms_for_month([patient], "not a month") == []
