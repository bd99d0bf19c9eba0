"""Seed the store with 5 demo patients. Clears every stored record on each run."""

from __future__ import annotations

import datetime

from health_records.database import engine, session_factory
from health_records.models.orm import Base
from health_records.services.pattern_detection import PatternDetector
from health_records.services.record_store import RecordStore
from health_records.services.storage import SqlKeyValueStore


def _days_ago(days: int) -> str:
    return (datetime.date.today() - datetime.timedelta(days=days)).isoformat()


PATIENTS = [
    {
        "name": "Maria Garcia",
        "age": 67,
        "gender": "female",
        "contactInfo": "maria.garcia@example.com",
        "visits": [
            {
                "date": _days_ago(3),
                "symptoms": ["headache", "dizziness"],
                "diagnosis": "Hypertension",
                "treatment": "Adjust antihypertensive dose",
                "severity": "moderate",
                "healingDuration": 7,
                "medicines": ["Amlodipine", "Losartan"],
            },
            {
                "date": _days_ago(12),
                "symptoms": ["headache"],
                "diagnosis": "Tension headache",
                "treatment": "Rest and hydration",
                "severity": "mild",
                "healingDuration": 3,
                "medicines": ["Paracetamol"],
            },
            {
                "date": _days_ago(25),
                "symptoms": ["headache", "blurred vision"],
                "diagnosis": "Hypertension",
                "treatment": "Start antihypertensive",
                "severity": "moderate",
                "healingDuration": 14,
                "medicines": ["Amlodipine"],
                "repeat": {"enabled": True, "times": 3, "intervalDays": 30},
            },
        ],
    },
    {
        "name": "James Wilson",
        "age": 44,
        "gender": "male",
        "contactInfo": "+1 555 0142",
        "visits": [
            {
                "date": _days_ago(2),
                "symptoms": ["chest pain", "shortness of breath"],
                "diagnosis": "Unstable angina",
                "treatment": "Referred to cardiology",
                "severity": "severe",
                "healingDuration": 21,
                "medicines": ["Aspirin", "Atorvastatin"],
            },
            {
                "date": _days_ago(5),
                "symptoms": ["chest pain"],
                "diagnosis": "Angina",
                "treatment": "Nitrates as needed",
                "severity": "severe",
                "healingDuration": 14,
                "medicines": ["Aspirin"],
            },
            {
                "date": _days_ago(60),
                "symptoms": ["fatigue"],
                "diagnosis": "Anxiety",
                "treatment": "Counselling",
                "severity": "mild",
                "healingDuration": 30,
            },
        ],
    },
    {
        "name": "Aisha Khan",
        "age": 29,
        "gender": "female",
        "contactInfo": "aisha.khan@example.com",
        "visits": [
            {
                "date": _days_ago(days),
                "symptoms": ["cough", "fever"] if days < 20 else ["cough"],
                "diagnosis": "Upper respiratory infection",
                "treatment": "Symptomatic care",
                "severity": "moderate" if days < 10 else "mild",
                "healingDuration": 5,
                "medicines": ["Cetirizine"],
            }
            for days in (1, 6, 11, 17, 24, 28)
        ],
    },
    {
        "name": "Robert Chen",
        "age": 58,
        "gender": "male",
        "contactInfo": "+1 555 0199",
        "visits": [
            {
                "date": _days_ago(200),
                "symptoms": ["joint pain"],
                "diagnosis": "Osteoarthritis",
                "treatment": "Physiotherapy",
                "severity": "severe",
                "healingDuration": 60,
                "medicines": ["Diclofenac"],
            },
            {
                "date": _days_ago(100),
                "symptoms": ["joint pain"],
                "diagnosis": "Osteoarthritis",
                "treatment": "Physiotherapy",
                "severity": "moderate",
                "healingDuration": 45,
                "medicines": ["Ibuprofen"],
            },
            {
                "date": _days_ago(10),
                "symptoms": ["stiffness"],
                "diagnosis": "Osteoarthritis",
                "treatment": "Home exercises",
                "severity": "mild",
                "healingDuration": 30,
            },
        ],
    },
    {
        "name": "Sam Taylor",
        "age": 35,
        "gender": "other",
        "contactInfo": "sam.taylor@example.com",
        "visits": [],
    },
]


def seed() -> None:
    Base.metadata.create_all(engine)
    with session_factory() as session:
        store = RecordStore(SqlKeyValueStore(session))
        store.clear_all()
        for data in PATIENTS:
            visits = data.get("visits", [])
            patient = store.add_patient({**data, "visits": []})
            for visit in visits:
                store.add_visit(patient.id, visit)
        alerts = PatternDetector(store).run()

    print(f"Seeded {len(PATIENTS)} patients and {len(alerts)} alerts.")


if __name__ == "__main__":
    seed()
