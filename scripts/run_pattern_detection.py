"""CLI script to run one pattern detection pass against the configured database.

Usage:
    python scripts/run_pattern_detection.py
    python scripts/run_pattern_detection.py --symptom-threshold 2 --symptom-days 14
"""

from __future__ import annotations

import argparse

from health_records.database import engine, session_factory
from health_records.models.orm import Base
from health_records.models.schemas import PatternDetectionConfig
from health_records.services.pattern_detection import PatternDetector
from health_records.services.record_store import RecordStore
from health_records.services.storage import SqlKeyValueStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Detect patterns and record alerts")
    parser.add_argument("--symptom-threshold", type=int, default=None, help="Symptom repeat threshold override")
    parser.add_argument("--symptom-days", type=int, default=None, help="Symptom repeat window override (days)")
    parser.add_argument("--visit-threshold", type=int, default=None, help="Frequent visit threshold override")
    parser.add_argument("--visit-days", type=int, default=None, help="Frequent visit window override (days)")
    parser.add_argument("--severe-threshold", type=int, default=None, help="Severe case threshold override")
    parser.add_argument("--severe-days", type=int, default=None, help="Severe case window override (days)")
    parser.add_argument("--dedupe", action="store_true", help="Skip alerts matching an unread alert")
    args = parser.parse_args()

    overrides = {
        "symptom_repeat_threshold": args.symptom_threshold,
        "symptom_repeat_days": args.symptom_days,
        "frequent_visit_threshold": args.visit_threshold,
        "frequent_visit_days": args.visit_days,
        "severe_case_threshold": args.severe_threshold,
        "severe_case_days": args.severe_days,
    }

    Base.metadata.create_all(engine)
    with session_factory() as session:
        store = RecordStore(SqlKeyValueStore(session))
        store.initialize()
        config = PatternDetectionConfig.model_validate(
            {
                **store.get_pattern_config().model_dump(),
                **{name: value for name, value in overrides.items() if value is not None},
            }
        )
        print(f"Scanning {len(store.list_patients())} patients...")
        detector = PatternDetector(store, suppress_duplicates=args.dedupe or None)
        alerts = detector.run(config)

    for alert in alerts:
        print(f"  [{alert.severity:>6}] {alert.type}: {alert.message}")
    print(f"\nDone! Recorded {len(alerts)} alerts.")


if __name__ == "__main__":
    main()
