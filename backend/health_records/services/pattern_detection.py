"""Rule-based pattern detection over each patient's visit history.

Three independent rules run per patient, each over its own rolling window
measured back from "now":

- repeated symptom: one alert per symptom reported at least
  ``symptom_repeat_threshold`` times in the window
- frequent visits: one alert when the visit count reaches
  ``frequent_visit_threshold``
- severe-case cluster: one alert when the count of severe visits reaches
  ``severe_case_threshold``

Alert severity scales with how far the count exceeds the threshold: at least
2x is ``high``, at least 1.5x is ``medium``, otherwise ``low``.

Detection appends what it finds; it does not replace earlier alerts. Running
twice over unchanged data records the same alerts twice unless duplicate
suppression is enabled.
"""

from __future__ import annotations

import datetime
import logging
from collections import Counter
from collections.abc import Callable, Sequence

from health_records.config import settings
from health_records.models.schemas import (
    AlertSeverity,
    Patient,
    PatternAlert,
    PatternAlertCreate,
    PatternDetectionConfig,
    Visit,
)
from health_records.services.dates import utc_now, visit_datetime
from health_records.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def tier_severity(count: int, threshold: int) -> AlertSeverity:
    if count >= threshold * 2:
        return "high"
    if count >= threshold * 1.5:
        return "medium"
    return "low"


def visits_in_window(
    visits: Sequence[Visit], days: int, now: datetime.datetime
) -> list[Visit]:
    """Visits dated on or after ``now - days``. Undated visits never qualify."""
    cutoff = now - datetime.timedelta(days=days)
    return [
        v for v in visits if (when := visit_datetime(v.date)) is not None and when >= cutoff
    ]


def detect_repeated_symptoms(
    patient: Patient, config: PatternDetectionConfig, now: datetime.datetime
) -> list[PatternAlertCreate]:
    recent = visits_in_window(patient.visits, config.symptom_repeat_days, now)
    counts = Counter(symptom for visit in recent for symptom in visit.symptoms)
    threshold = config.symptom_repeat_threshold
    return [
        PatternAlertCreate(
            type="symptom_repeat",
            message=(
                f'Patient {patient.name} has reported "{symptom}" {count} times '
                f"in the last {config.symptom_repeat_days} days"
            ),
            patient_id=patient.id,
            severity=tier_severity(count, threshold),
        )
        for symptom, count in counts.items()
        if count >= threshold
    ]


def detect_frequent_visits(
    patient: Patient, config: PatternDetectionConfig, now: datetime.datetime
) -> list[PatternAlertCreate]:
    count = len(visits_in_window(patient.visits, config.frequent_visit_days, now))
    if count < config.frequent_visit_threshold:
        return []
    return [
        PatternAlertCreate(
            type="frequent_visits",
            message=(
                f"Patient {patient.name} has visited {count} times "
                f"in the last {config.frequent_visit_days} days"
            ),
            patient_id=patient.id,
            severity=tier_severity(count, config.frequent_visit_threshold),
        )
    ]


def detect_severe_cases(
    patient: Patient, config: PatternDetectionConfig, now: datetime.datetime
) -> list[PatternAlertCreate]:
    recent = visits_in_window(patient.visits, config.severe_case_days, now)
    count = sum(1 for v in recent if v.severity == "severe")
    if count < config.severe_case_threshold:
        return []
    return [
        PatternAlertCreate(
            type="severe_case",
            message=(
                f"Patient {patient.name} has had {count} severe cases "
                f"in the last {config.severe_case_days} days"
            ),
            patient_id=patient.id,
            severity=tier_severity(count, config.severe_case_threshold),
        )
    ]


def detect_patterns(
    patients: Sequence[Patient],
    config: PatternDetectionConfig | None = None,
    now: datetime.datetime | None = None,
) -> list[PatternAlertCreate]:
    """Evaluate all rules for all patients. No side effects."""
    config = config or PatternDetectionConfig()
    now = now or utc_now()
    alerts: list[PatternAlertCreate] = []
    for patient in patients:
        alerts.extend(detect_repeated_symptoms(patient, config, now))
        alerts.extend(detect_frequent_visits(patient, config, now))
        alerts.extend(detect_severe_cases(patient, config, now))
    return alerts


class PatternDetector:
    """Runs detection against a record store and persists the resulting alerts."""

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], datetime.datetime] = utc_now,
        suppress_duplicates: bool | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.suppress_duplicates = (
            settings.suppress_duplicate_alerts
            if suppress_duplicates is None
            else suppress_duplicates
        )

    def run(self, config: PatternDetectionConfig | None = None) -> list[PatternAlert]:
        config = config or self.store.get_pattern_config()
        patients = self.store.list_patients()
        found = detect_patterns(patients, config, self.clock())

        if self.suppress_duplicates:
            found = self._drop_known(found)

        saved = [self.store.add_alert(alert) for alert in found]
        logger.info(
            "Pattern detection: %d patients scanned, %d alerts recorded",
            len(patients),
            len(saved),
        )
        return saved

    def _drop_known(self, found: list[PatternAlertCreate]) -> list[PatternAlertCreate]:
        known = {
            (a.patient_id, a.type, a.message) for a in self.store.list_alerts() if not a.is_read
        }
        fresh = []
        for alert in found:
            key = (alert.patient_id, alert.type, alert.message)
            if key in known:
                logger.debug("Skipping duplicate alert for patient %s: %s", alert.patient_id, alert.type)
                continue
            known.add(key)
            fresh.append(alert)
        return fresh
