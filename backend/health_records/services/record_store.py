"""Record store: CRUD over patients, visits, alerts and configuration.

Every collection is kept under its own key as a JSON array or object and is
rewritten whole on each mutation. Reads normalize each record, so data written
by older versions or imported from elsewhere always comes back well-typed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from health_records.config import settings as app_settings
from health_records.models.schemas import (
    AppSettings,
    Patient,
    PatternAlert,
    PatternDetectionConfig,
    Visit,
    generate_id,
    utc_now_iso,
)
from health_records.services.storage import (
    STORAGE_KEYS,
    KeyValueStore,
    StorageKeys,
    read_json,
    write_json,
)

logger = logging.getLogger(__name__)

DEFAULT_MEDICINE_LIST: tuple[str, ...] = (
    "Paracetamol",
    "Ibuprofen",
    "Amoxicillin",
    "Azithromycin",
    "Cetirizine",
    "Metformin",
    "Atorvastatin",
    "Omeprazole",
    "Amlodipine",
    "Losartan",
    "Aspirin",
    "Diclofenac",
    "Pantoprazole",
    "Ranitidine",
    "Loratadine",
    "Montelukast",
    "Salbutamol",
    "Budesonide",
)


class RecordStoreError(Exception):
    """Raised when a record operation cannot proceed."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class PatientNotFoundError(RecordStoreError):
    def __init__(self, patient_id: str) -> None:
        self.patient_id = patient_id
        super().__init__(
            code="PATIENT_NOT_FOUND",
            message=f"Patient with ID {patient_id} not found",
        )


def _wire_keys(data: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    """Accept snake_case or camelCase input and return camelCase keys."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return {(to_camel(k) if "_" in k else k): v for k, v in data.items()}


def _dedupe(names: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for name in names:
        if isinstance(name, str) and name.strip():
            seen.setdefault(name.strip(), None)
    return list(seen)


class RecordStore:
    def __init__(
        self,
        kv: KeyValueStore,
        keys: StorageKeys = STORAGE_KEYS,
        *,
        cascade_alert_delete: bool | None = None,
    ) -> None:
        self.kv = kv
        self.keys = keys
        self.cascade_alert_delete = (
            app_settings.cascade_alert_delete
            if cascade_alert_delete is None
            else cascade_alert_delete
        )

    # --- Patients ---

    def list_patients(self) -> list[Patient]:
        data = read_json(self.kv, self.keys.patients)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Stored patients are not a list; ignoring")
            return []
        try:
            return [Patient.model_validate(item) for item in data]
        except ValidationError:
            logger.exception("Failed to normalize stored patients")
            return []

    def get_patient(self, patient_id: str) -> Patient | None:
        return next((p for p in self.list_patients() if p.id == patient_id), None)

    def save_patients(self, patients: Iterable[Patient | Mapping[str, Any]]) -> None:
        normalized = [Patient.model_validate(p).to_storage() for p in patients]
        write_json(self.kv, self.keys.patients, normalized)

    def add_patient(self, data: Mapping[str, Any] | BaseModel) -> Patient:
        patients = self.list_patients()
        now = utc_now_iso()
        patient = Patient.model_validate(
            {**_wire_keys(data), "id": generate_id(), "createdAt": now, "updatedAt": now}
        )
        patients.append(patient)
        self.save_patients(patients)
        logger.info("Added patient %s", patient.id)
        return patient

    def update_patient(
        self, patient_id: str, updates: Mapping[str, Any] | BaseModel
    ) -> Patient | None:
        patients = self.list_patients()
        index = next((i for i, p in enumerate(patients) if p.id == patient_id), None)
        if index is None:
            return None

        current = patients[index]
        patients[index] = Patient.model_validate(
            {
                **current.to_storage(),
                **_wire_keys(updates),
                "id": current.id,
                "createdAt": current.created_at,
                "updatedAt": utc_now_iso(),
            }
        )
        self.save_patients(patients)
        return patients[index]

    def delete_patient(self, patient_id: str) -> bool:
        patients = self.list_patients()
        remaining = [p for p in patients if p.id != patient_id]
        if len(remaining) == len(patients):
            return False
        self.save_patients(remaining)
        logger.info("Deleted patient %s", patient_id)
        if self.cascade_alert_delete:
            self.delete_alerts_for_patient(patient_id)
        return True

    # --- Visits ---

    def add_visit(self, patient_id: str, data: Mapping[str, Any] | BaseModel) -> Visit:
        patients = self.list_patients()
        patient = next((p for p in patients if p.id == patient_id), None)
        if patient is None:
            raise PatientNotFoundError(patient_id)

        now = utc_now_iso()
        visit = Visit.model_validate({**_wire_keys(data), "id": generate_id(), "createdAt": now})
        patient.visits.append(visit)
        patient.updated_at = now
        self.save_patients(patients)
        logger.info("Added visit %s for patient %s", visit.id, patient_id)
        return visit

    def update_visit(
        self, patient_id: str, visit_id: str, updates: Mapping[str, Any] | BaseModel
    ) -> Visit | None:
        patients = self.list_patients()
        patient = next((p for p in patients if p.id == patient_id), None)
        if patient is None:
            return None
        index = next((i for i, v in enumerate(patient.visits) if v.id == visit_id), None)
        if index is None:
            return None

        current = patient.visits[index]
        patient.visits[index] = Visit.model_validate(
            {
                **current.to_storage(),
                **_wire_keys(updates),
                "id": current.id,
                "createdAt": current.created_at,
            }
        )
        patient.updated_at = utc_now_iso()
        self.save_patients(patients)
        return patient.visits[index]

    def delete_visit(self, patient_id: str, visit_id: str) -> bool:
        patients = self.list_patients()
        patient = next((p for p in patients if p.id == patient_id), None)
        if patient is None:
            return False

        remaining = [v for v in patient.visits if v.id != visit_id]
        if len(remaining) == len(patient.visits):
            return False
        patient.visits = remaining
        patient.updated_at = utc_now_iso()
        self.save_patients(patients)
        return True

    # --- Alerts ---

    def list_alerts(self) -> list[PatternAlert]:
        data = read_json(self.kv, self.keys.alerts)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Stored alerts are not a list; ignoring")
            return []
        try:
            return [PatternAlert.model_validate(item) for item in data]
        except ValidationError:
            logger.exception("Failed to normalize stored alerts")
            return []

    def save_alerts(self, alerts: Iterable[PatternAlert | Mapping[str, Any]]) -> None:
        normalized = [PatternAlert.model_validate(a).to_storage() for a in alerts]
        write_json(self.kv, self.keys.alerts, normalized)

    def add_alert(self, data: Mapping[str, Any] | BaseModel) -> PatternAlert:
        alerts = self.list_alerts()
        alert = PatternAlert.model_validate(
            {**_wire_keys(data), "id": generate_id(), "createdAt": utc_now_iso()}
        )
        alerts.append(alert)
        self.save_alerts(alerts)
        return alert

    def mark_alert_read(self, alert_id: str) -> bool:
        alerts = self.list_alerts()
        alert = next((a for a in alerts if a.id == alert_id), None)
        if alert is None:
            return False
        if not alert.is_read:
            alert.is_read = True
            self.save_alerts(alerts)
        return True

    def mark_all_alerts_read(self) -> int:
        alerts = self.list_alerts()
        unread = [a for a in alerts if not a.is_read]
        for alert in unread:
            alert.is_read = True
        if unread:
            self.save_alerts(alerts)
        return len(unread)

    def delete_alert(self, alert_id: str) -> bool:
        alerts = self.list_alerts()
        remaining = [a for a in alerts if a.id != alert_id]
        if len(remaining) == len(alerts):
            return False
        self.save_alerts(remaining)
        return True

    def delete_alerts_for_patient(self, patient_id: str) -> int:
        alerts = self.list_alerts()
        remaining = [a for a in alerts if a.patient_id != patient_id]
        removed = len(alerts) - len(remaining)
        if removed:
            self.save_alerts(remaining)
            logger.info("Removed %d alerts for patient %s", removed, patient_id)
        return removed

    # --- Settings, pattern config, medicines ---

    def get_settings(self) -> AppSettings:
        data = read_json(self.kv, self.keys.settings)
        return AppSettings.model_validate(data) if isinstance(data, Mapping) else AppSettings()

    def save_settings(self, value: AppSettings | Mapping[str, Any]) -> AppSettings:
        normalized = AppSettings.model_validate(
            value if isinstance(value, AppSettings) else _wire_keys(value)
        )
        write_json(self.kv, self.keys.settings, normalized.to_storage())
        return normalized

    def get_pattern_config(self) -> PatternDetectionConfig:
        data = read_json(self.kv, self.keys.pattern_config)
        if isinstance(data, Mapping):
            return PatternDetectionConfig.model_validate(data)
        return PatternDetectionConfig()

    def save_pattern_config(
        self, value: PatternDetectionConfig | Mapping[str, Any]
    ) -> PatternDetectionConfig:
        normalized = PatternDetectionConfig.model_validate(
            value if isinstance(value, PatternDetectionConfig) else _wire_keys(value)
        )
        write_json(self.kv, self.keys.pattern_config, normalized.to_storage())
        return normalized

    def get_medicine_list(self) -> list[str]:
        data = read_json(self.kv, self.keys.medicine_list)
        if isinstance(data, list):
            return _dedupe(data)
        return list(DEFAULT_MEDICINE_LIST)

    def save_medicine_list(self, medicines: Iterable[str]) -> list[str]:
        cleaned = _dedupe(medicines)
        write_json(self.kv, self.keys.medicine_list, cleaned)
        return cleaned

    def add_medicine(self, name: str) -> bool:
        name = name.strip()
        medicines = self.get_medicine_list()
        if not name or name in medicines:
            return False
        medicines.append(name)
        self.save_medicine_list(medicines)
        return True

    # --- Backup slot ---

    def read_backup(self) -> Any | None:
        return read_json(self.kv, self.keys.backup_data)

    def write_backup(self, payload: Mapping[str, Any]) -> None:
        write_json(self.kv, self.keys.backup_data, payload)

    # --- Lifecycle ---

    def initialize(self) -> None:
        """Seed every absent key with its default value."""
        defaults = {
            self.keys.settings: lambda: AppSettings().to_storage(),
            self.keys.pattern_config: lambda: PatternDetectionConfig().to_storage(),
            self.keys.medicine_list: lambda: list(DEFAULT_MEDICINE_LIST),
            self.keys.patients: list,
            self.keys.alerts: list,
        }
        for key, factory in defaults.items():
            if self.kv.get(key) is None:
                write_json(self.kv, key, factory())
                logger.debug("Seeded default value for %s", key)

    def clear_all(self) -> None:
        for key in self.keys.all():
            self.kv.remove(key)
        logger.info("Cleared all stored records")
        self.initialize()
