"""Export, import, backup and restore of the whole record store."""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from health_records.config import settings as app_settings
from health_records.models.schemas import (
    AppSettings,
    DataExport,
    Patient,
    PatternAlert,
    PatternDetectionConfig,
    StorageInfo,
    utc_now_iso,
)
from health_records.services.record_store import RecordStore

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Patient ID",
    "Patient Name",
    "Age",
    "Gender",
    "Contact Info",
    "Patient Created At",
    "Patient Updated At",
    "Visit ID",
    "Visit Date",
    "Symptoms",
    "Diagnosis",
    "Treatment",
    "Severity",
    "Healing Duration (days)",
    "Notes",
    "Medicines",
    "Repeat Enabled",
    "Repeat Times",
    "Repeat Interval Days",
    "Visit Created At",
]
LIST_SEPARATOR = "; "


class UploadedFile(Protocol):
    filename: str | None

    async def read(self, size: int = -1) -> bytes: ...


# --- JSON ---


def export_data(store: RecordStore) -> DataExport:
    patients = store.list_patients()
    alerts = store.list_alerts()
    return DataExport(
        patients=patients,
        alerts=alerts,
        settings=store.get_settings(),
        pattern_config=store.get_pattern_config(),
        medicine_list=store.get_medicine_list(),
        export_date=utc_now_iso(),
        version=app_settings.export_version,
        total_records=len(patients) + len(alerts),
    )


def export_json(store: RecordStore) -> str:
    return export_data(store).model_dump_json(by_alias=True, exclude_none=True, indent=2)


def import_payload(store: RecordStore, data: Any) -> bool:
    """Replace every section present in ``data``. Nothing is written unless all of it is valid."""
    if not isinstance(data, Mapping):
        logger.warning("Import failed: top-level value is not an object")
        return False

    sections: dict[str, Any] = {}
    try:
        if data.get("patients") is not None:
            sections["patients"] = [Patient.model_validate(p) for p in _as_list(data["patients"])]
        if data.get("alerts") is not None:
            sections["alerts"] = [PatternAlert.model_validate(a) for a in _as_list(data["alerts"])]
        if data.get("settings") is not None:
            sections["settings"] = AppSettings.model_validate(_as_mapping(data["settings"]))
        if data.get("patternConfig") is not None:
            sections["pattern_config"] = PatternDetectionConfig.model_validate(
                _as_mapping(data["patternConfig"])
            )
        if data.get("medicineList") is not None:
            sections["medicine_list"] = [
                m for m in _as_list(data["medicineList"]) if isinstance(m, str)
            ]
    except (TypeError, ValidationError) as e:
        logger.warning("Import failed: %s", e)
        return False

    if "patients" in sections:
        store.save_patients(sections["patients"])
    if "alerts" in sections:
        store.save_alerts(sections["alerts"])
    if "settings" in sections:
        store.save_settings(sections["settings"])
    if "pattern_config" in sections:
        store.save_pattern_config(sections["pattern_config"])
    if "medicine_list" in sections:
        store.save_medicine_list(sections["medicine_list"])

    logger.info("Imported sections: %s", ", ".join(sections) or "none")
    return True


def _as_list(value: Any) -> list[Any]:
    if not isinstance(value, list):
        raise TypeError(f"expected a list, got {type(value).__name__}")
    return value


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"expected an object, got {type(value).__name__}")
    return value


def import_data(store: RecordStore, text: str) -> bool:
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        logger.warning("Import failed: invalid JSON")
        return False
    return import_payload(store, data)


def import_text(store: RecordStore, filename: str | None, content: str) -> bool:
    """Import ``content`` as CSV when ``filename`` ends in ``.csv``, else as JSON."""
    if (filename or "").lower().endswith(".csv"):
        return import_csv(store, content)
    return import_data(store, content)


async def import_file(store: RecordStore, upload: UploadedFile) -> bool:
    """Read an uploaded export (``.json`` or ``.csv``) and import it.

    Only the upload read happens on the event loop; the store writes run in
    the threadpool.
    """
    try:
        content = (await upload.read()).decode("utf-8")
    except (OSError, UnicodeDecodeError):
        logger.exception("File import failed while reading %r", upload.filename)
        return False

    return await run_in_threadpool(import_text, store, upload.filename, content)


# --- CSV ---


def export_csv(store: RecordStore) -> str:
    """One row per (patient, visit). Patients without visits produce no rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for patient in store.list_patients():
        for visit in patient.visits:
            repeat = visit.repeat
            writer.writerow(
                [
                    patient.id,
                    patient.name,
                    patient.age,
                    patient.gender,
                    patient.contact_info,
                    patient.created_at,
                    patient.updated_at,
                    visit.id,
                    visit.date,
                    LIST_SEPARATOR.join(visit.symptoms),
                    visit.diagnosis,
                    visit.treatment,
                    visit.severity,
                    visit.healing_duration,
                    visit.notes,
                    LIST_SEPARATOR.join(visit.medicines),
                    "true" if repeat and repeat.enabled else "false",
                    repeat.times if repeat else "",
                    repeat.interval_days if repeat else "",
                    visit.created_at,
                ]
            )
    return buffer.getvalue()


def _split_list(cell: str) -> list[str]:
    return [item.strip() for item in cell.split(LIST_SEPARATOR) if item.strip()]


def _visit_from_row(row: list[str]) -> dict[str, Any]:
    visit: dict[str, Any] = {
        "id": row[7],
        "date": row[8],
        "symptoms": _split_list(row[9]),
        "diagnosis": row[10],
        "treatment": row[11],
        "severity": row[12],
        "healingDuration": row[13],
        "notes": row[14],
        "medicines": _split_list(row[15]),
        "createdAt": row[19],
    }
    enabled = row[16].strip().lower() == "true"
    if enabled or row[17].strip():
        visit["repeat"] = {"enabled": enabled, "times": row[17], "intervalDays": row[18]}
    return visit


def import_csv(store: RecordStore, text: str) -> bool:
    """Rebuild the patient collection from CSV rows, replacing what is stored."""
    try:
        rows = [
            row
            for row in csv.reader(io.StringIO(text.strip()))
            if any(cell.strip() for cell in row)
        ]
    except csv.Error as e:
        logger.warning("CSV import failed: %s", e)
        return False
    if len(rows) < 2:
        logger.warning("CSV import failed: need a header and at least one data row")
        return False

    width = max(len(rows[0]), len(CSV_COLUMNS))
    grouped: dict[str, dict[str, Any]] = {}
    seen_visits: dict[str, set[str]] = {}
    skipped = 0
    for row in rows[1:]:
        if len(row) < width:
            skipped += 1
            continue
        patient_id = row[0]
        if patient_id not in grouped:
            grouped[patient_id] = {
                "id": patient_id,
                "name": row[1],
                "age": row[2],
                "gender": row[3],
                "contactInfo": row[4],
                "createdAt": row[5],
                "updatedAt": row[6],
                "visits": [],
            }
            seen_visits[patient_id] = set()
        if row[7] in seen_visits[patient_id]:
            continue
        seen_visits[patient_id].add(row[7])
        grouped[patient_id]["visits"].append(_visit_from_row(row))

    if not grouped:
        logger.warning("CSV import failed: no complete data rows (%d skipped)", skipped)
        return False

    try:
        patients = [Patient.model_validate(raw) for raw in grouped.values()]
    except ValidationError as e:
        logger.warning("CSV import failed: %s", e)
        return False

    store.save_patients(patients)
    logger.info(
        "CSV import: %d patients, %d rows skipped", len(patients), skipped
    )
    return True


# --- Backup and maintenance ---


def create_backup(store: RecordStore) -> DataExport:
    """Snapshot the full export into the backup slot and stamp ``lastBackup``."""
    snapshot = export_data(store)
    store.write_backup(snapshot.model_dump(by_alias=True, exclude_none=True))

    current = store.get_settings()
    current.last_backup = utc_now_iso()
    store.save_settings(current)
    logger.info("Backup created with %d records", snapshot.total_records)
    return snapshot


def restore_backup(store: RecordStore) -> bool:
    payload = store.read_backup()
    if payload is None:
        logger.warning("Restore requested but no backup exists")
        return False
    return import_payload(store, payload)


def clear_all_data(store: RecordStore) -> None:
    store.clear_all()


def _compact_size(value: Any) -> int:
    return len(json.dumps(value, separators=(",", ":")))


def storage_info(store: RecordStore) -> StorageInfo:
    patients = store.list_patients()
    alerts = store.list_alerts()
    current = store.get_settings()

    total_size = (
        _compact_size([p.to_storage() for p in patients])
        + _compact_size([a.to_storage() for a in alerts])
        + _compact_size(current.to_storage())
    )
    storage_used = f"{total_size / 1024:.2f} KB" if total_size > 1024 else f"{total_size} bytes"
    return StorageInfo(
        total_size=total_size,
        patients_count=len(patients),
        alerts_count=len(alerts),
        last_backup=current.last_backup,
        storage_used=storage_used,
    )
