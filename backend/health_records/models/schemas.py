"""Pydantic record, analytics and API schemas.

Every persisted record type coerces loosely-typed input into a value that
satisfies its invariants: bad enum values, non-numeric counts and missing
fields are replaced with documented defaults instead of being rejected.
Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import datetime
import math
import random
import re
import string
import time
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

Gender = Literal["male", "female", "other"]
VisitSeverity = Literal["mild", "moderate", "severe"]
AlertType = Literal["symptom_repeat", "frequent_visits", "severe_case"]
AlertSeverity = Literal["low", "medium", "high"]

GENDERS: tuple[str, ...] = ("male", "female", "other")
VISIT_SEVERITIES: tuple[str, ...] = ("mild", "moderate", "severe")
ALERT_TYPES: tuple[str, ...] = ("symptom_repeat", "frequent_visits", "severe_case")
ALERT_SEVERITIES: tuple[str, ...] = ("low", "medium", "high")

_BASE36 = string.digits + string.ascii_lowercase
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


# --- Helpers ---


def generate_id() -> str:
    """Base-36 millisecond timestamp followed by a random base-36 suffix."""
    millis = time.time_ns() // 1_000_000
    stamp = ""
    while millis:
        millis, digit = divmod(millis, 36)
        stamp = _BASE36[digit] + stamp
    suffix = "".join(random.choices(_BASE36, k=11))
    return (stamp or "0") + suffix


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.datetime.now(datetime.UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_today_iso() -> str:
    return datetime.datetime.now(datetime.UTC).date().isoformat()


def coerce_int(value: Any) -> int | None:
    """Lenient integer parse: numbers are truncated, strings use their leading digits."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (bool, Mapping, list, tuple)):
        return ""
    return str(value)


def _clean_strings(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _field_default(cls: type[BaseModel], info: ValidationInfo) -> Any:
    return cls.model_fields[info.field_name].get_default(call_default_factory=True)


# --- Persisted records ---


class RecordModel(BaseModel):
    """Base for records stored as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _require_mapping(cls, data: Any) -> Any:
        # Anything that is not an object normalizes to an all-defaults record.
        if isinstance(data, (Mapping, BaseModel)):
            return data
        return {}

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RepeatSchedule(RecordModel):
    enabled: bool = False
    times: int = 1
    interval_days: int = 1

    @field_validator("enabled", mode="before")
    @classmethod
    def _coerce_enabled(cls, v: Any) -> bool:
        return v if isinstance(v, bool) else False

    @field_validator("times", "interval_days", mode="before")
    @classmethod
    def _coerce_positive(cls, v: Any) -> int:
        number = coerce_int(v)
        return number if number is not None and number >= 1 else 1


class Visit(RecordModel):
    id: str = Field(default_factory=generate_id)
    date: str = Field(default_factory=utc_today_iso)
    symptoms: list[str] = Field(default_factory=list)
    diagnosis: str = ""
    treatment: str = ""
    severity: VisitSeverity = "mild"
    healing_duration: int = 1
    notes: str = ""
    created_at: str = Field(default_factory=utc_now_iso)
    medicines: list[str] = Field(default_factory=list)
    repeat: RepeatSchedule | None = None

    @field_validator("id", "date", "created_at", mode="before")
    @classmethod
    def _required_text(cls, v: Any, info: ValidationInfo) -> str:
        if isinstance(v, datetime.date):
            return v.isoformat()
        text = _as_text(v)
        return text if text else _field_default(cls, info)

    @field_validator("diagnosis", "treatment", "notes", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("symptoms", "medicines", mode="before")
    @classmethod
    def _string_list(cls, v: Any) -> list[str]:
        return _clean_strings(v)

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, v: Any) -> str:
        return v if v in VISIT_SEVERITIES else "mild"

    @field_validator("healing_duration", mode="before")
    @classmethod
    def _coerce_healing_duration(cls, v: Any) -> int:
        number = coerce_int(v)
        return number if number is not None and number >= 1 else 1

    @field_validator("repeat", mode="before")
    @classmethod
    def _coerce_repeat(cls, v: Any) -> Any:
        if isinstance(v, (Mapping, RepeatSchedule)):
            return v
        return None


class Patient(RecordModel):
    id: str = Field(default_factory=generate_id)
    name: str = ""
    age: int = 0
    gender: Gender = "male"
    contact_info: str = ""
    visits: list[Visit] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    @field_validator("id", "created_at", "updated_at", mode="before")
    @classmethod
    def _required_text(cls, v: Any, info: ValidationInfo) -> str:
        text = _as_text(v)
        return text if text else _field_default(cls, info)

    @field_validator("name", "contact_info", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("age", mode="before")
    @classmethod
    def _coerce_age(cls, v: Any) -> int:
        number = coerce_int(v)
        return number if number is not None and number >= 0 else 0

    @field_validator("gender", mode="before")
    @classmethod
    def _coerce_gender(cls, v: Any) -> str:
        return v if v in GENDERS else "male"

    @field_validator("visits", mode="before")
    @classmethod
    def _coerce_visits(cls, v: Any) -> list[Any]:
        return list(v) if isinstance(v, (list, tuple)) else []


class PatternAlert(RecordModel):
    id: str = Field(default_factory=generate_id)
    type: AlertType = "symptom_repeat"
    message: str = ""
    patient_id: str = ""
    severity: AlertSeverity = "low"
    created_at: str = Field(default_factory=utc_now_iso)
    is_read: bool = False

    @field_validator("id", "created_at", mode="before")
    @classmethod
    def _required_text(cls, v: Any, info: ValidationInfo) -> str:
        text = _as_text(v)
        return text if text else _field_default(cls, info)

    @field_validator("message", "patient_id", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> str:
        return v if v in ALERT_TYPES else "symptom_repeat"

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, v: Any) -> str:
        return v if v in ALERT_SEVERITIES else "low"

    @field_validator("is_read", mode="before")
    @classmethod
    def _coerce_is_read(cls, v: Any) -> bool:
        return v if isinstance(v, bool) else False


class PatternAlertCreate(BaseModel):
    """An alert produced by detection, before the store assigns id and timestamp."""

    type: AlertType
    message: str
    patient_id: str
    severity: AlertSeverity
    is_read: bool = False


class PatternDetectionConfig(RecordModel):
    symptom_repeat_threshold: int = 3
    symptom_repeat_days: int = 30
    frequent_visit_threshold: int = 5
    frequent_visit_days: int = 30
    severe_case_threshold: int = 2
    severe_case_days: int = 7

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_positive(cls, v: Any, info: ValidationInfo) -> int:
        number = coerce_int(v)
        return number if number is not None and number >= 1 else _field_default(cls, info)


class AppSettings(RecordModel):
    theme: Literal["light", "dark"] = "light"
    language: str = "en"
    date_format: str = "MM/DD/YYYY"
    time_format: Literal["12h", "24h"] = "12h"
    auto_backup: bool = True
    backup_interval: int = 7
    last_backup: str = Field(default_factory=utc_now_iso)

    @field_validator("theme", "time_format", mode="before")
    @classmethod
    def _coerce_choice(cls, v: Any, info: ValidationInfo) -> str:
        allowed = {"theme": ("light", "dark"), "time_format": ("12h", "24h")}
        return v if v in allowed[info.field_name] else _field_default(cls, info)

    @field_validator("language", "date_format", "last_backup", mode="before")
    @classmethod
    def _required_text(cls, v: Any, info: ValidationInfo) -> str:
        text = _as_text(v)
        return text if text else _field_default(cls, info)

    @field_validator("auto_backup", mode="before")
    @classmethod
    def _coerce_auto_backup(cls, v: Any) -> bool:
        return v if isinstance(v, bool) else True

    @field_validator("backup_interval", mode="before")
    @classmethod
    def _coerce_backup_interval(cls, v: Any) -> int:
        number = coerce_int(v)
        return number if number is not None and number >= 1 else 7


# --- Derived analytics (never persisted) ---


class SymptomCount(RecordModel):
    symptom: str
    count: int


class DiagnosisCount(RecordModel):
    diagnosis: str
    count: int


class MonthCount(RecordModel):
    month: str
    count: int


class SeverityCount(RecordModel):
    severity: str
    count: int


class AnalyticsData(RecordModel):
    total_patients: int
    total_visits: int
    common_symptoms: list[SymptomCount]
    common_diagnoses: list[DiagnosisCount]
    average_healing_duration: float
    visit_frequency: list[MonthCount]
    severity_distribution: list[SeverityCount]


class HealthTrend(RecordModel):
    improving: bool
    worsening: bool
    stable: bool
    trend: str
    slope: float | None = None


class PatternInsights(RecordModel):
    most_common_symptoms: list[SymptomCount]
    average_healing_duration: float
    severity_trend: list[SeverityCount]
    visit_frequency: float


class PatientTrendReport(RecordModel):
    patient_id: str
    status: str
    trends: HealthTrend
    insights: PatternInsights


class RecentVisit(Visit):
    patient_id: str
    patient_name: str


class DashboardSummary(RecordModel):
    analytics: AnalyticsData
    total_alerts: int
    unread_alerts: int
    recent_patients: list[Patient]
    recent_visits: list[RecentVisit]


# --- Import / export ---


class DataExport(RecordModel):
    patients: list[Patient]
    alerts: list[PatternAlert]
    settings: AppSettings
    pattern_config: PatternDetectionConfig
    medicine_list: list[str]
    export_date: str
    version: str
    total_records: int


class StorageInfo(RecordModel):
    total_size: int
    patients_count: int
    alerts_count: int
    last_backup: str
    storage_used: str


class ImportResult(BaseModel):
    success: bool
    message: str


class MedicineCreate(BaseModel):
    name: str


# --- Error schema ---


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict = {}
