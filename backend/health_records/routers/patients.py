"""Patient and visit API endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from health_records.database import get_record_store
from health_records.models.schemas import ErrorDetail, Patient, PatientTrendReport, Visit
from health_records.services.patient_service import SortField, SortOrder, search_patients
from health_records.services.record_store import PatientNotFoundError, RecordStore
from health_records.services.trend_analysis import build_trend_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/patients", tags=["patients"])


def _patient_not_found(patient_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(
            code="PATIENT_NOT_FOUND",
            message=f"Patient with ID {patient_id} not found",
        ).model_dump(),
    )


def _visit_not_found(patient_id: str, visit_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(
            code="VISIT_NOT_FOUND",
            message=f"Visit {visit_id} not found for patient {patient_id}",
        ).model_dump(),
    )


@router.get("", response_model=list[Patient])
def list_patients(
    search: str = "",
    sort_by: SortField = "name",
    order: SortOrder = "asc",
    store: RecordStore = Depends(get_record_store),
) -> list[Patient]:
    return search_patients(store.list_patients(), search, sort_by, order)


@router.post("", response_model=Patient, status_code=201)
def create_patient(
    payload: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
) -> Patient:
    return store.add_patient(payload)


@router.get("/{patient_id}", response_model=Patient)
def get_patient(
    patient_id: str,
    store: RecordStore = Depends(get_record_store),
) -> Patient:
    patient = store.get_patient(patient_id)
    if patient is None:
        raise _patient_not_found(patient_id)
    return patient


@router.patch("/{patient_id}", response_model=Patient)
def update_patient(
    patient_id: str,
    updates: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
) -> Patient:
    patient = store.update_patient(patient_id, updates)
    if patient is None:
        raise _patient_not_found(patient_id)
    return patient


@router.delete("/{patient_id}", status_code=204)
def delete_patient(
    patient_id: str,
    store: RecordStore = Depends(get_record_store),
) -> None:
    if not store.delete_patient(patient_id):
        raise _patient_not_found(patient_id)


@router.get("/{patient_id}/trends", response_model=PatientTrendReport)
def get_patient_trends(
    patient_id: str,
    store: RecordStore = Depends(get_record_store),
) -> PatientTrendReport:
    patient = store.get_patient(patient_id)
    if patient is None:
        raise _patient_not_found(patient_id)
    return build_trend_report(patient)


@router.post("/{patient_id}/visits", response_model=Visit, status_code=201)
def create_visit(
    patient_id: str,
    payload: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
) -> Visit:
    try:
        return store.add_visit(patient_id, payload)
    except PatientNotFoundError as e:
        logger.warning("Visit rejected: %s", e.message)
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code=e.code, message=e.message).model_dump(),
        )


@router.patch("/{patient_id}/visits/{visit_id}", response_model=Visit)
def update_visit(
    patient_id: str,
    visit_id: str,
    updates: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
) -> Visit:
    visit = store.update_visit(patient_id, visit_id, updates)
    if visit is None:
        raise _visit_not_found(patient_id, visit_id)
    return visit


@router.delete("/{patient_id}/visits/{visit_id}", status_code=204)
def delete_visit(
    patient_id: str,
    visit_id: str,
    store: RecordStore = Depends(get_record_store),
) -> None:
    if not store.delete_visit(patient_id, visit_id):
        raise _visit_not_found(patient_id, visit_id)
