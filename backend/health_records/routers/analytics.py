"""Analytics, dashboard and pattern detection endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from health_records.database import get_record_store
from health_records.models.schemas import (
    AnalyticsData,
    DashboardSummary,
    PatternAlert,
    PatternDetectionConfig,
    SymptomCount,
)
from health_records.services.analytics import compute_analytics, symptoms_for_month
from health_records.services.pattern_detection import PatternDetector
from health_records.services.patient_service import dashboard_summary
from health_records.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["analytics"])


@router.get("/analytics", response_model=AnalyticsData)
def get_analytics(store: RecordStore = Depends(get_record_store)) -> AnalyticsData:
    return compute_analytics(store.list_patients())


@router.get("/analytics/months/{label}/symptoms", response_model=list[SymptomCount])
def get_month_symptoms(
    label: str,
    store: RecordStore = Depends(get_record_store),
) -> list[SymptomCount]:
    return symptoms_for_month(store.list_patients(), label)


@router.get("/dashboard", response_model=DashboardSummary)
def get_dashboard(store: RecordStore = Depends(get_record_store)) -> DashboardSummary:
    return dashboard_summary(store)


@router.post("/patterns/detect", response_model=list[PatternAlert])
def run_pattern_detection(store: RecordStore = Depends(get_record_store)) -> list[PatternAlert]:
    logger.info("Running pattern detection")
    return PatternDetector(store).run()


@router.get("/patterns/config", response_model=PatternDetectionConfig)
def get_pattern_config(store: RecordStore = Depends(get_record_store)) -> PatternDetectionConfig:
    return store.get_pattern_config()


@router.put("/patterns/config", response_model=PatternDetectionConfig)
def update_pattern_config(
    payload: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
) -> PatternDetectionConfig:
    merged = {**store.get_pattern_config().to_storage(), **payload}
    return store.save_pattern_config(merged)
