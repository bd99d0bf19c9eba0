"""Pattern alert API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from health_records.database import get_record_store
from health_records.models.schemas import ErrorDetail, PatternAlert
from health_records.services.record_store import RecordStore

router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])


def _alert_not_found(alert_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(
            code="ALERT_NOT_FOUND",
            message=f"Alert with ID {alert_id} not found",
        ).model_dump(),
    )


@router.get("", response_model=list[PatternAlert])
def list_alerts(
    unread_only: bool = False,
    store: RecordStore = Depends(get_record_store),
) -> list[PatternAlert]:
    alerts = store.list_alerts()
    if unread_only:
        return [a for a in alerts if not a.is_read]
    return alerts


@router.post("/read-all")
def mark_all_alerts_read(store: RecordStore = Depends(get_record_store)) -> dict[str, int]:
    return {"updated": store.mark_all_alerts_read()}


@router.post("/{alert_id}/read", status_code=204)
def mark_alert_read(
    alert_id: str,
    store: RecordStore = Depends(get_record_store),
) -> None:
    if not store.mark_alert_read(alert_id):
        raise _alert_not_found(alert_id)


@router.delete("/{alert_id}", status_code=204)
def delete_alert(
    alert_id: str,
    store: RecordStore = Depends(get_record_store),
) -> None:
    if not store.delete_alert(alert_id):
        raise _alert_not_found(alert_id)
