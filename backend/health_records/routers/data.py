"""Import, export, backup and store maintenance endpoints."""

from __future__ import annotations

import datetime
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from health_records.database import get_record_store
from health_records.models.schemas import (
    AppSettings,
    DataExport,
    ErrorDetail,
    ImportResult,
    MedicineCreate,
    StorageInfo,
)
from health_records.services import data_transfer
from health_records.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/data", tags=["data"])


def _download(content: str, media_type: str, extension: str) -> Response:
    stamp = datetime.datetime.now(datetime.UTC).date().isoformat()
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="health_data_{stamp}.{extension}"'},
    )


def _import_failed(message: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail=ErrorDetail(code="IMPORT_FAILED", message=message).model_dump(),
    )


@router.get("/export.json")
def export_json(store: RecordStore = Depends(get_record_store)) -> Response:
    return _download(data_transfer.export_json(store), "application/json", "json")


@router.get("/export.csv")
def export_csv(store: RecordStore = Depends(get_record_store)) -> Response:
    return _download(data_transfer.export_csv(store), "text/csv", "csv")


@router.post("/import", response_model=ImportResult)
async def import_json(
    request: Request,
    store: RecordStore = Depends(get_record_store),
) -> ImportResult:
    body = (await request.body()).decode("utf-8", errors="replace")
    if not await run_in_threadpool(data_transfer.import_data, store, body):
        raise _import_failed("Failed to import data. Please check the format.")
    return ImportResult(success=True, message="Data imported successfully")


@router.post("/import/csv", response_model=ImportResult)
async def import_csv(
    request: Request,
    store: RecordStore = Depends(get_record_store),
) -> ImportResult:
    body = (await request.body()).decode("utf-8", errors="replace")
    if not await run_in_threadpool(data_transfer.import_csv, store, body):
        raise _import_failed("Failed to import CSV data. Please check the format.")
    return ImportResult(success=True, message="CSV data imported successfully")


@router.post("/import/file", response_model=ImportResult)
async def import_file(
    file: UploadFile = File(...),
    store: RecordStore = Depends(get_record_store),
) -> ImportResult:
    logger.info("Importing uploaded file %r", file.filename)
    if not await data_transfer.import_file(store, file):
        raise _import_failed(f"Failed to import {file.filename}. Please check the format.")
    return ImportResult(success=True, message=f"Imported {file.filename}")


@router.post("/backup", response_model=DataExport)
def create_backup(store: RecordStore = Depends(get_record_store)) -> DataExport:
    return data_transfer.create_backup(store)


@router.post("/restore", response_model=ImportResult)
def restore_backup(store: RecordStore = Depends(get_record_store)) -> ImportResult:
    if store.read_backup() is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="BACKUP_NOT_FOUND", message="No backup available").model_dump(),
        )
    if not data_transfer.restore_backup(store):
        raise _import_failed("Backup could not be restored")
    return ImportResult(success=True, message="Backup restored")


@router.post("/clear", status_code=204)
def clear_all_data(store: RecordStore = Depends(get_record_store)) -> None:
    data_transfer.clear_all_data(store)


@router.get("/storage-info", response_model=StorageInfo)
def get_storage_info(store: RecordStore = Depends(get_record_store)) -> StorageInfo:
    return data_transfer.storage_info(store)


@router.get("/settings", response_model=AppSettings)
def get_settings(store: RecordStore = Depends(get_record_store)) -> AppSettings:
    return store.get_settings()


@router.put("/settings", response_model=AppSettings)
def update_settings(
    payload: dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_record_store),
) -> AppSettings:
    merged = {**store.get_settings().to_storage(), **payload}
    return store.save_settings(merged)


@router.get("/medicines", response_model=list[str])
def list_medicines(store: RecordStore = Depends(get_record_store)) -> list[str]:
    return store.get_medicine_list()


@router.post("/medicines", response_model=list[str])
def add_medicine(
    payload: MedicineCreate,
    store: RecordStore = Depends(get_record_store),
) -> list[str]:
    store.add_medicine(payload.name)
    return store.get_medicine_list()
