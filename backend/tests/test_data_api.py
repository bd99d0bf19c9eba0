"""Import, export, backup and maintenance endpoint tests."""

from __future__ import annotations

import json
import threading

from httpx import AsyncClient

from health_records.services import data_transfer
from health_records.services.data_transfer import CSV_COLUMNS


async def test_export_json(client: AsyncClient, seed_patient) -> None:
    response = await client.get("/api/v1/data/export.json")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert 'filename="health_data_' in response.headers["content-disposition"]
    data = response.json()
    assert data["totalRecords"] == 1
    assert data["patients"][0]["id"] == seed_patient.id


async def test_export_csv(client: AsyncClient, seed_patient) -> None:
    response = await client.get("/api/v1/data/export.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].endswith('.csv"')
    header, row = response.text.strip().split("\n")
    assert header == ",".join(CSV_COLUMNS)
    assert row.startswith(f"{seed_patient.id},Test Patient,67,female")


async def test_import_json_round_trip(client: AsyncClient, seed_patient) -> None:
    exported = (await client.get("/api/v1/data/export.json")).text
    await client.delete(f"/api/v1/patients/{seed_patient.id}")

    response = await client.post("/api/v1/data/import", content=exported)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Data imported successfully"}

    patients = (await client.get("/api/v1/patients")).json()
    assert [p["id"] for p in patients] == [seed_patient.id]


async def test_import_json_invalid(client: AsyncClient, seed_patient) -> None:
    response = await client.post("/api/v1/data/import", content="not json at all")
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "IMPORT_FAILED"

    patients = (await client.get("/api/v1/patients")).json()
    assert len(patients) == 1


async def test_import_csv(client: AsyncClient, seed_patient) -> None:
    exported = (await client.get("/api/v1/data/export.csv")).text
    await client.post("/api/v1/patients", json={"name": "Replaced"})

    response = await client.post("/api/v1/data/import/csv", content=exported)
    assert response.status_code == 200

    patients = (await client.get("/api/v1/patients")).json()
    assert [p["name"] for p in patients] == ["Test Patient"]
    assert patients[0]["visits"][0]["diagnosis"] == "Influenza"


async def test_import_csv_header_only(client: AsyncClient) -> None:
    response = await client.post("/api/v1/data/import/csv", content=",".join(CSV_COLUMNS))
    assert response.status_code == 400


async def test_import_file(client: AsyncClient) -> None:
    payload = json.dumps({"patients": [{"id": "p9", "name": "From File"}]})
    response = await client.post(
        "/api/v1/data/import/file",
        files={"file": ("records.json", payload.encode(), "application/json")},
    )
    assert response.status_code == 200
    assert response.json()["success"] is True

    patient = (await client.get("/api/v1/patients/p9")).json()
    assert patient["name"] == "From File"


async def test_import_file_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/data/import/file",
        files={"file": ("records.json", b"[1, 2]", "application/json")},
    )
    assert response.status_code == 400


async def test_backup_and_restore(client: AsyncClient, seed_patient) -> None:
    response = await client.post("/api/v1/data/backup")
    assert response.status_code == 200
    assert response.json()["totalRecords"] == 1

    await client.post("/api/v1/patients", json={"name": "After Backup"})
    response = await client.post("/api/v1/data/restore")
    assert response.status_code == 200

    patients = (await client.get("/api/v1/patients")).json()
    assert [p["name"] for p in patients] == ["Test Patient"]


async def test_restore_without_backup(client: AsyncClient) -> None:
    response = await client.post("/api/v1/data/restore")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "BACKUP_NOT_FOUND"


async def test_clear(client: AsyncClient, seed_patient) -> None:
    response = await client.post("/api/v1/data/clear")
    assert response.status_code == 204

    assert (await client.get("/api/v1/patients")).json() == []
    medicines = (await client.get("/api/v1/data/medicines")).json()
    assert "Paracetamol" in medicines


async def test_storage_info(client: AsyncClient, seed_patient) -> None:
    response = await client.get("/api/v1/data/storage-info")
    assert response.status_code == 200
    data = response.json()
    assert data["patientsCount"] == 1
    assert data["alertsCount"] == 0
    assert data["totalSize"] > 0


async def test_settings(client: AsyncClient) -> None:
    response = await client.put("/api/v1/data/settings", json={"theme": "dark", "timeFormat": "13h"})
    assert response.status_code == 200
    data = response.json()
    assert data["theme"] == "dark"
    assert data["timeFormat"] == "12h"

    assert (await client.get("/api/v1/data/settings")).json()["theme"] == "dark"


async def test_add_medicine(client: AsyncClient) -> None:
    response = await client.post("/api/v1/data/medicines", json={"name": "Insulin"})
    assert response.status_code == 200
    assert response.json()[-1] == "Insulin"

    response = await client.post("/api/v1/data/medicines", json={"name": "Insulin"})
    assert response.json().count("Insulin") == 1


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}


async def test_import_csv_without_complete_rows_keeps_patients(
    client: AsyncClient, seed_patient
) -> None:
    content = ",".join(CSV_COLUMNS) + "\ngarbage,row"
    response = await client.post("/api/v1/data/import/csv", content=content)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "IMPORT_FAILED"

    patients = (await client.get("/api/v1/patients")).json()
    assert [p["id"] for p in patients] == [seed_patient.id]


async def test_import_runs_off_event_loop_thread(client: AsyncClient, mocker) -> None:
    threads = []
    real_import_data = data_transfer.import_data

    def recording_import_data(*args):
        threads.append(threading.get_ident())
        return real_import_data(*args)

    mocker.patch.object(data_transfer, "import_data", side_effect=recording_import_data)

    response = await client.post("/api/v1/data/import", content='{"alerts": []}')
    assert response.status_code == 200
    assert len(threads) == 1
    assert threads[0] != threading.get_ident()
