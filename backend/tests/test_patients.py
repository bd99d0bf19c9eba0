"""Patient and visit endpoint tests."""

from __future__ import annotations

from httpx import AsyncClient


async def test_list_patients_empty(client: AsyncClient) -> None:
    response = await client.get("/api/v1/patients")
    assert response.status_code == 200
    assert response.json() == []


async def test_list_patients(client: AsyncClient, seed_patient) -> None:
    response = await client.get("/api/v1/patients")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["name"] == "Test Patient"
    assert data[0]["contactInfo"] == "test.patient@example.com"


async def test_list_patients_search_and_sort(client: AsyncClient, seed_patient) -> None:
    await client.post("/api/v1/patients", json={"name": "Aaron", "age": 20})

    response = await client.get("/api/v1/patients", params={"sort_by": "age", "order": "desc"})
    assert [p["name"] for p in response.json()] == ["Test Patient", "Aaron"]

    response = await client.get("/api/v1/patients", params={"search": "example.com"})
    assert [p["name"] for p in response.json()] == ["Test Patient"]


async def test_list_patients_rejects_unknown_sort(client: AsyncClient) -> None:
    response = await client.get("/api/v1/patients", params={"sort_by": "height"})
    assert response.status_code == 422


async def test_get_patient(client: AsyncClient, seed_patient) -> None:
    response = await client.get(f"/api/v1/patients/{seed_patient.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Test Patient"
    assert data["gender"] == "female"
    assert data["visits"][0]["symptoms"] == ["fever", "cough"]
    assert data["visits"][0]["healingDuration"] == 7


async def test_get_patient_not_found(client: AsyncClient) -> None:
    response = await client.get("/api/v1/patients/999")
    assert response.status_code == 404
    detail = response.json()["detail"]
    assert detail["code"] == "PATIENT_NOT_FOUND"
    assert "999" in detail["message"]


async def test_create_patient_normalizes(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/patients",
        json={"name": "New", "age": "-3", "gender": "unknown", "visits": "nope"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["id"]
    assert data["age"] == 0
    assert data["gender"] == "male"
    assert data["visits"] == []
    assert data["createdAt"] == data["updatedAt"]


async def test_update_patient(client: AsyncClient, seed_patient) -> None:
    response = await client.patch(
        f"/api/v1/patients/{seed_patient.id}",
        json={"age": 68, "id": "hijack"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == seed_patient.id
    assert data["age"] == 68
    assert data["name"] == "Test Patient"


async def test_update_patient_not_found(client: AsyncClient) -> None:
    response = await client.patch("/api/v1/patients/missing", json={"age": 1})
    assert response.status_code == 404


async def test_delete_patient(client: AsyncClient, seed_patient) -> None:
    response = await client.delete(f"/api/v1/patients/{seed_patient.id}")
    assert response.status_code == 204

    response = await client.delete(f"/api/v1/patients/{seed_patient.id}")
    assert response.status_code == 404


async def test_patient_trends(client: AsyncClient, seed_patient) -> None:
    response = await client.get(f"/api/v1/patients/{seed_patient.id}/trends")
    assert response.status_code == 200
    data = response.json()
    assert data["patientId"] == seed_patient.id
    assert data["status"] == "Stable"
    assert data["trends"]["trend"] == "Insufficient data"
    assert data["insights"]["averageHealingDuration"] == 7


async def test_visit_lifecycle(client: AsyncClient, seed_patient) -> None:
    base = f"/api/v1/patients/{seed_patient.id}/visits"
    response = await client.post(
        base,
        json={"date": "2024-02-01", "symptoms": ["rash"], "severity": "severe", "healingDuration": 3},
    )
    assert response.status_code == 201
    visit = response.json()
    assert visit["severity"] == "severe"

    response = await client.patch(f"{base}/{visit['id']}", json={"notes": "follow up"})
    assert response.status_code == 200
    assert response.json()["notes"] == "follow up"
    assert response.json()["symptoms"] == ["rash"]

    patient = (await client.get(f"/api/v1/patients/{seed_patient.id}")).json()
    assert len(patient["visits"]) == 2

    response = await client.delete(f"{base}/{visit['id']}")
    assert response.status_code == 204
    response = await client.delete(f"{base}/{visit['id']}")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "VISIT_NOT_FOUND"


async def test_add_visit_to_missing_patient(client: AsyncClient) -> None:
    response = await client.post("/api/v1/patients/missing/visits", json={"symptoms": ["cough"]})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "PATIENT_NOT_FOUND"
