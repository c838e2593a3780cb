"""API tests for the deleted-records view and restore."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from httpx import AsyncClient

BASE = "/api/v1/deleted-records"


@pytest.mark.asyncio
async def test_doctor_delete_restore_scenario(
    client: AsyncClient,
    admin_headers: dict[str, str],
) -> None:
    """Create, soft-delete and restore a doctor; every view follows along."""
    payload = {"name": "Dr. Jane Smith", "specialization": "Cardiology", "experience": 5}
    created = (await client.post("/api/v1/doctors", json=payload, headers=admin_headers)).json()["data"]
    doctor_id = created["id"]

    async def active_ids() -> list[str]:
        response = await client.get("/api/v1/doctors", headers=admin_headers)
        return [d["id"] for d in response.json()["data"]]

    async def option_ids() -> list[str]:
        response = await client.get("/api/v1/patients/doctor-options", headers=admin_headers)
        return [o["id"] for o in response.json()["data"]]

    async def deleted_ids() -> list[str]:
        response = await client.get(f"{BASE}/doctors", headers=admin_headers)
        return [d["id"] for d in response.json()["data"]]

    assert await active_ids() == [doctor_id]
    assert await option_ids() == [doctor_id]
    assert await deleted_ids() == []

    await client.delete(f"/api/v1/doctors/{doctor_id}", headers=admin_headers)
    assert await active_ids() == []
    assert await option_ids() == []
    assert await deleted_ids() == [doctor_id]

    response = await client.post(f"{BASE}/doctors/{doctor_id}/restore", headers=admin_headers)
    assert response.status_code == 200
    result = response.json()["data"]
    assert result["changed"] is True
    assert result["record"]["deleted_at"] is None

    assert await active_ids() == [doctor_id]
    assert await option_ids() == [doctor_id]
    assert await deleted_ids() == []

    restored = result["record"]
    for field in ("id", "name", "specialization", "experience", "email", "phone", "created_at"):
        assert restored[field] == created[field]


@pytest.mark.asyncio
async def test_restore_writes_restore_audit_entry(
    client: AsyncClient,
    admin_headers: dict[str, str],
    admin_user,
    sample_patient_data: dict,
) -> None:
    patient = (await client.post("/api/v1/patients", json=sample_patient_data, headers=admin_headers)).json()["data"]
    await client.delete(f"/api/v1/patients/{patient['id']}", headers=admin_headers)
    await client.post(f"{BASE}/patients/{patient['id']}/restore", headers=admin_headers)

    audit = await client.get("/api/v1/audit-logs", params={"record_id": patient["id"]}, headers=admin_headers)

    entries = audit.json()["data"]
    assert [e["action"] for e in entries] == ["RESTORE", "SOFT_DELETE", "INSERT"]
    assert {e["table_name"] for e in entries} == {"patients"}
    assert {e["user_id"] for e in entries} == {admin_user.id}


@pytest.mark.asyncio
async def test_restore_active_record_is_noop(
    client: AsyncClient,
    admin_headers: dict[str, str],
    sample_patient_data: dict,
) -> None:
    patient = (await client.post("/api/v1/patients", json=sample_patient_data, headers=admin_headers)).json()["data"]

    response = await client.post(f"{BASE}/patients/{patient['id']}/restore", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["changed"] is False
    audit = await client.get(
        "/api/v1/audit-logs",
        params={"record_id": patient["id"], "action": "RESTORE"},
        headers=admin_headers,
    )
    assert audit.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_restore_unknown_record(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.post(f"{BASE}/doctors/missing/restore", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "DOCTOR_NOT_FOUND"


@pytest.mark.asyncio
async def test_unknown_table_is_rejected(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.get(f"{BASE}/audit_logs", headers=admin_headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_overview_most_recently_deleted_first(
    client: AsyncClient,
    admin_headers: dict[str, str],
) -> None:
    ids = []
    for name in ("First", "Second", "Third"):
        patient = (await client.post("/api/v1/patients", json={"name": name, "age": 30}, headers=admin_headers)).json()["data"]
        ids.append(patient["id"])
    doctor = (await client.post("/api/v1/doctors", json={"name": "Dr. Who"}, headers=admin_headers)).json()["data"]

    # Delete in an order different from creation
    for patient_id in (ids[1], ids[0], ids[2]):
        await client.delete(f"/api/v1/patients/{patient_id}", headers=admin_headers)
    await client.delete(f"/api/v1/doctors/{doctor['id']}", headers=admin_headers)

    response = await client.get(BASE, headers=admin_headers)

    assert response.status_code == 200
    overview = response.json()["data"]
    assert [p["id"] for p in overview["patients"]] == [ids[2], ids[0], ids[1]]
    assert [d["id"] for d in overview["doctors"]] == [doctor["id"]]
    assert overview["patient_count"] == 3
    assert overview["doctor_count"] == 1


@pytest.mark.asyncio
async def test_deleted_view_is_paginated(
    client: AsyncClient,
    admin_headers: dict[str, str],
) -> None:
    for i in range(3):
        doctor = (await client.post("/api/v1/doctors", json={"name": f"Dr. {i}"}, headers=admin_headers)).json()["data"]
        await client.delete(f"/api/v1/doctors/{doctor['id']}", headers=admin_headers)

    response = await client.get(f"{BASE}/doctors", params={"page_size": 2}, headers=admin_headers)

    assert len(response.json()["data"]) == 2
    assert response.json()["pagination"]["total"] == 3


@pytest.mark.asyncio
async def test_restore_keeps_attachment_reachable_when_purge_disabled(
    client: AsyncClient,
    admin_headers: dict[str, str],
    blob_store,
    settings,
    png_bytes: bytes,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(settings, "PURGE_ATTACHMENTS_ON_SOFT_DELETE", False)
    doctor = (await client.post("/api/v1/doctors", json={"name": "Dr. Photo"}, headers=admin_headers)).json()["data"]
    uploaded = await client.put(
        f"/api/v1/doctors/{doctor['id']}/image",
        files={"file": ("me.png", png_bytes, "image/png")},
        headers=admin_headers,
    )
    path = uploaded.json()["data"]["image_path"]

    await client.delete(f"/api/v1/doctors/{doctor['id']}", headers=admin_headers)
    assert await blob_store.exists(settings.DOCTOR_IMAGES_BUCKET, path)

    restored = await client.post(f"{BASE}/doctors/{doctor['id']}/restore", headers=admin_headers)
    assert restored.json()["data"]["record"]["image_path"] == path
    assert (await client.get(restored.json()["data"]["record"]["image_url"])).status_code == 200


@pytest.mark.asyncio
async def test_soft_delete_purges_attachment_but_keeps_fields(
    client: AsyncClient,
    admin_headers: dict[str, str],
    blob_store,
    settings,
    png_bytes: bytes,
) -> None:
    """With purge enabled (default) the blob goes; the row still records its old path."""
    assert settings.PURGE_ATTACHMENTS_ON_SOFT_DELETE is True
    doctor = (await client.post("/api/v1/doctors", json={"name": "Dr. Photo"}, headers=admin_headers)).json()["data"]
    uploaded = await client.put(
        f"/api/v1/doctors/{doctor['id']}/image",
        files={"file": ("me.png", png_bytes, "image/png")},
        headers=admin_headers,
    )
    path = uploaded.json()["data"]["image_path"]

    deleted = await client.delete(f"/api/v1/doctors/{doctor['id']}", headers=admin_headers)

    assert deleted.json()["data"]["record"]["image_path"] == path
    assert not await blob_store.exists(settings.DOCTOR_IMAGES_BUCKET, path)
