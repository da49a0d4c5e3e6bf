from uuid import uuid4

import pytest

API = "/api/v1"


async def open_schedule(client, headers, branch_id) -> str:
    response = await client.get(f"{API}/schedules/", params={"branch_id": str(branch_id)}, headers=headers)
    assert response.status_code == 200
    return response.json()["id"]


def entry_body(schedule_id, doctor_id, day="SATURDAY", start="08:00", end="10:00", **extra):
    body = {
        "schedule_id": str(schedule_id),
        "doctor_id": str(doctor_id),
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
    }
    body.update(extra)
    return body


@pytest.mark.asyncio
async def test_requires_bearer_token(client, seed):
    response = await client.get(f"{API}/schedules/", params={"branch_id": str(seed.branch_north)})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_invalid_token(client, seed):
    response = await client.get(
        f"{API}/schedules/",
        params={"branch_id": str(seed.branch_north)},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_roles_without_cms_access(client, seed, editor_headers):
    response = await client.get(
        f"{API}/schedules/", params={"branch_id": str(seed.branch_north)}, headers=editor_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_schedule_creates_it_once(client, seed, admin_headers):
    first = await open_schedule(client, admin_headers, seed.branch_north)
    second = await open_schedule(client, admin_headers, seed.branch_north)
    assert first == second

    response = await client.get(
        f"{API}/schedules/", params={"branch_id": str(seed.branch_north)}, headers=admin_headers
    )
    body = response.json()
    assert body["branch_id"] == str(seed.branch_north)
    assert body["entries"] == []
    assert body["updated_by_id"] == str(seed.admin_id)


@pytest.mark.asyncio
async def test_get_schedule_unknown_branch(client, admin_headers):
    response = await client.get(f"{API}/schedules/", params={"branch_id": str(uuid4())}, headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Branch not found"}


@pytest.mark.asyncio
async def test_get_schedule_requires_branch_id(client, admin_headers):
    response = await client.get(f"{API}/schedules/", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_body"


@pytest.mark.asyncio
async def test_create_entry_and_read_back(client, seed, admin_headers):
    schedule_id = await open_schedule(client, admin_headers, seed.branch_north)

    response = await client.post(
        f"{API}/schedules/entries",
        json=entry_body(schedule_id, seed.doctor_sara, notes="Room 3"),
        headers=admin_headers,
    )
    assert response.status_code == 201
    created = response.json()
    assert created["ok"] is True

    response = await client.get(
        f"{API}/schedules/", params={"branch_id": str(seed.branch_north)}, headers=admin_headers
    )
    [entry] = response.json()["entries"]
    assert entry["id"] == created["id"]
    assert entry["day_of_week"] == "SATURDAY"
    assert entry["start_time"] == "08:00"
    assert entry["end_time"] == "10:00"
    assert entry["notes"] == "Room 3"
    assert entry["doctor"] == {"id": str(seed.doctor_sara), "name": "Dr. Sara", "specialty": "Cardiology"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"start": "8:00"},
        {"end": "10:00:00"},
        {"start": "25:00"},
        {"day": "SABBATH"},
        {"notes": "x" * 201},
    ],
)
async def test_create_entry_rejects_malformed_body(client, seed, admin_headers, overrides):
    schedule_id = await open_schedule(client, admin_headers, seed.branch_north)
    response = await client.post(
        f"{API}/schedules/entries",
        json=entry_body(schedule_id, seed.doctor_sara, **overrides),
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_body"


@pytest.mark.asyncio
async def test_create_entry_rejects_start_not_before_end(client, seed, admin_headers):
    schedule_id = await open_schedule(client, admin_headers, seed.branch_north)
    response = await client.post(
        f"{API}/schedules/entries",
        json=entry_body(schedule_id, seed.doctor_sara, start="10:00", end="10:00"),
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "must be before" in response.json()["detail"]


@pytest.mark.asyncio
async def test_cross_branch_overlap_returns_409(client, seed, admin_headers):
    north = await open_schedule(client, admin_headers, seed.branch_north)
    south = await open_schedule(client, admin_headers, seed.branch_south)
    await client.post(f"{API}/schedules/entries", json=entry_body(north, seed.doctor_sara), headers=admin_headers)

    response = await client.post(
        f"{API}/schedules/entries",
        json=entry_body(south, seed.doctor_sara, start="09:00", end="11:00"),
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json() == {
        "detail": "Dr. Sara already has a shift at branch 'North' on SATURDAY 08:00–10:00"
    }

    response = await client.post(
        f"{API}/schedules/entries",
        json=entry_body(south, seed.doctor_sara, start="10:00", end="12:00"),
        headers=admin_headers,
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_create_entry_unknown_schedule(client, seed, admin_headers):
    response = await client.post(
        f"{API}/schedules/entries", json=entry_body(uuid4(), seed.doctor_sara), headers=admin_headers
    )
    assert response.status_code == 404
    assert response.json() == {"detail": "Schedule not found"}


@pytest.mark.asyncio
async def test_patch_entry(client, seed, admin_headers):
    north = await open_schedule(client, admin_headers, seed.branch_north)
    created = await client.post(f"{API}/schedules/entries", json=entry_body(north, seed.doctor_sara), headers=admin_headers)
    entry_id = created.json()["id"]
    await client.post(
        f"{API}/schedules/entries",
        json=entry_body(north, seed.doctor_sara, start="10:30", end="12:00"),
        headers=admin_headers,
    )

    response = await client.patch(f"{API}/schedules/entries/{entry_id}", json={"end_time": "11:00"}, headers=admin_headers)
    assert response.status_code == 409

    response = await client.patch(
        f"{API}/schedules/entries/{entry_id}", json={"end_time": "10:30", "notes": None}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_patch_rejects_null_time(client, seed, admin_headers):
    north = await open_schedule(client, admin_headers, seed.branch_north)
    created = await client.post(f"{API}/schedules/entries", json=entry_body(north, seed.doctor_sara), headers=admin_headers)

    response = await client.patch(
        f"{API}/schedules/entries/{created.json()['id']}", json={"start_time": None}, headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_patch_and_delete_unknown_entry(client, admin_headers):
    missing = uuid4()
    response = await client.patch(f"{API}/schedules/entries/{missing}", json={"notes": "x"}, headers=admin_headers)
    assert response.status_code == 404

    response = await client.delete(f"{API}/schedules/entries/{missing}", headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"detail": "Schedule entry not found"}


@pytest.mark.asyncio
async def test_delete_entry(client, seed, admin_headers):
    north = await open_schedule(client, admin_headers, seed.branch_north)
    created = await client.post(f"{API}/schedules/entries", json=entry_body(north, seed.doctor_sara), headers=admin_headers)

    response = await client.delete(f"{API}/schedules/entries/{created.json()['id']}", headers=admin_headers)
    assert response.status_code == 200

    response = await client.get(f"{API}/schedules/", params={"branch_id": str(seed.branch_north)}, headers=admin_headers)
    assert response.json()["entries"] == []


@pytest.mark.asyncio
async def test_doctor_entries_and_stats(client, seed, admin_headers):
    north = await open_schedule(client, admin_headers, seed.branch_north)
    await client.post(f"{API}/schedules/entries", json=entry_body(north, seed.doctor_sara), headers=admin_headers)

    response = await client.get(f"{API}/schedules/doctors/{seed.doctor_sara}/entries", headers=admin_headers)
    assert response.status_code == 200
    [entry] = response.json()
    assert entry["branch_name"] == "North"
    assert entry["start_time"] == "08:00"

    response = await client.get(f"{API}/schedules/stats", headers=admin_headers)
    assert response.json() == {"schedules": 1, "entries": 1}


@pytest.mark.asyncio
async def test_directories(client, seed, admin_headers):
    response = await client.get(f"{API}/doctors/", headers=admin_headers)
    assert response.status_code == 200
    assert [d["name"] for d in response.json()] == ["Dr. Reza", "Dr. Sara"]

    response = await client.get(f"{API}/branches/", headers=admin_headers)
    assert [b["key"] for b in response.json()] == ["east", "north", "south"]

    response = await client.get(f"{API}/branches/{uuid4()}", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_read_single_branch(client, seed, admin_headers):
    response = await client.get(f"{API}/branches/{seed.branch_north}", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == str(seed.branch_north)
    assert body["key"] == "north"
    assert body["name"] == "North"
