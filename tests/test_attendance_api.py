import pytest


@pytest.fixture
async def students(client):
    alice = (await client.post("/api/students", json={"roll_no": "101", "name": "Alice"})).json()
    bob = (await client.post("/api/students", json={"roll_no": "102", "name": "Bob"})).json()
    return alice, bob


async def test_roster_for_date_shows_unmarked_as_null(client, students):
    alice, _ = students
    await client.post("/api/attendance", json={"student_id": alice["id"], "date": "2024-01-10", "status": "present"})

    rows = (await client.get("/api/attendance/2024-01-10")).json()

    assert [(r["roll_no"], r["status"]) for r in rows] == [("101", "present"), ("102", None)]


async def test_mark_attendance_upserts(client, students):
    alice, _ = students
    payload = {"student_id": alice["id"], "date": "2024-01-10", "status": "present"}

    first = await client.post("/api/attendance", json=payload)
    second = await client.post("/api/attendance", json={**payload, "status": "absent"})

    assert first.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["status"] == "absent"
    summary = (await client.get("/api/attendance/2024-01-10/summary")).json()
    assert summary == {"present_count": 0, "absent_count": 1, "total_count": 1}


async def test_mark_attendance_invalid_status(client, students):
    alice, _ = students

    response = await client.post("/api/attendance", json={"student_id": alice["id"], "date": "2024-01-10", "status": "late"})

    assert response.status_code == 400


async def test_bulk_then_summary(client, students):
    alice, bob = students
    records = [
        {"student_id": alice["id"], "date": "2024-01-10", "status": "present"},
        {"student_id": bob["id"], "date": "2024-01-10", "status": "absent"},
    ]

    response = await client.post("/api/attendance/bulk", json={"records": records})

    assert response.status_code == 200
    assert response.json()["count"] == 2
    summary = (await client.get("/api/attendance/2024-01-10/summary")).json()
    assert summary == {"present_count": 1, "absent_count": 1, "total_count": 2}


@pytest.mark.parametrize("body", [{}, {"records": "nope"}, {"records": None}])
async def test_bulk_malformed_body(client, body):
    response = await client.post("/api/attendance/bulk", json=body)

    assert response.status_code == 400


async def test_bulk_unknown_student_rolls_back(client, students):
    alice, _ = students
    records = [
        {"student_id": alice["id"], "date": "2024-01-10", "status": "present"},
        {"student_id": 999, "date": "2024-01-10", "status": "absent"},
    ]

    response = await client.post("/api/attendance/bulk", json={"records": records})

    assert response.status_code == 500
    assert (await client.get("/api/attendance/2024-01-10/summary")).json()["total_count"] == 0


async def test_invalid_date_in_path(client):
    response = await client.get("/api/attendance/not-a-date")

    assert response.status_code == 400


async def test_history(client, students):
    alice, bob = students
    await client.post("/api/attendance/bulk", json={"records": [
        {"student_id": alice["id"], "date": "2024-01-09", "status": "present"},
        {"student_id": alice["id"], "date": "2024-01-10", "status": "present"},
        {"student_id": bob["id"], "date": "2024-01-10", "status": "absent"},
    ]})

    rows = (await client.get("/api/attendance/history")).json()

    assert rows == [
        {"date": "2024-01-10", "present_count": 1, "absent_count": 1, "total_count": 2},
        {"date": "2024-01-09", "present_count": 1, "absent_count": 0, "total_count": 1},
    ]


async def test_delete_single_mark(client, students):
    alice, _ = students
    mark = (await client.post("/api/attendance", json={"student_id": alice["id"], "date": "2024-01-10", "status": "present"})).json()

    deleted = await client.delete(f"/api/attendance/{mark['id']}")
    missing = await client.delete(f"/api/attendance/{mark['id']}")

    assert deleted.status_code == 200
    assert missing.status_code == 404


async def test_delete_by_date(client, students):
    alice, bob = students
    await client.post("/api/attendance/bulk", json={"records": [
        {"student_id": alice["id"], "date": "2024-01-10", "status": "present"},
        {"student_id": bob["id"], "date": "2024-01-10", "status": "absent"},
    ]})

    response = await client.delete("/api/attendance/date/2024-01-10")
    again = await client.delete("/api/attendance/date/2024-01-10")

    assert response.status_code == 200
    assert response.json()["deletedCount"] == 2
    assert again.status_code == 404


async def test_delete_all(client, students):
    alice, _ = students
    await client.post("/api/attendance", json={"student_id": alice["id"], "date": "2024-01-10", "status": "present"})

    response = await client.delete("/api/attendance/all")
    empty = await client.delete("/api/attendance/all")

    assert response.json()["deletedCount"] == 1
    assert empty.status_code == 200
    assert empty.json()["deletedCount"] == 0
