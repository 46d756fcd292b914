import os

from conftest import write_sheet

SHEET = [["Roll", "Name", "Email"], ["101", "Alice", "a@x.com"], ["102", "Bob", ""]]


def xlsx_upload(path):
    with open(path, "rb") as fh:
        return {"excel": (os.path.basename(path), fh.read(),
                          "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")}


async def test_upload_roster_then_list(client, tmp_path, upload_dir):
    path = write_sheet(tmp_path / "roster.xlsx", SHEET)

    response = await client.post("/api/students/upload", files=xlsx_upload(path))

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [s["roll_no"] for s in body["students"]] == ["101", "102"]
    assert os.listdir(upload_dir) == []

    students = (await client.get("/api/students")).json()
    assert [(s["roll_no"], s["name"]) for s in students] == [("101", "Alice"), ("102", "Bob")]


async def test_upload_same_sheet_twice(client, tmp_path):
    path = write_sheet(tmp_path / "roster.xlsx", [["Roll", "Name"], ["101", "Alice"]])

    first = await client.post("/api/students/upload", files=xlsx_upload(path))
    second = await client.post("/api/students/upload", files=xlsx_upload(path))

    assert first.json()["count"] == 1
    assert second.json()["count"] == 0
    assert len((await client.get("/api/students")).json()) == 1


async def test_upload_without_file(client):
    response = await client.post("/api/students/upload", files={"other": ("notes.txt", b"hello")})

    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded"


async def test_upload_missing_columns(client, tmp_path, upload_dir):
    path = write_sheet(tmp_path / "roster.xlsx", [["Email", "Phone"], ["a@x.com", "555"]])

    response = await client.post("/api/students/upload", files=xlsx_upload(path))

    assert response.status_code == 400
    assert "Required columns" in response.json()["detail"]
    assert os.listdir(upload_dir) == []


async def test_upload_unreadable_file(client, upload_dir):
    files = {"excel": ("roster.xlsx", b"definitely not excel", "application/octet-stream")}

    response = await client.post("/api/students/upload", files=files)

    assert response.status_code == 500
    assert os.listdir(upload_dir) == []


async def test_create_student(client):
    response = await client.post("/api/students", json={"roll_no": "201", "name": "Dana", "email": "d@x.com"})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] > 0
    assert body["roll_no"] == "201"
    assert body["email"] == "d@x.com"


async def test_create_student_duplicate_roll(client):
    await client.post("/api/students", json={"roll_no": "201", "name": "Dana"})

    response = await client.post("/api/students", json={"roll_no": "201", "name": "Other"})

    assert response.status_code == 500
    assert "UNIQUE" in response.json()["detail"]


async def test_create_student_missing_name(client):
    response = await client.post("/api/students", json={"roll_no": "201"})

    assert response.status_code == 400


async def test_delete_student(client):
    student = (await client.post("/api/students", json={"roll_no": "301", "name": "Eve"})).json()
    await client.post("/api/attendance", json={"student_id": student["id"], "date": "2024-01-10", "status": "present"})

    response = await client.delete(f"/api/students/{student['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Student deleted successfully"}
    assert (await client.get("/api/attendance/2024-01-10")).json() == []
    assert (await client.get("/api/attendance/2024-01-10/summary")).json()["total_count"] == 0


async def test_delete_unknown_student(client):
    response = await client.delete("/api/students/999")

    assert response.status_code == 404
    assert response.json()["detail"] == "Student not found"


async def test_student_attendance_report(client):
    student = (await client.post("/api/students", json={"roll_no": "401", "name": "Finn"})).json()

    empty = await client.get(f"/api/students/{student['id']}/attendance")
    assert empty.status_code == 200
    assert empty.json()["percentage"] == 0
    assert empty.json()["records"] == []

    await client.post("/api/attendance", json={"student_id": student["id"], "date": "2024-01-09", "status": "absent"})
    await client.post("/api/attendance", json={"student_id": student["id"], "date": "2024-01-10", "status": "present"})

    report = (await client.get(f"/api/students/{student['id']}/attendance")).json()
    assert report["student"]["roll_no"] == "401"
    assert [r["date"] for r in report["records"]] == ["2024-01-10", "2024-01-09"]
    assert report["percentage"] == 50.0


async def test_student_attendance_unknown(client):
    response = await client.get("/api/students/999/attendance")

    assert response.status_code == 404
