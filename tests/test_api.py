"""
HTTP endpoint tests through httpx against the ASGI app.
"""

import httpx
import pytest

from app.main import create_application

EIGHT = "Eight standard"
API = "/api/v1"


@pytest.fixture
async def client(settings, engine):
    app = create_application(settings, engine)
    app.state.engine = engine
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def create_subject(client, **overrides) -> dict:
    payload = {"name": "Mathematics", "max_ta": 40, "max_ce": 60, "target_classes": [EIGHT], **overrides}
    response = await client.post(f"{API}/subjects", json=payload)
    assert response.status_code == 200
    return response.json()


async def create_student(client, admission_no: str, name: str = "Student") -> dict:
    response = await client.post(
        f"{API}/students", json={"admission_no": admission_no, "name": name, "class_name": EIGHT}
    )
    assert response.status_code == 200
    return response.json()


class TestApi:
    """End-to-end request handling."""

    async def test_health_when_called_then_healthy(self, client):
        response = await client.get("/health")
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    async def test_marks_when_entered_then_student_reflects_totals_and_rank(self, client):
        subject = await create_subject(client, faculty_name="usman hudawi")
        assert subject["faculty_name"] == "Usman Hudawi"
        student = await create_student(client, "101", "Amina")

        response = await client.put(
            f"{API}/marks/{student['id']}/{subject['id']}", json={"ta": 20, "ce": "A"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["marks"][subject["id"]] == {"ta": 20, "ce": "A", "total": 20, "status": "Failed"}
        assert body["grand_total"] == 20
        assert body["rank"] == 1
        assert body["performance_level"] == "F (Failed)"

    async def test_marks_when_over_maximum_then_422_with_error_body(self, client):
        subject = await create_subject(client)
        student = await create_student(client, "101")

        response = await client.put(f"{API}/marks/{student['id']}/{subject['id']}/ta", json={"ta": 45})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_get_student_when_missing_then_404(self, client):
        response = await client.get(f"{API}/students/missing")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Student not found", "details": {"identifier": "missing"}},
        }

    async def test_enroll_when_general_subject_then_409(self, client):
        subject = await create_subject(client)
        student = await create_student(client, "101")
        response = await client.post(f"{API}/subjects/{subject['id']}/students/{student['id']}")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONSISTENCY_ERROR"

    async def test_list_students_when_paginated_then_page_returned(self, client):
        for i in range(3):
            await create_student(client, str(100 + i))
        response = await client.get(f"{API}/students", params={"page": 2, "page_size": 2})
        body = response.json()
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert len(body["items"]) == 1

    async def test_bulk_delete_when_unknown_id_then_reported(self, client):
        student = await create_student(client, "101")
        response = await client.post(f"{API}/students/bulk-delete", json={"student_ids": [student["id"], "nope"]})
        body = response.json()
        assert body["success_count"] == 1
        assert body["failed_count"] == 1
        assert body["errors"][0]["position"] == 1

    async def test_import_students_when_csv_uploaded_then_result_reported(self, client):
        content = b"Admission No,Name,Class\n101,Amina,Eight standard\n102,Bilal,Tenth\n"
        response = await client.post(
            f"{API}/imports/students", files={"file": ("students.csv", content, "text/csv")}
        )
        body = response.json()
        assert response.status_code == 200
        assert body["successful_rows"] == 1
        assert body["errors"][0]["row"] == 3

    async def test_import_when_extension_not_allowed_then_400(self, client):
        response = await client.post(
            f"{API}/imports/students", files={"file": ("students.txt", b"x", "text/plain")}
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UPLOAD_FAILED"

    async def test_export_marks_when_records_exist_then_workbook_downloaded(self, client):
        await create_subject(client)
        await create_student(client, "101")
        response = await client.get(f"{API}/exports/marks")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert response.content[:2] == b"PK"

    async def test_maintenance_when_recalculate_totals_then_job_result(self, client):
        await create_student(client, "101")
        response = await client.post(f"{API}/maintenance/recalculate-totals")
        assert response.status_code == 200
        assert response.json()["failed_count"] == 0

    async def test_supplementary_exam_when_marks_entered_then_completed(self, client):
        subject = await create_subject(client)
        student = await create_student(client, "101")
        created = await client.post(
            f"{API}/supplementary-exams",
            json={
                "student_id": student["id"],
                "subject_id": subject["id"],
                "original_year": 2025,
                "supplementary_year": 2026,
            },
        )
        assert created.status_code == 200
        exam = created.json()
        assert exam["status"] == "Pending"

        response = await client.put(f"{API}/supplementary-exams/{exam['id']}/marks", json={"ta": 20, "ce": 40})

        assert response.json()["status"] == "Completed"
        assert response.json()["marks"]["status"] == "Passed"
        listed = await client.get(f"{API}/supplementary-exams/by-subject/{subject['id']}/students", params={"year": 2026})
        assert [p["student"]["id"] for p in listed.json()] == [student["id"]]

    async def test_supplementary_exam_when_years_reversed_then_422(self, client):
        subject = await create_subject(client)
        student = await create_student(client, "101")
        response = await client.post(
            f"{API}/supplementary-exams",
            json={
                "student_id": student["id"],
                "subject_id": subject["id"],
                "original_year": 2026,
                "supplementary_year": 2025,
            },
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_maintenance_when_reset_then_everything_deleted(self, client):
        await create_subject(client)
        await create_student(client, "101")
        await create_student(client, "102")

        response = await client.post(f"{API}/maintenance/reset")

        assert response.json()["success_count"] == 3
        assert (await client.get(f"{API}/subjects")).json() == []
