import uuid
from unittest.mock import AsyncMock

from portal.backend.db.store import StoreError

SHEET = "/api/v1/attendance/csc/CSC102"


def _student(sheet_json: dict, student_id: str) -> dict:
    return next(s for s in sheet_json["students"] if s["id"] == student_id)


# --- Opening the sheet ---

def test_open_sheet_generates_roster(client, auth_headers):
    response = client.get(SHEET, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["course_code"] == "CSC102"
    assert data["classes_held"] == 0
    assert data["marked_ids"] == []
    assert data["saving"] is False
    assert len(data["students"]) == 50
    assert data["students"][0]["matric_no"] == "LASU/CSC/2023/001"
    assert all(s["attendance_percentage"] == 0.0 for s in data["students"])


def test_sheet_requires_login(client):
    assert client.get(SHEET).status_code == 401


def test_unknown_course_is_404(client, auth_headers):
    assert client.get("/api/v1/attendance/csc/MTH102", headers=auth_headers).status_code == 404
    assert client.get("/api/v1/attendance/medicine/CSC102", headers=auth_headers).status_code == 404


def test_course_code_in_path_is_case_insensitive(client, auth_headers):
    response = client.get("/api/v1/attendance/csc/csc102", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["course_code"] == "CSC102"


# --- Marks ---

def test_toggle_mark(client, auth_headers):
    first = client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)
    assert first.status_code == 200
    assert first.json() == {"student_id": "student-csc-1", "marked": True, "marked_ids": ["student-csc-1"]}

    second = client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)
    assert second.json()["marked"] is False

    # Toggling never touches storage.
    assert client.get(SHEET, headers=auth_headers).json()["classes_held"] == 0


def test_toggle_unknown_student_is_404(client, auth_headers):
    assert client.post(f"{SHEET}/marks/student-csc-999", headers=auth_headers).status_code == 404


def test_clear_marks(client, auth_headers):
    client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)
    assert client.delete(f"{SHEET}/marks", headers=auth_headers).status_code == 204
    assert client.get(SHEET, headers=auth_headers).json()["marked_ids"] == []


def test_marks_belong_to_one_login(client, auth_headers, login):
    client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)
    other = login(course_code="PHY102", name="Dr. Bola")

    assert client.get(SHEET, headers=other).json()["marked_ids"] == []


def test_logout_forgets_marks(client, login):
    headers = login()
    client.post(f"{SHEET}/marks/student-csc-1", headers=headers)
    client.post("/api/v1/auth/logout", headers=headers)

    fresh = login()
    assert client.get(SHEET, headers=fresh).json()["marked_ids"] == []


# --- Saving ---

def test_save_toggled_marks(client, auth_headers):
    client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)

    response = client.post(f"{SHEET}/save", json={}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["saved"] is True
    assert data["classes_held"] == 1
    assert data["marked_ids"] == []
    assert data["session"]["week"] == 1
    assert _student(data, "student-csc-1")["attendance_percentage"] == 100.0
    assert _student(data, "student-csc-2")["attendance_percentage"] == 0.0


def test_two_saves_recompute_percentages(client, auth_headers):
    client.post(f"{SHEET}/save", json={"student_ids": ["student-csc-1"]}, headers=auth_headers)
    data = client.post(f"{SHEET}/save", json={"student_ids": ["student-csc-1", "student-csc-2"]}, headers=auth_headers).json()

    assert data["classes_held"] == 2
    assert _student(data, "student-csc-1")["classes_attended"] == 2
    assert _student(data, "student-csc-1")["attendance_percentage"] == 100.0
    assert _student(data, "student-csc-2")["attendance_percentage"] == 50.0
    assert _student(data, "student-csc-3")["attendance_percentage"] == 0.0


def test_save_with_nobody_marked_records_nothing(client, auth_headers):
    client.post(f"{SHEET}/save", json={"student_ids": ["student-csc-1"]}, headers=auth_headers)

    response = client.post(f"{SHEET}/save", json={}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["saved"] is False
    assert response.json()["classes_held"] == 1
    assert len(client.get(f"{SHEET}/sessions", headers=auth_headers).json()) == 1


def test_resending_a_save_does_not_count_twice(client, auth_headers):
    payload = {"session_id": str(uuid.uuid4()), "student_ids": ["student-csc-1"]}

    first = client.post(f"{SHEET}/save", json=payload, headers=auth_headers).json()
    retry = client.post(f"{SHEET}/save", json=payload, headers=auth_headers).json()

    assert first["saved"] is True
    assert retry["saved"] is False
    assert retry["duplicate"] is True
    assert retry["classes_held"] == 1
    assert retry["session"]["session_id"] == payload["session_id"]


def test_save_unknown_student_is_rejected(client, auth_headers):
    response = client.post(f"{SHEET}/save", json={"student_ids": ["student-csc-999"]}, headers=auth_headers)
    assert response.status_code == 400
    assert client.get(SHEET, headers=auth_headers).json()["classes_held"] == 0


def test_save_while_another_is_in_flight_conflicts(client, auth_headers):
    client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)
    client.app.state.registry.begin_save("csc", "CSC102")

    response = client.post(f"{SHEET}/save", json={}, headers=auth_headers)

    assert response.status_code == 409
    assert client.get(SHEET, headers=auth_headers).json()["saving"] is True
    client.app.state.registry.end_save("csc", "CSC102")


def test_storage_failure_keeps_marks_and_state(client, store, auth_headers):
    client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)
    store.commit_session = AsyncMock(side_effect=StoreError("connection reset"))

    response = client.post(f"{SHEET}/save", json={}, headers=auth_headers)

    assert response.status_code == 503
    sheet = client.get(SHEET, headers=auth_headers).json()
    assert sheet["classes_held"] == 0
    assert sheet["marked_ids"] == ["student-csc-1"]
    assert sheet["saving"] is False


# --- History ---

def test_session_history_and_records(client, auth_headers):
    saved = client.post(f"{SHEET}/save", json={"student_ids": ["student-csc-2", "student-csc-1"]}, headers=auth_headers).json()

    sessions = client.get(f"{SHEET}/sessions", headers=auth_headers).json()
    assert len(sessions) == 1
    assert sessions[0]["present_count"] == 2
    assert sessions[0]["session_id"] == saved["session"]["session_id"]

    records = client.get(f"/api/v1/attendance/sessions/{sessions[0]['session_id']}/records", headers=auth_headers).json()
    assert sorted(r["student_id"] for r in records) == ["student-csc-1", "student-csc-2"]


def test_records_of_unknown_session_is_404(client, auth_headers):
    response = client.get(f"/api/v1/attendance/sessions/{uuid.uuid4()}/records", headers=auth_headers)
    assert response.status_code == 404


def test_session_id_reused_on_another_course_conflicts(client, auth_headers):
    session_id = str(uuid.uuid4())
    client.post(f"{SHEET}/save", json={"session_id": session_id, "student_ids": ["student-csc-1"]}, headers=auth_headers)
    other_sheet = "/api/v1/attendance/csc/CSC104"
    client.post(f"{other_sheet}/marks/student-csc-1", headers=auth_headers)

    response = client.post(f"{other_sheet}/save", json={"session_id": session_id}, headers=auth_headers)

    assert response.status_code == 409
    sheet = client.get(other_sheet, headers=auth_headers).json()
    assert sheet["classes_held"] == 0
    assert sheet["marked_ids"] == ["student-csc-1"]


def test_sheets_without_marks_are_not_kept(client, auth_headers):
    registry = client.app.state.registry

    client.get(SHEET, headers=auth_headers)
    client.get("/api/v1/attendance/csc/CSC104", headers=auth_headers)
    assert registry.open_sheet_count() == 0

    client.post(f"{SHEET}/marks/student-csc-1", headers=auth_headers)
    assert registry.open_sheet_count() == 1

    client.post(f"{SHEET}/save", json={}, headers=auth_headers)
    assert registry.open_sheet_count() == 0

    client.post(f"{SHEET}/marks/student-csc-2", headers=auth_headers)
    client.delete(f"{SHEET}/marks", headers=auth_headers)
    assert registry.open_sheet_count() == 0
