from conftest import PASSWORD, login

from attendqr.models import Attendance, ClassEnrollment, User

IMPORT_CSV = (
    "Date,Time,Student Name,Student Email,Class Name,Course Code\n"
    "2025-03-03,09:00:00,Alice Johnson,alice@example.com,Introduction to Computing,CSC101\n"
)


def test_dashboard_counts(db, admin_client, course, second_student):
    dashboard = admin_client.get("/admin/dashboard").json()
    assert dashboard["total_students"] == 2
    assert dashboard["total_lecturers"] == 1
    assert dashboard["total_classes"] == 1
    assert dashboard["sessions_today"] == 0


def test_add_student_with_enrollment(db, admin_client, course, make_client):
    response = admin_client.post("/admin/students", json={
        "email": "carol@example.com", "full_name": "Carol White", "school_id": "S2023/103", "class_id": course.id,
    })
    assert response.status_code == 201
    temp_password = response.json()["temp_password"]
    assert temp_password.startswith("carol")

    carol = db.query(User).filter(User.email == "carol@example.com").one()
    assert db.query(ClassEnrollment).filter(ClassEnrollment.student_id == carol.id).count() == 1

    client = make_client()
    login(client, "carol@example.com", temp_password)


def test_add_student_duplicate_school_id(db, admin_client, student):
    response = admin_client.post("/admin/students", json={
        "email": "carol@example.com", "full_name": "Carol White", "school_id": student.school_id,
    })
    assert response.status_code == 409


def test_upload_student_roster(db, admin_client, course):
    content = b"email,full_name,student_id\ncarol@example.com,Carol White,S2023/103\ndan@example.com,Dan Green,\n"
    response = admin_client.post(
        f"/admin/students/upload?class_id={course.id}",
        files={"file": ("students.csv", content, "text/csv")},
    )
    assert response.status_code == 201, response.text
    assert [s["email"] for s in response.json()["created"]] == ["carol@example.com", "dan@example.com"]
    assert db.query(ClassEnrollment).filter(ClassEnrollment.class_id == course.id).count() == 3


def test_upload_rejects_non_csv(db, admin_client):
    response = admin_client.post(
        "/admin/students/upload",
        files={"file": ("students.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400


def test_bulk_deactivate_blocks_login(db, admin_client, student, make_client):
    response = admin_client.post("/admin/students/status", json={"student_ids": [student.id], "status": "inactive"})
    assert response.json() == {"updated": 1, "status": "inactive"}

    client = make_client()
    assert client.post("/login", json={"email": student.email, "password": PASSWORD}).status_code == 403


def test_bulk_actions_reject_unknown_ids(db, admin_client, student):
    response = admin_client.post("/admin/students/status", json={"student_ids": [student.id, 999], "status": "inactive"})
    assert response.status_code == 404


def test_bulk_reset_passwords(db, admin_client, student, make_client):
    reset = admin_client.post("/admin/students/reset-passwords", json={"student_ids": [student.id]}).json()["reset"]

    client = make_client()
    assert client.post("/login", json={"email": student.email, "password": PASSWORD}).status_code == 401
    login(client, student.email, reset[0]["temp_password"])


def test_bulk_assign_and_delete(db, admin_client, course, student, second_student):
    assigned = admin_client.post("/admin/students/assign", json={
        "student_ids": [student.id, second_student.id], "class_id": course.id,
    }).json()
    assert assigned == {"enrolled": 1, "already_enrolled": 1}

    deleted = admin_client.post("/admin/students/delete", json={"student_ids": [second_student.id]}).json()
    assert deleted == {"deleted": 1}
    assert db.query(User).filter(User.role == "student").count() == 1
    assert db.query(ClassEnrollment).count() == 1


def test_lecturers_and_class_assignment(db, admin_client, course):
    created = admin_client.post("/admin/lecturers", json={"email": "new@example.com", "full_name": "Dr. New"})
    assert created.status_code == 201
    new_id = created.json()["id"]

    assert admin_client.post(f"/admin/classes/{course.id}/assign-lecturer", json={"lecturer_id": new_id}).json() == {
        "class_id": course.id, "lecturer_id": new_id,
    }
    classes = admin_client.get("/admin/classes").json()
    assert classes[0]["lecturer"] == "Dr. New"
    assert classes[0]["available_slots"] == 29

    lecturers = {l["email"]: l["classes"] for l in admin_client.get("/admin/lecturers").json()}
    assert lecturers == {"lecturer@example.com": 0, "new@example.com": 1}


def test_import_attendance_csv(db, admin_client, course, student):
    response = admin_client.post("/admin/import", files={"file": ("attendance.csv", IMPORT_CSV.encode(), "text/csv")})
    assert response.status_code == 200, response.text
    assert response.json()["imported"] == 1
    assert db.query(Attendance).count() == 1

    export = admin_client.get("/admin/reports.csv").text.splitlines()
    assert export[0] == '"Date","Time","Class","Course Code","Student Name","Status","Marked Time"'
    assert export[1] == '"2025-03-03","09:00:00","Introduction to Computing","CSC101","Alice Johnson","present","09:00:00"'


def test_import_reports_invalid_rows(db, admin_client, course, student):
    bad = IMPORT_CSV + "2025-03-04,9:00am,Alice Johnson,alice@example.com,Introduction to Computing,CSC101\n"
    response = admin_client.post("/admin/import", files={"file": ("attendance.csv", bad.encode(), "text/csv")})

    assert response.status_code == 400
    assert response.json()["invalid_rows"] == [3]
    assert db.query(Attendance).count() == 0


def test_import_with_impossible_date_is_rejected(db, admin_client, course, student):
    bad = IMPORT_CSV + "2024-13-45,09:00:00,Alice Johnson,alice@example.com,Introduction to Computing,CSC101\n"
    response = admin_client.post("/admin/import", files={"file": ("attendance.csv", bad.encode(), "text/csv")})

    assert response.status_code == 400
    assert response.json()["invalid_rows"] == [3]


def test_upload_roster_with_extra_cells_is_rejected(db, admin_client):
    content = b"email,full_name\nbob@example.com,Bob Brown,extra\n"
    response = admin_client.post("/admin/students/upload", files={"file": ("students.csv", content, "text/csv")})

    assert response.status_code == 400
    assert response.json()["invalid_rows"] == [2]
