from datetime import timedelta

from attendqr.attendance import issue_session, mark_attendance
from attendqr.db import utcnow


def _mark(db, course, lecturer, student):
    now = utcnow()
    session = issue_session(db, course.id, lecturer, 0.0, 0.0, now=now)
    mark_attendance(db, student, session.id, session.qr_token, student.school_id, "sig", 0.0, 0.0,
                    now=now + timedelta(seconds=30))


def test_list_and_read(db, course, lecturer, student, student_client):
    _mark(db, course, lecturer, student)

    notifications = student_client.get("/notifications").json()
    assert [n["title"] for n in notifications] == ["Attendance Marked"]
    assert notifications[0]["read"] is False

    read = student_client.post(f"/notifications/{notifications[0]['id']}/read").json()
    assert read["read"] is True
    assert student_client.get("/notifications?unread=true").json() == []


def test_read_all_and_delete(db, course, lecturer, student, lecturer_client):
    _mark(db, course, lecturer, student)

    assert lecturer_client.post("/notifications/read-all").json() == {"updated": 1}
    notification_id = lecturer_client.get("/notifications").json()[0]["id"]
    assert lecturer_client.delete(f"/notifications/{notification_id}").status_code == 204
    assert lecturer_client.get("/notifications").json() == []


def test_other_users_notifications_are_hidden(db, course, lecturer, student, lecturer_client):
    _mark(db, course, lecturer, student)
    student_notification = student.notifications[0].id

    assert lecturer_client.post(f"/notifications/{student_notification}/read").status_code == 404
    assert lecturer_client.delete(f"/notifications/{student_notification}").status_code == 404


def test_requires_login(client, db):
    assert client.get("/notifications").status_code == 401
