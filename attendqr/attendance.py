"""Attendance sessions: issuing QR sessions and validating student check-ins.

A lecturer issues a session for one of their classes. The session carries a
random token, the lecturer's coordinates and a short marking window. A
student who scans the QR code submits the token back together with their
own coordinates, and ``mark_attendance`` runs the gates below in order.
The first failing gate rejects the attempt:

    1. the session exists
    2. the token matches
    3. the session is active
    4. now is inside [start_time, end_time]
    5. the submitted school id belongs to the logged-in student
    6. the student has not marked this session already
    7. the student is within the geofence radius of the lecturer
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from attendqr.config import GEOFENCE_RADIUS_METERS, LATE_THRESHOLD_MINUTES
from attendqr.geo import distance_meters, within_geofence
from attendqr.lecturer_settings import session_duration_minutes
from attendqr.models import Attendance, Class, ClassSession, User
from attendqr.notifications import notify_attendance_marked
from attendqr.db import utcnow

logger = logging.getLogger(__name__)

STATUS_PRESENT = "present"
STATUS_LATE = "late"
STATUS_ABSENT = "absent"


class AttendanceError(Exception):
    """A check-in or session request rejected with a user-facing message."""

    def __init__(self, message, code, status_code=400):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


@dataclass
class MarkResult:
    record: Attendance
    session: ClassSession
    distance: float


def issue_session(db, class_id, lecturer, latitude, longitude, now=None):
    """Open a new QR attendance session for one of ``lecturer``'s classes."""
    class_ = db.query(Class).filter(Class.id == class_id).first()
    if not class_:
        raise AttendanceError("Class not found.", "class_not_found", status_code=404)
    if class_.lecturer_id != lecturer.id:
        raise AttendanceError("You do not own this class.", "not_owner", status_code=403)

    start = now or utcnow()
    session = ClassSession(
        class_id=class_.id,
        lecturer_id=lecturer.id,
        start_time=start,
        end_time=start + timedelta(minutes=session_duration_minutes(db, lecturer)),
        qr_token=str(uuid.uuid4()),
        latitude=latitude,
        longitude=longitude,
        active=True,
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    logger.info("Lecturer %s opened session %s for class %s", lecturer.id, session.id, class_.id)
    return session


def get_owned_session(db, session_id, lecturer):
    session = db.query(ClassSession).filter(ClassSession.id == session_id).first()
    if not session:
        raise AttendanceError("Invalid session.", "invalid_session", status_code=404)
    if session.lecturer_id != lecturer.id:
        raise AttendanceError("You do not own this session.", "not_owner", status_code=403)
    return session


def close_session(db, session_id, lecturer):
    session = get_owned_session(db, session_id, lecturer)
    session.active = False
    db.commit()
    logger.info("Lecturer %s closed session %s", lecturer.id, session.id)
    return session


def manual_add(db, session_id, lecturer, school_id, now=None):
    """Lecturer override: record a student as present without the QR checks."""
    session = get_owned_session(db, session_id, lecturer)

    student = db.query(User).filter(User.school_id == school_id, User.role == "student").first()
    if not student:
        raise AttendanceError("Student not found.", "student_not_found", status_code=404)

    existing = db.query(Attendance).filter(
        Attendance.session_id == session.id,
        Attendance.student_id == student.id,
    ).first()
    if existing:
        return existing

    record = Attendance(
        session_id=session.id,
        student_id=student.id,
        school_id=student.school_id,
        student_name=student.full_name,
        signature="manual",
        marked_at=now or utcnow(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Lecturer %s manually added student %s to session %s", lecturer.id, student.id, session.id)
    return record


def seconds_left(session, now=None):
    remaining = (session.end_time - (now or utcnow())).total_seconds()
    return max(0, int(remaining))


def session_is_open(session, now=None):
    now = now or utcnow()
    return bool(session.active) and session.start_time <= now <= session.end_time


def mark_attendance(db, student, session_id, token, school_id, signature,
                    latitude, longitude, now=None, radius=GEOFENCE_RADIUS_METERS):
    now = now or utcnow()

    session = db.query(ClassSession).filter(ClassSession.id == session_id).first()
    if not session:
        raise AttendanceError("Invalid session.", "invalid_session", status_code=404)

    if not token or token != session.qr_token:
        raise AttendanceError("Invalid QR code token.", "invalid_token")

    if not session.active:
        raise AttendanceError("Session is not active.", "inactive_session")

    if now < session.start_time:
        raise AttendanceError("Session has not started yet.", "not_started")
    if now > session.end_time:
        raise AttendanceError("Session has expired.", "expired")

    if not student.school_id or (school_id or "").strip() != student.school_id:
        raise AttendanceError("Student ID does not match your account.", "identity_mismatch")

    existing = db.query(Attendance.id).filter(
        Attendance.session_id == session.id,
        Attendance.student_id == student.id,
    ).first()
    if existing:
        raise AttendanceError(
            "You have already marked attendance for this session.", "already_marked", status_code=409
        )

    if session.latitude is None or session.longitude is None:
        raise AttendanceError("Session has no recorded location.", "no_location")

    distance = distance_meters((session.latitude, session.longitude), (latitude, longitude))
    if not within_geofence(distance, radius):
        raise AttendanceError(
            f"You are too far from the class location ({distance:.0f}m away). "
            f"You must be within {radius:.0f}m.",
            "too_far",
        )

    record = Attendance(
        session_id=session.id,
        student_id=student.id,
        school_id=student.school_id,
        student_name=student.full_name,
        signature=signature,
        marked_at=now,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent submission won the race for the unique (session, student) row
        db.rollback()
        raise AttendanceError(
            "You have already marked attendance for this session.", "already_marked", status_code=409
        )
    db.refresh(record)

    logger.info("Student %s marked session %s at %.1fm", student.id, session.id, distance)
    notify_attendance_marked(db, record, session)
    return MarkResult(record=record, session=session, distance=distance)


def derive_status(start_time, marked_at, threshold_minutes=LATE_THRESHOLD_MINUTES):
    if marked_at is None:
        return STATUS_ABSENT
    if marked_at - start_time <= timedelta(minutes=threshold_minutes):
        return STATUS_PRESENT
    return STATUS_LATE


def session_attendees(db, session_id):
    records = db.query(Attendance).filter(
        Attendance.session_id == session_id
    ).order_by(Attendance.marked_at.asc()).all()
    return [attendee_payload(record) for record in records]


def attendee_payload(record):
    return {
        "student_id": record.student_id,
        "school_id": record.school_id,
        "student_name": record.student_name,
        "marked_at": record.marked_at.isoformat(),
    }


def session_payload(session, now=None):
    return {
        "id": session.id,
        "class_id": session.class_id,
        "class_name": session.class_.name if session.class_ else None,
        "course_code": session.class_.course_code if session.class_ else None,
        "start_time": session.start_time.isoformat(),
        "end_time": session.end_time.isoformat(),
        "active": bool(session.active),
        "latitude": session.latitude,
        "longitude": session.longitude,
        "seconds_left": seconds_left(session, now),
    }
