import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, Response, StreamingResponse
from sqlalchemy.orm import Session

from attendqr.accounts import enroll_student, find_student
from attendqr.attendance import (
    attendee_payload,
    close_session,
    get_owned_session,
    issue_session,
    manual_add,
    session_attendees,
    session_is_open,
    session_payload,
)
from attendqr.csv_io import LECTURER_EXPORT_HEADER, lecturer_export_rows, write_csv
from attendqr.db import utcnow
from attendqr.dependencies import get_db, get_lecturer
from attendqr.lecturer_settings import get_settings, update_settings
from attendqr.mailer import send_enrollment_email
from attendqr.models import Attendance, Class, ClassSession, User
from attendqr.qr import build_attendance_url, render_qr_png
from attendqr.reports import lecturer_class_report, lecturer_dashboard as dashboard_summary, session_report_pdf
from attendqr.roster import format_sse, roster_broker
from attendqr.schemas.class_schemas import ClassCreate, ClassUpdate, EnrollRequest
from attendqr.schemas.session_schemas import CreateSessionRequest, ManualAddRequest, SettingsUpdate
from attendqr.templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lecturer", tags=["lecturer"])

STREAM_KEEPALIVE_SECONDS = 15


def _owned_class(db, class_id, lecturer):
    class_ = db.query(Class).filter(Class.id == class_id).first()
    if not class_:
        raise HTTPException(status_code=404, detail="Class not found")
    if class_.lecturer_id != lecturer.id:
        raise HTTPException(status_code=403, detail="You do not own this class")
    return class_


def _class_payload(class_):
    return {
        "id": class_.id,
        "name": class_.name,
        "course_code": class_.course_code,
        "description": class_.description,
        "schedule": class_.schedule,
        "location": class_.location,
        "capacity": class_.capacity,
        "department": class_.department,
        "semester": class_.semester,
        "academic_year": class_.academic_year,
        "students": sum(1 for e in class_.enrollments if e.status == "active"),
    }


def _csv_response(content, filename):
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# --- 1. Dashboard ---
@router.get("/dashboard")
async def lecturer_dashboard(db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    return {"lecturer": lecturer.full_name, **dashboard_summary(db, lecturer)}


# --- 2. Classes ---
@router.get("/classes")
async def list_classes(db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    classes = db.query(Class).filter(Class.lecturer_id == lecturer.id).order_by(Class.name).all()
    return [_class_payload(c) for c in classes]


@router.post("/classes", status_code=status.HTTP_201_CREATED)
async def create_class(payload: ClassCreate, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    class_ = Class(lecturer_id=lecturer.id, **payload.model_dump())
    db.add(class_)
    db.commit()
    db.refresh(class_)
    logger.info("Lecturer %s created class %s", lecturer.id, class_.id)
    return _class_payload(class_)


@router.put("/classes/{class_id}")
async def edit_class(
    class_id: int,
    payload: ClassUpdate,
    db: Session = Depends(get_db),
    lecturer: User = Depends(get_lecturer),
):
    class_ = _owned_class(db, class_id, lecturer)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(class_, key, value)
    db.commit()
    db.refresh(class_)
    return _class_payload(class_)


@router.delete("/classes/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(class_id: int, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    class_ = _owned_class(db, class_id, lecturer)
    # Sessions, their attendance rows and enrollments go with the class
    db.delete(class_)
    db.commit()
    logger.info("Lecturer %s deleted class %s", lecturer.id, class_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/classes/{class_id}/students")
async def class_students(class_id: int, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    class_ = _owned_class(db, class_id, lecturer)
    return [
        {
            "id": e.student.id,
            "full_name": e.student.full_name,
            "email": e.student.email,
            "school_id": e.student.school_id,
            "status": e.status,
        }
        for e in class_.enrollments
    ]


@router.post("/classes/{class_id}/students", status_code=status.HTTP_201_CREATED)
async def enroll_existing_student(
    class_id: int,
    payload: EnrollRequest,
    db: Session = Depends(get_db),
    lecturer: User = Depends(get_lecturer),
):
    class_ = _owned_class(db, class_id, lecturer)
    student = find_student(db, payload.identifier)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    if not enroll_student(db, class_, student):
        raise HTTPException(status_code=409, detail="Student is already enrolled in this class")

    send_enrollment_email(student.email, class_.name)
    return {"detail": f"{student.full_name} enrolled in {class_.name}"}


# --- 3. Sessions ---
@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: CreateSessionRequest,
    db: Session = Depends(get_db),
    lecturer: User = Depends(get_lecturer),
):
    session = issue_session(db, payload.class_id, lecturer, payload.latitude, payload.longitude)
    url = build_attendance_url(session)
    return {**session_payload(session), "qr_url": url, "qr_image": render_qr_png(url)}


@router.get("/sessions/{session_id}", response_class=HTMLResponse)
async def session_page(
    request: Request,
    session_id: str,
    db: Session = Depends(get_db),
    lecturer: User = Depends(get_lecturer),
):
    session = get_owned_session(db, session_id, lecturer)
    url = build_attendance_url(session) if session.latitude is not None else None
    return templates.TemplateResponse(request, "session_qr.html", {
        "session": session_payload(session),
        "qr_url": url,
        "qr_image": render_qr_png(url) if url else None,
        "attendees": session_attendees(db, session.id),
    })


@router.get("/sessions/{session_id}/qr")
async def session_qr(session_id: str, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    session = get_owned_session(db, session_id, lecturer)
    if session.latitude is None:
        raise HTTPException(status_code=400, detail="This session has no QR code")
    url = build_attendance_url(session)
    return {"qr_url": url, "qr_image": render_qr_png(url), "seconds_left": session_payload(session)["seconds_left"]}


@router.post("/sessions/{session_id}/close")
async def end_session(session_id: str, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    session = close_session(db, session_id, lecturer)
    roster_broker.publish(session.id, "closed", {"session_id": session.id})
    return session_payload(session)


@router.post("/sessions/{session_id}/manual-add", status_code=status.HTTP_201_CREATED)
async def manual_add_student(
    session_id: str,
    payload: ManualAddRequest,
    db: Session = Depends(get_db),
    lecturer: User = Depends(get_lecturer),
):
    record = manual_add(db, session_id, lecturer, payload.school_id.strip())
    attendee = attendee_payload(record)
    roster_broker.publish(session_id, "attendee", attendee)
    return attendee


@router.get("/sessions/{session_id}/attendees")
async def attendees(session_id: str, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    session = get_owned_session(db, session_id, lecturer)
    return {"session": session_payload(session), "attendees": session_attendees(db, session.id)}


@router.get("/sessions/{session_id}/stream")
async def attendee_stream(
    request: Request,
    session_id: str,
    db: Session = Depends(get_db),
    lecturer: User = Depends(get_lecturer),
):
    """Server-sent events: a roster snapshot, then one event per new attendee."""
    session = get_owned_session(db, session_id, lecturer)
    snapshot = session_attendees(db, session.id)
    is_open = session_is_open(session)
    end_time = session.end_time

    async def event_stream():
        queue = roster_broker.subscribe(session_id)
        try:
            yield format_sse("snapshot", snapshot)
            if not is_open:
                yield format_sse("closed", {"session_id": session_id})
                return
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event, data = await asyncio.wait_for(queue.get(), timeout=STREAM_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    if utcnow() > end_time:
                        yield format_sse("closed", {"session_id": session_id})
                        break
                    yield ": keep-alive\n\n"
                    continue
                yield format_sse(event, data)
                if event == "closed":
                    break
        finally:
            roster_broker.unsubscribe(session_id, queue)

    return StreamingResponse(event_stream(), media_type="text/event-stream",
                             headers={"Cache-Control": "no-cache"})


# --- 4. Reports ---
@router.get("/reports")
async def reports(db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    return lecturer_class_report(db, lecturer)


@router.get("/reports.csv")
async def export_report(
    class_id: int = None,
    db: Session = Depends(get_db),
    lecturer: User = Depends(get_lecturer),
):
    query = db.query(Attendance).join(ClassSession).join(Class).filter(Class.lecturer_id == lecturer.id)
    if class_id:
        query = query.filter(Class.id == class_id)
    records = query.order_by(ClassSession.start_time.desc(), Attendance.marked_at.asc()).all()

    content = write_csv(LECTURER_EXPORT_HEADER, lecturer_export_rows(records))
    return _csv_response(content, f"attendance_report_{utcnow():%Y-%m-%d}.csv")


@router.get("/sessions/{session_id}/report.pdf")
async def export_session_pdf(session_id: str, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    session = get_owned_session(db, session_id, lecturer)
    filename = f"Attendance_{session.class_.course_code}_{session.start_time:%Y%m%d_%H%M}.pdf"
    return Response(
        session_report_pdf(session),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# --- 5. Settings ---
@router.get("/settings")
async def read_settings(db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    return {"qr_session_duration": get_settings(db, lecturer).qr_session_duration}


@router.put("/settings")
async def write_settings(payload: SettingsUpdate, db: Session = Depends(get_db), lecturer: User = Depends(get_lecturer)):
    settings = update_settings(db, lecturer, payload.qr_session_duration)
    return {"qr_session_duration": settings.qr_session_duration}
