from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from sqlalchemy.orm import Session

from attendqr.attendance import attendee_payload, mark_attendance
from attendqr.csv_io import HISTORY_EXPORT_HEADER, history_export_rows, write_csv
from attendqr.db import utcnow
from attendqr.dependencies import get_db, get_student
from attendqr.models import ClassSession, User
from attendqr.qr import parse_attendance_url
from attendqr.reports import attendance_rate, student_history_entries
from attendqr.roster import roster_broker
from attendqr.schemas.attendance_schemas import AttendanceRequest, ScanRequest
from attendqr.templating import templates

router = APIRouter(prefix="/student", tags=["student"])


def _history_payload(entries):
    return [
        {
            "session_id": session.id,
            "class_name": session.class_.name,
            "course_code": session.class_.course_code,
            "date": session.start_time.strftime("%Y-%m-%d"),
            "start_time": session.start_time.isoformat(),
            "marked_at": marked_at.isoformat() if marked_at else None,
            "status": status_,
        }
        for session, status_, marked_at in entries
    ]


# --- 1. QR landing page (GET) ---
@router.get("/attendance", response_class=HTMLResponse)
async def attendance_page(
    request: Request,
    session: str = None,
    token: str = None,
    lat: float = None,
    lng: float = None,
):
    # Send anonymous scanners through login and back to this exact URL
    if not request.session.get("user_id"):
        return RedirectResponse(f"/?next={quote(str(request.url.path) + '?' + request.url.query)}",
                                status_code=status.HTTP_302_FOUND)
    if request.session.get("user_role") != "student":
        return RedirectResponse("/", status_code=status.HTTP_302_FOUND)

    error = None if session and token else "Invalid session or token"
    return templates.TemplateResponse(request, "attendance.html", {
        "session_id": session or "",
        "token": token or "",
        "lat": lat,
        "lng": lng,
        "student_name": request.session.get("user_name", ""),
        "error": error,
    })


# --- 2. Resolve a scanned QR string (POST) ---
@router.post("/scan")
async def scan(payload: ScanRequest, db: Session = Depends(get_db), student: User = Depends(get_student)):
    try:
        params = parse_attendance_url(payload.qr_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session = db.query(ClassSession).filter(ClassSession.id == params["session"]).first()
    if not session:
        raise HTTPException(status_code=404, detail="Invalid session.")

    return {**params, "class_name": session.class_.name, "course_code": session.class_.course_code}


# --- 3. Mark attendance (POST) ---
@router.post("/attendance", status_code=status.HTTP_201_CREATED)
async def submit_attendance(
    payload: AttendanceRequest,
    db: Session = Depends(get_db),
    student: User = Depends(get_student),
):
    result = mark_attendance(
        db,
        student,
        session_id=payload.session_id,
        token=payload.token,
        school_id=payload.school_id,
        signature=payload.signature,
        latitude=payload.latitude,
        longitude=payload.longitude,
    )

    attendee = attendee_payload(result.record)
    roster_broker.publish(result.session.id, "attendee", attendee)

    return {
        "detail": f"Attendance marked successfully for {result.session.class_.name}",
        "distance_meters": round(result.distance, 1),
        "attendance": attendee,
    }


# --- 4. Dashboard (GET) ---
@router.get("/dashboard")
async def student_dashboard(db: Session = Depends(get_db), student: User = Depends(get_student)):
    entries = student_history_entries(db, student)
    now = utcnow()
    open_sessions = db.query(ClassSession).filter(
        ClassSession.class_id.in_([e.class_id for e in student.enrollments]),
        ClassSession.active.is_(True),
        ClassSession.start_time <= now,
        ClassSession.end_time >= now,
    ).all()

    return {
        "student": {"full_name": student.full_name, "school_id": student.school_id},
        "total_classes": len(student.enrollments),
        "attendance_rate": attendance_rate(entries),
        "open_sessions": [
            {"id": s.id, "class_name": s.class_.name, "end_time": s.end_time.isoformat()}
            for s in open_sessions
        ],
        "recent": _history_payload(entries[:5]),
    }


# --- 5. Enrolled classes (GET) ---
@router.get("/classes")
async def student_classes(student: User = Depends(get_student)):
    return [
        {
            "id": e.class_.id,
            "name": e.class_.name,
            "course_code": e.class_.course_code,
            "schedule": e.class_.schedule,
            "location": e.class_.location,
            "lecturer": e.class_.lecturer.full_name if e.class_.lecturer else None,
        }
        for e in student.enrollments
        if e.status == "active"
    ]


# --- 6. Attendance history (GET) ---
@router.get("/history")
async def history(db: Session = Depends(get_db), student: User = Depends(get_student)):
    return _history_payload(student_history_entries(db, student))


@router.get("/history.csv")
async def history_csv(db: Session = Depends(get_db), student: User = Depends(get_student)):
    content = write_csv(HISTORY_EXPORT_HEADER, history_export_rows(student_history_entries(db, student)))
    filename = f"attendance_history_{utcnow():%d-%m-%Y}.csv"
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
