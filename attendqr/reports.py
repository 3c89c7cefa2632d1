import io
from datetime import timedelta

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import func

from attendqr.attendance import STATUS_ABSENT, derive_status
from attendqr.db import utcnow
from attendqr.models import Attendance, Class, ClassEnrollment, ClassSession, User


def _enrolled_students(class_):
    return [e.student for e in class_.enrollments if e.status == "active" and e.student]


def session_status_entries(session):
    """(student_name, school_id, status, marked_at) for every enrolled or recorded student."""
    records = {record.student_id: record for record in session.attendance_records}
    entries = []
    for record in sorted(session.attendance_records, key=lambda r: r.marked_at):
        name = record.student_name or (record.student.full_name if record.student else "")
        status = derive_status(session.start_time, record.marked_at)
        entries.append((name, record.school_id or "", status, record.marked_at))
    for student in _enrolled_students(session.class_):
        if student.id not in records:
            entries.append((student.full_name, student.school_id or "", STATUS_ABSENT, None))
    return entries


def admin_report_entries(db, class_id=None):
    query = db.query(ClassSession).join(Class)
    if class_id:
        query = query.filter(ClassSession.class_id == class_id)
    entries = []
    for session in query.order_by(ClassSession.start_time.desc()).all():
        for name, _school_id, status, marked_at in session_status_entries(session):
            entries.append((session, name, status, marked_at))
    return entries


def student_history_entries(db, student):
    """(session, status, marked_at) for every session of the student's classes."""
    class_ids = [e.class_id for e in student.enrollments]
    records = {r.session_id: r for r in student.attendance_records}
    sessions = db.query(ClassSession).filter(
        (ClassSession.class_id.in_(class_ids)) | (ClassSession.id.in_(list(records)))
    ).order_by(ClassSession.start_time.desc()).all()

    entries = []
    for session in sessions:
        record = records.get(session.id)
        marked_at = record.marked_at if record else None
        if record is None and session.active and session.end_time > utcnow():
            # Still open: not absent yet
            continue
        entries.append((session, derive_status(session.start_time, marked_at), marked_at))
    return entries


def status_counts(statuses):
    counts = {"present": 0, "late": 0, "absent": 0}
    for status in statuses:
        counts[status] += 1
    total = sum(counts.values())
    percentages = {
        status: round(count / total * 100, 1) if total else 0.0
        for status, count in counts.items()
    }
    return {"counts": counts, "percentages": percentages, "total": total}


def lecturer_class_report(db, lecturer):
    report = []
    classes = db.query(Class).filter(Class.lecturer_id == lecturer.id).order_by(Class.name).all()
    for class_ in classes:
        statuses = []
        for session in class_.sessions:
            statuses.extend(entry[2] for entry in session_status_entries(session))
        report.append({
            "class_id": class_.id,
            "class_name": class_.name,
            "course_code": class_.course_code,
            "sessions": len(class_.sessions),
            **status_counts(statuses),
        })
    return report


def attendance_rate(entries):
    if not entries:
        return 0.0
    attended = sum(1 for entry in entries if entry[1] != STATUS_ABSENT)
    return round(attended / len(entries) * 100, 1)


def admin_dashboard(db):
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    return {
        "total_students": db.query(User).filter(User.role == "student").count(),
        "total_lecturers": db.query(User).filter(User.role == "lecturer").count(),
        "total_classes": db.query(Class).count(),
        "sessions_today": db.query(ClassSession).filter(
            ClassSession.start_time >= today, ClassSession.start_time < tomorrow
        ).count(),
        "attendance_today": db.query(Attendance).filter(
            Attendance.marked_at >= today, Attendance.marked_at < tomorrow
        ).count(),
    }


def lecturer_dashboard(db, lecturer, recent=5):
    class_ids = [c.id for c in lecturer.classes]
    total_students = 0
    if class_ids:
        total_students = db.query(func.count(func.distinct(ClassEnrollment.student_id))).filter(
            ClassEnrollment.class_id.in_(class_ids)
        ).scalar()
    sessions = db.query(ClassSession).filter(
        ClassSession.lecturer_id == lecturer.id
    ).order_by(ClassSession.start_time.desc()).limit(recent).all()
    return {
        "total_classes": len(class_ids),
        "total_students": total_students,
        "recent_sessions": [
            {
                "id": s.id,
                "class_name": s.class_.name,
                "course_code": s.class_.course_code,
                "start_time": s.start_time.isoformat(),
                "active": bool(s.active),
                "attendees": len(s.attendance_records),
            }
            for s in sessions
        ],
    }


def session_report_pdf(session):
    """Render a one-session attendance register as PDF bytes."""
    buffer = io.BytesIO()
    pdf = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=25, leftMargin=25, topMargin=40, bottomMargin=40)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("ReportTitle", parent=styles["Title"], fontSize=14, leading=18)

    elements = [
        Paragraph(f"Attendance Report: {session.class_.name} ({session.class_.course_code})", title_style),
        Paragraph(
            f"{session.start_time:%Y-%m-%d %H:%M} to {session.end_time:%H:%M} UTC",
            styles["Normal"],
        ),
        Spacer(1, 12),
    ]

    table_data = [["#", "Student ID", "Name", "Marked At", "Status"]]
    for idx, (name, school_id, status, marked_at) in enumerate(session_status_entries(session), start=1):
        table_data.append([
            idx,
            school_id,
            name,
            marked_at.strftime("%H:%M:%S") if marked_at else "-",
            status.capitalize(),
        ])
    table = Table(table_data, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#003366")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.8, colors.grey),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f0f4ff")]),
    ]))
    elements.append(table)

    def add_page_number(canvas, doc):
        canvas.setFont("Helvetica", 9)
        canvas.drawRightString(A4[0] - 30, 20, f"Page {canvas.getPageNumber()}")

    pdf.build(elements, onFirstPage=add_page_number, onLaterPages=add_page_number)
    return buffer.getvalue()
