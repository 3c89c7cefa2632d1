import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from attendqr.accounts import create_user, enroll_student, hash_password, user_payload
from attendqr.csv_io import (
    ADMIN_EXPORT_HEADER,
    admin_export_rows,
    import_attendance,
    parse_student_roster,
    temporary_password,
    write_csv,
)
from attendqr.db import utcnow
from attendqr.dependencies import get_admin, get_db
from attendqr.mailer import send_enrollment_email, send_welcome_email
from attendqr.models import Class, ClassEnrollment, User
from attendqr.reports import admin_dashboard as dashboard_summary, admin_report_entries
from attendqr.schemas.class_schemas import AssignLecturerRequest
from attendqr.schemas.student_schemas import (
    BulkAssignRequest,
    BulkStatusRequest,
    LecturerCreate,
    StudentCreate,
    StudentIds,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


async def _read_csv_upload(file):
    if file.content_type not in ("text/csv", "application/vnd.ms-excel") and not (file.filename or "").endswith(".csv"):
        raise HTTPException(status_code=400, detail="Please upload a valid CSV file")
    raw = await file.read()
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="The CSV file must be UTF-8 encoded")


def _students(db, student_ids):
    students = db.query(User).filter(User.id.in_(student_ids), User.role == "student").all()
    if len(students) != len(set(student_ids)):
        raise HTTPException(status_code=404, detail="One or more students were not found")
    return students


def _class_or_404(db, class_id):
    class_ = db.query(Class).filter(Class.id == class_id).first()
    if not class_:
        raise HTTPException(status_code=404, detail="Class not found")
    return class_


# --- 1. Dashboard ---
@router.get("/dashboard")
async def admin_dashboard(db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    return dashboard_summary(db)


# --- 2. Students ---
@router.get("/students")
async def list_students(db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    students = db.query(User).filter(User.role == "student").order_by(User.full_name).all()
    return [user_payload(s) for s in students]


@router.post("/students", status_code=status.HTTP_201_CREATED)
async def add_student(payload: StudentCreate, db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    class_ = _class_or_404(db, payload.class_id) if payload.class_id else None
    temp_password = temporary_password(payload.email)

    student = create_user(
        db, payload.email, payload.full_name, "student", temp_password,
        school_id=payload.school_id, commit=False,
    )
    if class_:
        enroll_student(db, class_, student, commit=False)
    db.commit()

    send_welcome_email(student.email, temp_password)
    if class_:
        send_enrollment_email(student.email, class_.name)
    return {**user_payload(student), "temp_password": temp_password}


@router.post("/students/upload", status_code=status.HTTP_201_CREATED)
async def upload_students(
    file: UploadFile = File(...),
    class_id: int = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    text = await _read_csv_upload(file)
    rows = parse_student_roster(text)

    class_ = _class_or_404(db, class_id) if class_id else None
    created = []
    for row in rows:
        student = create_user(
            db, row.email, row.full_name, "student", row.temp_password,
            school_id=row.school_id, commit=False,
        )
        if class_:
            enroll_student(db, class_, student, commit=False)
        created.append((student, row.temp_password))
    db.commit()

    for student, temp_password in created:
        send_welcome_email(student.email, temp_password)

    logger.info("Admin %s uploaded %s students", admin.id, len(created))
    return {"created": [{**user_payload(s), "temp_password": p} for s, p in created]}


@router.post("/students/status")
async def bulk_update_status(payload: BulkStatusRequest, db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    students = _students(db, payload.student_ids)
    for student in students:
        student.status = payload.status
    db.commit()
    return {"updated": len(students), "status": payload.status}


@router.post("/students/delete")
async def bulk_delete(payload: StudentIds, db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    students = _students(db, payload.student_ids)
    # Enrollments, attendance rows and notifications cascade with the profile
    for student in students:
        db.delete(student)
    db.commit()
    logger.info("Admin %s deleted %s students", admin.id, len(students))
    return {"deleted": len(students)}


@router.post("/students/reset-passwords")
async def bulk_reset_passwords(payload: StudentIds, db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    students = _students(db, payload.student_ids)
    passwords = {}
    for student in students:
        passwords[student.id] = temporary_password(student.email)
        student.password_hash = hash_password(passwords[student.id])
    db.commit()

    for student in students:
        send_welcome_email(student.email, passwords[student.id])
    return {"reset": [{"id": s.id, "email": s.email, "temp_password": passwords[s.id]} for s in students]}


@router.post("/students/assign")
async def bulk_assign(payload: BulkAssignRequest, db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    class_ = _class_or_404(db, payload.class_id)
    students = _students(db, payload.student_ids)

    enrolled = [s for s in students if enroll_student(db, class_, s, commit=False)]
    db.commit()

    for student in enrolled:
        send_enrollment_email(student.email, class_.name)
    return {"enrolled": len(enrolled), "already_enrolled": len(students) - len(enrolled)}


# --- 3. Lecturers ---
@router.get("/lecturers")
async def list_lecturers(db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    lecturers = db.query(User).filter(User.role == "lecturer").order_by(User.full_name).all()
    return [{**user_payload(l), "classes": len(l.classes)} for l in lecturers]


@router.post("/lecturers", status_code=status.HTTP_201_CREATED)
async def add_lecturer(payload: LecturerCreate, db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    temp_password = temporary_password(payload.email)
    lecturer = create_user(db, payload.email, payload.full_name, "lecturer", temp_password)
    send_welcome_email(lecturer.email, temp_password)
    return {**user_payload(lecturer), "temp_password": temp_password}


# --- 4. Classes ---
@router.get("/classes")
async def available_classes(db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    result = []
    for class_ in db.query(Class).order_by(Class.name).all():
        enrolled = db.query(ClassEnrollment).filter(
            ClassEnrollment.class_id == class_.id,
            ClassEnrollment.status == "active",
        ).count()
        result.append({
            "id": class_.id,
            "name": class_.name,
            "course_code": class_.course_code,
            "capacity": class_.capacity,
            "lecturer": class_.lecturer.full_name if class_.lecturer else None,
            "enrolled": enrolled,
            "available_slots": class_.capacity - enrolled if class_.capacity is not None else None,
        })
    return result


@router.post("/classes/{class_id}/assign-lecturer")
async def assign_lecturer(
    class_id: int,
    payload: AssignLecturerRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    class_ = _class_or_404(db, class_id)
    lecturer = db.query(User).filter(User.id == payload.lecturer_id, User.role == "lecturer").first()
    if not lecturer:
        raise HTTPException(status_code=404, detail="Lecturer not found")
    class_.lecturer_id = lecturer.id
    db.commit()
    return {"class_id": class_.id, "lecturer_id": lecturer.id}


# --- 5. Reports & import ---
@router.get("/reports.csv")
async def export_report(class_id: int = None, db: Session = Depends(get_db), admin: User = Depends(get_admin)):
    content = write_csv(ADMIN_EXPORT_HEADER, admin_export_rows(admin_report_entries(db, class_id)))
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=attendance_report_{utcnow():%Y-%m-%d}.csv"},
    )


@router.post("/import")
async def import_attendance_csv(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin),
):
    text = await _read_csv_upload(file)
    summary = import_attendance(db, text)
    return {"imported": summary.imported, "skipped": summary.skipped, "problems": summary.problems}
