"""CSV exports of attendance and the two CSV imports (attendance, students).

Imports validate the whole batch before touching the database: one bad row
rejects the file.
"""

import csv
import io
import logging
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from attendqr.config import IMPORTED_SESSION_MINUTES
from attendqr.models import Attendance, Class, ClassSession, User

logger = logging.getLogger(__name__)

ADMIN_EXPORT_HEADER = ["Date", "Time", "Class", "Course Code", "Student Name", "Status", "Marked Time"]
LECTURER_EXPORT_HEADER = ["Class", "Course Code", "Date", "Time", "Student Name", "Student ID", "Marked At"]
HISTORY_EXPORT_HEADER = ["Date", "Class", "Course Code", "Time", "Status"]

IMPORT_HEADER = ["Date", "Time", "Student Name", "Student Email", "Class Name", "Course Code"]

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d):([0-5]\d)$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class CSVImportError(Exception):
    def __init__(self, message, invalid_rows=None):
        super().__init__(message)
        self.message = message
        self.invalid_rows = invalid_rows or []


@dataclass
class ImportSummary:
    imported: int = 0
    skipped: int = 0
    problems: list = field(default_factory=list)


@dataclass
class StudentRow:
    email: str
    full_name: str
    temp_password: str
    school_id: str = None


def write_csv(header, rows):
    stream = io.StringIO()
    writer = csv.writer(stream, quoting=csv.QUOTE_ALL)
    writer.writerow(header)
    writer.writerows(rows)
    return stream.getvalue()


def _date(value):
    return value.strftime("%Y-%m-%d") if value else ""


def _time(value):
    return value.strftime("%H:%M:%S") if value else ""


def admin_export_rows(entries):
    """``entries`` are (session, student_name, status, marked_at) tuples."""
    return [
        [
            _date(session.start_time),
            _time(session.start_time),
            session.class_.name,
            session.class_.course_code,
            student_name,
            status,
            _time(marked_at),
        ]
        for session, student_name, status, marked_at in entries
    ]


def lecturer_export_rows(records):
    return [
        [
            record.session.class_.name,
            record.session.class_.course_code,
            _date(record.session.start_time),
            _time(record.session.start_time),
            record.student_name or (record.student.full_name if record.student else ""),
            record.school_id or "",
            record.marked_at.strftime("%Y-%m-%d %H:%M:%S"),
        ]
        for record in records
    ]


def history_export_rows(entries):
    """``entries`` are (session, status, marked_at) tuples."""
    return [
        [
            _date(session.start_time),
            session.class_.name,
            session.class_.course_code,
            _time(marked_at or session.start_time),
            status,
        ]
        for session, status, marked_at in entries
    ]


def _read_rows(text):
    rows = [
        [cell.strip() for cell in row]
        for row in csv.reader(io.StringIO(text.lstrip("\ufeff")))
    ]
    return [row for row in rows if any(row)]


def validate_import_row(row):
    if len(row) != len(IMPORT_HEADER) or any(cell == "" for cell in row):
        return False
    date, time, _name, email, _class_name, _course_code = row
    if not (DATE_RE.match(date) and TIME_RE.match(time) and EMAIL_RE.match(email)):
        return False
    # The regexes accept impossible dates such as 2024-02-30
    try:
        datetime.strptime(f"{date} {time}", "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return False
    return True


def parse_attendance_import(text):
    """Validate an attendance CSV and return its data rows.

    Raises CSVImportError for a wrong header, no data, or any malformed row
    (reported by 1-based line number, the header being line 1).
    """
    rows = _read_rows(text)
    if not rows:
        raise CSVImportError("The CSV file is empty.")

    header = rows[0]
    if [cell.lower() for cell in header] != [name.lower() for name in IMPORT_HEADER]:
        raise CSVImportError("Invalid CSV format. Please check the column headers.")

    data = rows[1:]
    if not data:
        raise CSVImportError("The CSV file has no data rows.")

    invalid = [index for index, row in enumerate(data, start=2) if not validate_import_row(row)]
    if invalid:
        raise CSVImportError(
            f"Invalid data format in {len(invalid)} rows. Please check the CSV format.",
            invalid_rows=invalid,
        )
    return data


def import_attendance(db, text):
    data = parse_attendance_import(text)
    summary = ImportSummary()

    for line, (date, time, _name, email, class_name, course_code) in enumerate(data, start=2):
        student = db.query(User).filter(User.email == email, User.role == "student").first()
        if not student:
            logger.warning("Import line %s: student not found: %s", line, email)
            summary.skipped += 1
            summary.problems.append(f"Line {line}: student not found: {email}")
            continue

        class_ = db.query(Class).filter(Class.name == class_name, Class.course_code == course_code).first()
        if not class_:
            logger.warning("Import line %s: class not found: %s (%s)", line, class_name, course_code)
            summary.skipped += 1
            summary.problems.append(f"Line {line}: class not found: {class_name} ({course_code})")
            continue

        start = datetime.strptime(f"{date} {time}", "%Y-%m-%d %H:%M:%S")
        session = db.query(ClassSession).filter(
            ClassSession.class_id == class_.id,
            ClassSession.start_time == start,
        ).first()
        if not session:
            session = ClassSession(
                class_id=class_.id,
                lecturer_id=class_.lecturer_id,
                start_time=start,
                end_time=start + timedelta(minutes=IMPORTED_SESSION_MINUTES),
                active=False,
            )
            db.add(session)
            db.flush()

        duplicate = db.query(Attendance.id).filter(
            Attendance.session_id == session.id,
            Attendance.student_id == student.id,
        ).first()
        if duplicate:
            summary.skipped += 1
            summary.problems.append(f"Line {line}: already recorded for {email}")
            continue

        db.add(Attendance(
            session_id=session.id,
            student_id=student.id,
            school_id=student.school_id,
            student_name=student.full_name,
            signature="imported",
            marked_at=start,
        ))
        db.flush()
        summary.imported += 1

    if summary.imported == 0:
        db.rollback()
        raise CSVImportError("No records were imported successfully.")

    db.commit()
    logger.info("Imported %s attendance rows (%s skipped)", summary.imported, summary.skipped)
    return summary


def temporary_password(email):
    return f"{email.split('@')[0]}{1000 + secrets.randbelow(9000)}"


def parse_student_roster(text):
    """Parse a student roster CSV with ``email`` and ``full_name`` columns.

    An optional ``student_id`` column fills the school id. Every row gets a
    generated temporary password.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")), restkey="_extra")
    fieldnames = [name.strip().lower() for name in (reader.fieldnames or [])]
    if "email" not in fieldnames or "full_name" not in fieldnames:
        raise CSVImportError("The CSV file must have 'email' and 'full_name' columns.")

    students = []
    invalid = []
    for line, raw in enumerate(reader, start=2):
        # More cells than header columns
        if raw.pop("_extra", None):
            invalid.append(line)
            continue
        row = {(key or "").strip().lower(): (value or "").strip() for key, value in raw.items()}
        if not any(row.values()):
            continue
        email = row.get("email", "")
        full_name = row.get("full_name", "")
        if not full_name or not EMAIL_RE.match(email):
            invalid.append(line)
            continue
        students.append(StudentRow(
            email=email,
            full_name=full_name,
            temp_password=temporary_password(email),
            school_id=row.get("student_id") or None,
        ))

    if invalid:
        raise CSVImportError(f"Missing required fields in {len(invalid)} rows.", invalid_rows=invalid)
    if not students:
        raise CSVImportError("The CSV file has no student rows.")
    return students
