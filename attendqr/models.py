import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from attendqr.db import Base, utcnow

ROLES = ("admin", "lecturer", "student")


def _new_session_id():
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    role = Column(String, nullable=False)

    # School-issued student number; lecturers and admins leave it empty
    school_id = Column(String, unique=True, index=True, nullable=True)

    password_hash = Column(String, nullable=False)
    status = Column(String, default="active")
    created_at = Column(DateTime, default=utcnow)
    last_sign_in_at = Column(DateTime, nullable=True)

    classes = relationship("Class", back_populates="lecturer")
    enrollments = relationship("ClassEnrollment", back_populates="student", cascade="all, delete-orphan")
    attendance_records = relationship("Attendance", back_populates="student", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    settings = relationship("LecturerSettings", back_populates="owner", uselist=False, cascade="all, delete-orphan")

    @property
    def is_active(self):
        return self.status == "active"


class Class(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    course_code = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=True)
    lecturer_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    schedule = Column(String, nullable=True)
    location = Column(String, nullable=True)
    capacity = Column(Integer, nullable=True)
    department = Column(String, nullable=True)
    semester = Column(String, nullable=True)
    academic_year = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    lecturer = relationship("User", back_populates="classes")
    enrollments = relationship("ClassEnrollment", back_populates="class_", cascade="all, delete-orphan")
    sessions = relationship("ClassSession", back_populates="class_", cascade="all, delete-orphan")


class ClassEnrollment(Base):
    __tablename__ = "class_enrollments"
    __table_args__ = (UniqueConstraint("class_id", "student_id", name="uq_enrollment_class_student"),)

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    status = Column(String, default="active")
    created_at = Column(DateTime, default=utcnow)

    class_ = relationship("Class", back_populates="enrollments")
    student = relationship("User", back_populates="enrollments")


class ClassSession(Base):
    __tablename__ = "class_sessions"

    id = Column(String(36), primary_key=True, default=_new_session_id)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)
    lecturer_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    qr_token = Column(String, nullable=True)

    # Lecturer position when the QR code was issued; empty for imported sessions
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    class_ = relationship("Class", back_populates="sessions")
    lecturer = relationship("User")
    attendance_records = relationship("Attendance", back_populates="session", cascade="all, delete-orphan")


class Attendance(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (UniqueConstraint("session_id", "student_id", name="uq_attendance_session_student"),)

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(36), ForeignKey("class_sessions.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    school_id = Column(String, nullable=True)
    student_name = Column(String, nullable=True)
    signature = Column(Text, nullable=True)
    marked_at = Column(DateTime, nullable=False, default=utcnow)

    session = relationship("ClassSession", back_populates="attendance_records")
    student = relationship("User", back_populates="attendance_records")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, default="info")
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="notifications")


class LecturerSettings(Base):
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, index=True)
    created_by = Column(Integer, ForeignKey("profiles.id"), unique=True, nullable=False)
    qr_session_duration = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="settings")
