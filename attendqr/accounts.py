import logging

from passlib.context import CryptContext
from sqlalchemy import or_

from attendqr.config import MIN_PASSWORD_LENGTH, PASSWORD_HASH_ROUNDS
from attendqr.models import ClassEnrollment, User
from attendqr.db import utcnow

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["sha256_crypt"],
    deprecated="auto",
    sha256_crypt__default_rounds=PASSWORD_HASH_ROUNDS,
)


class AccountError(Exception):
    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def hash_password(password):
    return pwd_context.hash(password)


def verify_password(password, password_hash):
    return pwd_context.verify(password, password_hash)


def check_password_strength(password):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AccountError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


def authenticate(db, email, password):
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        return None
    if not user.is_active:
        raise AccountError("This account has been deactivated.", status_code=403)
    user.last_sign_in_at = utcnow()
    db.commit()
    return user


def create_user(db, email, full_name, role, password, school_id=None, commit=True):
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise AccountError("An account with this email already exists.", status_code=409)
    if school_id and db.query(User).filter(User.school_id == school_id).first():
        raise AccountError("An account with this student ID already exists.", status_code=409)

    user = User(
        email=email,
        full_name=full_name.strip(),
        role=role,
        school_id=school_id or None,
        password_hash=hash_password(password),
    )
    db.add(user)
    if commit:
        db.commit()
        db.refresh(user)
    else:
        db.flush()
    logger.info("Created %s account %s", role, email)
    return user


def change_password(db, user, current_password, new_password):
    if not verify_password(current_password, user.password_hash):
        raise AccountError("Current password is incorrect.")
    check_password_strength(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()


def find_student(db, identifier):
    """Look a student up by email or school id."""
    identifier = identifier.strip()
    return db.query(User).filter(
        User.role == "student",
        or_(User.email == identifier.lower(), User.school_id == identifier),
    ).first()


def enroll_student(db, class_, student, commit=True):
    """Enroll ``student`` in ``class_``; returns False when already enrolled."""
    existing = db.query(ClassEnrollment).filter(
        ClassEnrollment.class_id == class_.id,
        ClassEnrollment.student_id == student.id,
    ).first()
    if existing:
        if existing.status != "active":
            existing.status = "active"
            if commit:
                db.commit()
            return True
        return False

    if class_.capacity is not None:
        enrolled = db.query(ClassEnrollment).filter(
            ClassEnrollment.class_id == class_.id,
            ClassEnrollment.status == "active",
        ).count()
        if enrolled >= class_.capacity:
            raise AccountError(f"Class {class_.name} is full.", status_code=409)

    db.add(ClassEnrollment(class_id=class_.id, student_id=student.id, status="active"))
    if commit:
        db.commit()
    else:
        db.flush()
    return True


def user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "school_id": user.school_id,
        "status": user.status,
        "last_sign_in_at": user.last_sign_in_at.isoformat() if user.last_sign_in_at else None,
    }
