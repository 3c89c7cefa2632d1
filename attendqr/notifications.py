import logging

from sqlalchemy.exc import SQLAlchemyError

from attendqr.models import Notification

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("success", "info", "warning", "error")


def notify_attendance_marked(db, record, session):
    """Tell the student and the lecturer about a new attendance record.

    Best-effort: the attendance row is already committed, so a failure here
    is logged and rolled back on its own.
    """
    class_name = session.class_.name if session.class_ else "your class"
    rows = [
        Notification(
            user_id=record.student_id,
            title="Attendance Marked",
            message=f"Your attendance for {class_name} has been recorded.",
            type="success",
        )
    ]
    if session.lecturer_id:
        rows.append(Notification(
            user_id=session.lecturer_id,
            title="New Attendance",
            message=f"{record.student_name or 'A student'} marked attendance for {class_name}.",
            type="info",
        ))

    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create attendance notifications for session %s", session.id)
        return False
    return True


def list_notifications(db, user, unread_only=False, limit=50):
    query = db.query(Notification).filter(Notification.user_id == user.id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def get_owned_notification(db, user, notification_id):
    return db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user.id,
    ).first()


def mark_all_read(db, user):
    updated = db.query(Notification).filter(
        Notification.user_id == user.id,
        Notification.read.is_(False),
    ).update({Notification.read: True}, synchronize_session=False)
    db.commit()
    return updated


def notification_payload(notification):
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "read": notification.read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }
