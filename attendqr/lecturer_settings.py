from attendqr.config import (
    DEFAULT_SESSION_DURATION_MINUTES,
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
)
from attendqr.models import LecturerSettings


def clamp_duration(minutes):
    return max(MIN_SESSION_DURATION_MINUTES, min(MAX_SESSION_DURATION_MINUTES, int(minutes)))


def get_settings(db, lecturer):
    """Stored settings for ``lecturer``, or an unsaved row holding the defaults."""
    settings = db.query(LecturerSettings).filter(LecturerSettings.created_by == lecturer.id).first()
    if settings is None:
        settings = LecturerSettings(
            created_by=lecturer.id,
            qr_session_duration=DEFAULT_SESSION_DURATION_MINUTES,
        )
    return settings


def update_settings(db, lecturer, qr_session_duration):
    settings = get_settings(db, lecturer)
    settings.qr_session_duration = clamp_duration(qr_session_duration)
    db.add(settings)
    db.commit()
    db.refresh(settings)
    return settings


def session_duration_minutes(db, lecturer):
    return clamp_duration(get_settings(db, lecturer).qr_session_duration)
