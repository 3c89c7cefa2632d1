import os

# Database (Render-style hosts hand out 'postgres://' URLs)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./attendance.db")
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-attendqr-dev-secret")

# Base of the URL encoded into every QR code
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")

# Attendance rules
GEOFENCE_RADIUS_METERS = float(os.getenv("GEOFENCE_RADIUS_METERS", "50"))
LATE_THRESHOLD_MINUTES = int(os.getenv("LATE_THRESHOLD_MINUTES", "15"))

DEFAULT_SESSION_DURATION_MINUTES = int(os.getenv("DEFAULT_SESSION_DURATION_MINUTES", "5"))
MIN_SESSION_DURATION_MINUTES = 3
MAX_SESSION_DURATION_MINUTES = 10

# Sessions created by the attendance CSV import have no QR window of their own
IMPORTED_SESSION_MINUTES = int(os.getenv("IMPORTED_SESSION_MINUTES", "60"))

# Accounts
MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", "8"))
PASSWORD_HASH_ROUNDS = int(os.getenv("PASSWORD_HASH_ROUNDS", "535000"))

# Email
MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
MAIL_USERNAME = os.getenv("MAIL_USERNAME")
MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
MAIL_SENDER = os.getenv("MAIL_SENDER") or MAIL_USERNAME

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
