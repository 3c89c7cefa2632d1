"""QR payloads for attendance sessions.

A session QR code encodes a plain URL pointing at the student attendance
page. The query string carries everything the student's browser needs:

    /student/attendance?session=<uuid>&token=<token>&lat=<float6>&lng=<float6>

There is no version field, so changing these parameter names breaks every
QR code already on screen.
"""

import base64
import io
import logging
from urllib.parse import parse_qs, urlencode, urlsplit

import qrcode

from attendqr.config import PUBLIC_BASE_URL

logger = logging.getLogger(__name__)

ATTENDANCE_PATH = "/student/attendance"
REQUIRED_PARAMS = ("session", "token", "lat", "lng")


def build_attendance_url(session, base_url=PUBLIC_BASE_URL):
    query = urlencode({
        "session": session.id,
        "token": session.qr_token,
        "lat": f"{session.latitude:.6f}",
        "lng": f"{session.longitude:.6f}",
    })
    return f"{base_url}{ATTENDANCE_PATH}?{query}"


def parse_attendance_url(raw):
    """Resolve a scanned QR string into its session parameters.

    Returns a dict with ``session``, ``token``, ``lat`` and ``lng`` (the
    coordinates as floats). Raises ValueError when the string is not an
    attendance URL or a parameter is missing.
    """
    if not raw or not raw.strip():
        raise ValueError("Invalid QR code: empty payload")

    parts = urlsplit(raw.strip())
    if not parts.path.endswith(ATTENDANCE_PATH):
        raise ValueError("Invalid QR code: not an attendance link")

    params = {key: values[0] for key, values in parse_qs(parts.query).items()}
    missing = [name for name in REQUIRED_PARAMS if not params.get(name)]
    if missing:
        raise ValueError(f"Invalid QR code: missing {', '.join(missing)}")

    try:
        lat = float(params["lat"])
        lng = float(params["lng"])
    except ValueError:
        raise ValueError("Invalid QR code: bad coordinates") from None

    return {"session": params["session"], "token": params["token"], "lat": lat, "lng": lng}


def render_qr_png(data, box_size=10, border=4):
    """Render ``data`` as a QR code and return it as a PNG data URI."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"
