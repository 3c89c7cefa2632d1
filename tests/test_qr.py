from types import SimpleNamespace

import pytest

from attendqr.qr import build_attendance_url, parse_attendance_url, render_qr_png


@pytest.fixture
def session():
    return SimpleNamespace(id="3f1c0d8e-1b2a-4c5d-9e8f-0a1b2c3d4e5f", qr_token="tok-123",
                           latitude=6.5244, longitude=3.3792)


def test_build_url_carries_session_parameters(session):
    url = build_attendance_url(session, base_url="https://attend.example.edu")

    assert url.startswith("https://attend.example.edu/student/attendance?")
    assert "session=3f1c0d8e-1b2a-4c5d-9e8f-0a1b2c3d4e5f" in url
    assert "token=tok-123" in url
    assert "lat=6.524400" in url
    assert "lng=3.379200" in url


def test_parse_recovers_what_build_encoded(session):
    params = parse_attendance_url(build_attendance_url(session, base_url="http://localhost:8000"))

    assert params == {"session": session.id, "token": "tok-123", "lat": 6.5244, "lng": 3.3792}


def test_parse_accepts_surrounding_whitespace(session):
    url = build_attendance_url(session, base_url="http://localhost:8000")
    assert parse_attendance_url(f"  {url}\n")["token"] == "tok-123"


@pytest.mark.parametrize("raw", [
    "",
    "   ",
    "https://example.com/somewhere-else?session=a&token=b&lat=1&lng=2",
    "http://localhost:8000/student/attendance?session=a&lat=1&lng=2",
    "http://localhost:8000/student/attendance?session=a&token=b&lat=north&lng=2",
])
def test_parse_rejects_bad_payloads(raw):
    with pytest.raises(ValueError, match="Invalid QR code"):
        parse_attendance_url(raw)


def test_render_returns_png_data_uri():
    image = render_qr_png("http://localhost:8000/student/attendance?session=a&token=b&lat=1&lng=2")
    assert image.startswith("data:image/png;base64,")
    assert len(image) > 100
