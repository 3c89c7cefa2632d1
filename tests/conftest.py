import os

# Must be set before any attendqr module reads its config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PASSWORD_HASH_ROUNDS"] = "1000"
os.environ["MAIL_USERNAME"] = ""
os.environ["MAIL_PASSWORD"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from attendqr.accounts import create_user, enroll_student
from attendqr.db import Base
from attendqr.dependencies import get_db
from attendqr.main import app
from attendqr.models import Class

PASSWORD = "password123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_client(db):
    """Each client keeps its own session cookie, so one per logged-in user."""
    app.dependency_overrides[get_db] = lambda: db
    yield lambda: TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


def login(client, email, password=PASSWORD):
    response = client.post("/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response


@pytest.fixture
def admin(db):
    return create_user(db, "admin@example.com", "Ada Admin", "admin", PASSWORD)


@pytest.fixture
def lecturer(db):
    return create_user(db, "lecturer@example.com", "Dr. Smith", "lecturer", PASSWORD)


@pytest.fixture
def other_lecturer(db):
    return create_user(db, "other@example.com", "Dr. Jones", "lecturer", PASSWORD)


@pytest.fixture
def student(db):
    return create_user(db, "alice@example.com", "Alice Johnson", "student", PASSWORD, school_id="S2023/101")


@pytest.fixture
def second_student(db):
    return create_user(db, "bob@example.com", "Bob Brown", "student", PASSWORD, school_id="S2023/102")


@pytest.fixture
def course(db, lecturer, student):
    class_ = Class(name="Introduction to Computing", course_code="CSC101", lecturer_id=lecturer.id, capacity=30)
    db.add(class_)
    db.commit()
    db.refresh(class_)
    enroll_student(db, class_, student)
    return class_


@pytest.fixture
def lecturer_client(make_client, lecturer):
    client = make_client()
    login(client, lecturer.email)
    return client


@pytest.fixture
def student_client(make_client, student):
    client = make_client()
    login(client, student.email)
    return client


@pytest.fixture
def admin_client(make_client, admin):
    client = make_client()
    login(client, admin.email)
    return client
