# seed_db.py

from attendqr.accounts import create_user
from attendqr.db import SessionLocal, engine, Base
from attendqr.models import Class, ClassEnrollment, User

# Common password for every seeded account
TEST_PASSWORD = "password123"

TEST_USERS = [
    {"email": "admin@attendqr.local", "full_name": "Site Admin", "role": "admin"},
    {"email": "lecturer@attendqr.local", "full_name": "Dr. Smith (Lecturer)", "role": "lecturer"},
    {"email": "student@attendqr.local", "full_name": "Alice Johnson (Student)", "role": "student",
     "school_id": "S2023/101"},
]


def seed_users(db):
    # Check if users already exist to prevent duplicates
    if db.query(User).count() > 0:
        print("Database already contains users. Skipping seed process.")
        return False

    users = {}
    for user_data in TEST_USERS:
        users[user_data["role"]] = create_user(db, password=TEST_PASSWORD, commit=False, **user_data)

    demo_class = Class(
        name="Introduction to Computing",
        course_code="CSC101",
        lecturer_id=users["lecturer"].id,
        location="Lecture Hall A",
        capacity=100,
    )
    db.add(demo_class)
    db.flush()
    db.add(ClassEnrollment(class_id=demo_class.id, student_id=users["student"].id, status="active"))
    db.commit()

    print(f"Successfully created {len(TEST_USERS)} test users and 1 class.")
    print(f"Login Password for all: {TEST_PASSWORD}")
    return True


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)  # Ensure tables exist
    db = SessionLocal()
    try:
        seed_users(db)
    finally:
        db.close()
