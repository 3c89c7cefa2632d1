from conftest import PASSWORD, login


def test_register_student_requires_school_id(client, db):
    response = client.post("/register", json={
        "email": "carol@example.com", "full_name": "Carol", "password": PASSWORD, "role": "student",
    })
    assert response.status_code == 400


def test_register_and_login(client, db):
    response = client.post("/register", json={
        "email": "Carol@Example.com", "full_name": "Carol White", "password": PASSWORD,
        "role": "student", "school_id": "S2023/103",
    })
    assert response.status_code == 201
    assert response.json()["email"] == "carol@example.com"

    body = login(client, "carol@example.com").json()
    assert body["redirect"] == "/student/dashboard"
    assert client.get("/me").json()["school_id"] == "S2023/103"


def test_register_rejects_admin_role(client, db):
    response = client.post("/register", json={
        "email": "eve@example.com", "full_name": "Eve", "password": PASSWORD, "role": "admin",
    })
    assert response.status_code == 422


def test_register_rejects_short_password_and_duplicates(client, student):
    short = client.post("/register", json={
        "email": "carol@example.com", "full_name": "Carol", "password": "short", "role": "lecturer",
    })
    assert short.status_code == 400

    duplicate = client.post("/register", json={
        "email": student.email, "full_name": "Alice", "password": PASSWORD, "role": "lecturer",
    })
    assert duplicate.status_code == 409


def test_login_with_wrong_password(client, student):
    response = client.post("/login", json={"email": student.email, "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_deactivated_account_cannot_log_in(client, db, student):
    student.status = "inactive"
    db.commit()
    response = client.post("/login", json={"email": student.email, "password": PASSWORD})
    assert response.status_code == 403


def test_login_page_redirects_logged_in_users(student_client):
    response = student_client.get("/", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/student/dashboard"

    response = student_client.get("/?next=/student/attendance%3Fsession%3Dabc", follow_redirects=False)
    assert response.headers["location"] == "/student/attendance?session=abc"


def test_login_page_renders_for_anonymous(client, db):
    response = client.get("/")
    assert response.status_code == 200
    assert "<form" in response.text


def test_role_checks(client, student_client, db):
    assert client.get("/student/dashboard").status_code == 401
    assert student_client.get("/lecturer/dashboard").status_code == 403
    assert student_client.get("/admin/dashboard").status_code == 403


def test_logout_clears_session(student_client):
    student_client.get("/logout", follow_redirects=False)
    assert student_client.get("/me").status_code == 401


def test_change_password(student_client, student):
    wrong = student_client.post("/change-password", json={
        "current_password": "nope", "new_password": "brand-new-pass",
    })
    assert wrong.status_code == 400

    ok = student_client.post("/change-password", json={
        "current_password": PASSWORD, "new_password": "brand-new-pass",
    })
    assert ok.status_code == 200
    login(student_client, student.email, "brand-new-pass")


def test_login_page_drops_offsite_next(client, db):
    for target in ("javascript:alert(document.cookie)", "//evil.example", "/\\evil.example", "https://evil.example"):
        response = client.get("/", params={"next": target})
        assert response.status_code == 200
        assert "evil.example" not in response.text
        assert "javascript:" not in response.text
        assert 'const next = "";' in response.text


def test_logged_in_user_is_not_redirected_offsite(student_client):
    response = student_client.get("/", params={"next": "//evil.example"}, follow_redirects=False)
    assert response.headers["location"] == "/student/dashboard"
