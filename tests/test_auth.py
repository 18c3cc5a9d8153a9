from fastapi.testclient import TestClient

from eduhub.models import User, UserRole


def register(client, **overrides):
    payload = {
        "full_name": "Test Student",
        "email": "student@example.com",
        "password": "password123",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_student_by_default(client: TestClient, session):
    response = register(client)
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "User registered successfully"
    assert data["user"]["email"] == "student@example.com"
    assert data["user"]["role"] == "student"
    assert "password_hash" not in data["user"]

    stored = session.query(User).filter(User.email == "student@example.com").one()
    assert stored.password_hash != "password123"


def test_register_teacher(client: TestClient):
    response = register(client, email="teacher@example.com", role="teacher")
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "teacher"


def test_register_missing_fields(client: TestClient):
    response = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert response.status_code == 400
    assert response.json() == {"error": "Name, email, and password are required"}


def test_register_invalid_role(client: TestClient):
    response = register(client, role="superuser")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid role specified"


def test_register_password_length_boundary(client: TestClient):
    too_short = register(client, password="1234567")
    assert too_short.status_code == 400
    assert "at least 8 characters" in too_short.json()["error"]

    exactly_eight = register(client, password="12345678")
    assert exactly_eight.status_code == 201


def test_register_duplicate_email(client: TestClient):
    assert register(client).status_code == 201

    response = register(client, full_name="Someone Else")
    assert response.status_code == 400
    assert response.json()["error"] == "User with this email already exists"


def test_login_returns_token(client: TestClient):
    register(client)
    response = client.post(
        "/api/auth/login",
        json={"email": "student@example.com", "password": "password123"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Login successful"
    assert data["token"]
    assert data["user"]["email"] == "student@example.com"


def test_login_does_not_reveal_which_credential_failed(client: TestClient):
    register(client)
    wrong_password = client.post(
        "/api/auth/login",
        json={"email": "student@example.com", "password": "wrong-password"},
    )
    unknown_email = client.post(
        "/api/auth/login",
        json={"email": "nobody@example.com", "password": "password123"},
    )
    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"error": "Invalid email or password"}


def test_login_missing_fields(client: TestClient):
    response = client.post("/api/auth/login", json={"email": "student@example.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "Email and password are required"


def test_login_role_mismatch(client: TestClient):
    register(client)
    response = client.post(
        "/api/auth/login",
        json={"email": "student@example.com", "password": "password123", "role": "teacher"},
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Role mismatch"


def test_login_role_checked_only_after_password(client: TestClient):
    register(client)
    response = client.post(
        "/api/auth/login",
        json={"email": "student@example.com", "password": "wrong-password", "role": "teacher"},
    )
    assert response.status_code == 401


def test_verify_reports_dashboard(client: TestClient, admin, auth_headers):
    response = client.get("/api/auth/verify", headers=auth_headers(admin))
    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["user"] == {"userId": admin.id, "email": admin.email, "role": "admin"}
    assert data["dashboard"] == "teacher"


def test_verify_requires_token(client: TestClient):
    response = client.get("/api/auth/verify")
    assert response.status_code == 401
    assert response.json()["error"] == "Access token required"
    assert response.headers["www-authenticate"] == "Bearer"


def test_verify_rejects_garbage_token(client: TestClient):
    response = client.get("/api/auth/verify", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token"


def test_get_profile(client: TestClient, student, auth_headers):
    response = client.get("/api/auth/profile", headers=auth_headers(student))
    assert response.status_code == 200
    assert response.json()["user"]["id"] == student.id


def test_profile_of_deleted_user(client: TestClient, session, student, auth_headers):
    headers = auth_headers(student)
    session.delete(student)
    session.commit()

    response = client.get("/api/auth/profile", headers=headers)
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"


def test_update_profile_only_changes_given_fields(client: TestClient, student, auth_headers):
    response = client.put(
        "/api/auth/profile",
        json={"bio": "Learning every day"},
        headers=auth_headers(student),
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["bio"] == "Learning every day"
    assert user["full_name"] == student.full_name
    assert user["email"] == student.email


def test_update_profile_email_taken(client: TestClient, make_user, auth_headers):
    first = make_user(UserRole.STUDENT)
    second = make_user(UserRole.STUDENT)

    response = client.put(
        "/api/auth/profile",
        json={"email": first.email},
        headers=auth_headers(second),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Email is already taken"


def test_change_password(client: TestClient, student, auth_headers):
    headers = auth_headers(student)
    response = client.put(
        "/api/auth/password",
        json={"current_password": "password123", "new_password": "new-password-1"},
        headers=headers,
    )
    assert response.status_code == 200

    old_login = client.post(
        "/api/auth/login", json={"email": student.email, "password": "password123"}
    )
    new_login = client.post(
        "/api/auth/login", json={"email": student.email, "password": "new-password-1"}
    )
    assert old_login.status_code == 401
    assert new_login.status_code == 200


def test_change_password_wrong_current(client: TestClient, student, auth_headers):
    response = client.put(
        "/api/auth/password",
        json={"current_password": "not-my-password", "new_password": "new-password-1"},
        headers=auth_headers(student),
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Current password is incorrect"


def test_change_password_missing_fields(client: TestClient, student, auth_headers):
    response = client.put(
        "/api/auth/password",
        json={"current_password": "password123"},
        headers=auth_headers(student),
    )
    assert response.status_code == 400


def test_change_password_too_short(client: TestClient, student, auth_headers):
    response = client.put(
        "/api/auth/password",
        json={"current_password": "password123", "new_password": "short"},
        headers=auth_headers(student),
    )
    assert response.status_code == 400


def test_register_stores_role_enum(client: TestClient, session):
    register(client, email="admin@example.com", role="admin")
    stored = session.query(User).filter(User.email == "admin@example.com").one()
    assert stored.role == UserRole.ADMIN
