from fastapi.testclient import TestClient

from eduhub.access import Capability, dashboard_for, has_capability
from eduhub.models import UserRole


def test_capability_table():
    assert has_capability(UserRole.STUDENT, Capability.STUDENT_AREA)
    assert not has_capability(UserRole.STUDENT, Capability.TEACHER_AREA)
    assert has_capability(UserRole.TEACHER, Capability.TEACHER_AREA)
    assert not has_capability(UserRole.TEACHER, Capability.ADMIN_AREA)
    assert has_capability(UserRole.ADMIN, Capability.TEACHER_AREA)
    assert has_capability(UserRole.ADMIN, Capability.ADMIN_AREA)
    assert not has_capability(UserRole.ADMIN, Capability.STUDENT_AREA)


def test_admin_gets_teacher_dashboard():
    assert dashboard_for(UserRole.STUDENT) == "student"
    assert dashboard_for(UserRole.TEACHER) == "teacher"
    assert dashboard_for(UserRole.ADMIN) == "teacher"


def test_student_area_requires_token(client: TestClient, student):
    response = client.get(f"/api/student/dashboard/{student.id}")
    assert response.status_code == 401


def test_teacher_cannot_enter_student_area(client: TestClient, teacher, auth_headers):
    response = client.get(f"/api/student/dashboard/{teacher.id}", headers=auth_headers(teacher))
    assert response.status_code == 403
    assert response.json()["error"] == "This resource requires student role"


def test_student_cannot_enter_teacher_area(client: TestClient, student, auth_headers):
    response = client.get(f"/api/teacher/dashboard/{student.id}", headers=auth_headers(student))
    assert response.status_code == 403


def test_admin_can_enter_teacher_area(client: TestClient, admin, auth_headers):
    response = client.get(f"/api/teacher/dashboard/{admin.id}", headers=auth_headers(admin))
    assert response.status_code == 200


def test_only_admin_can_init_achievements(client: TestClient, teacher, admin, auth_headers):
    assert client.post("/api/achievements/init", headers=auth_headers(teacher)).status_code == 403

    response = client.post("/api/achievements/init", headers=auth_headers(admin))
    assert response.status_code == 200
    # 启动时已经写入
    assert response.json()["created"] == 0


def test_dashboard_open_by_default(client: TestClient, student):
    response = client.get(f"/api/dashboard/stats/{student.id}")
    assert response.status_code == 200


def test_dashboard_owner_mode(app, client: TestClient, make_user, auth_headers):
    app.state.settings = app.state.settings.model_copy(update={"dashboard_access": "owner"})
    owner = make_user(UserRole.STUDENT)
    other = make_user(UserRole.STUDENT)
    admin = make_user(UserRole.ADMIN)

    assert client.get(f"/api/dashboard/stats/{owner.id}").status_code == 401
    assert (
        client.get(f"/api/dashboard/stats/{owner.id}", headers=auth_headers(owner)).status_code
        == 200
    )
    assert (
        client.get(f"/api/dashboard/stats/{owner.id}", headers=auth_headers(other)).status_code
        == 403
    )
    assert (
        client.get(f"/api/dashboard/stats/{owner.id}", headers=auth_headers(admin)).status_code
        == 200
    )


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_unknown_error_returns_generic_message(app, client: TestClient):
    @app.get("/api/boom")
    def boom():
        raise RuntimeError("database exploded")

    response = TestClient(app, raise_server_exceptions=False).get("/api/boom")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
