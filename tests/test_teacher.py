from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from eduhub.models import (
    Course,
    CourseStatus,
    EnrollmentStatus,
    Task,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from eduhub.services.common import utc_today


def ago(**kwargs):
    return datetime.now(timezone.utc) - timedelta(**kwargs)


# === 课程 ===

def test_create_course(client: TestClient, session, teacher, auth_headers):
    response = client.post(
        "/api/teacher/courses",
        json={"title": "Machine Learning", "category": "AI", "description": "Intro"},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 201
    course = session.get(Course, response.json()["courseId"])
    assert course.teacher_id == teacher.id
    assert course.status == CourseStatus.ACTIVE


def test_create_course_requires_title_and_category(client: TestClient, teacher, auth_headers):
    response = client.post(
        "/api/teacher/courses", json={"title": "No category"}, headers=auth_headers(teacher)
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Title and category are required"


def test_update_course(client: TestClient, session, teacher, make_course, auth_headers):
    course = make_course(teacher)
    response = client.put(
        f"/api/teacher/courses/{course.id}",
        json={"title": "Python Advanced", "status": "inactive"},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 200
    session.refresh(course)
    assert course.title == "Python Advanced"
    assert course.category == "Programming"
    assert course.status == CourseStatus.INACTIVE


def test_update_course_invalid_status(client: TestClient, teacher, make_course, auth_headers):
    course = make_course(teacher)
    response = client.put(
        f"/api/teacher/courses/{course.id}",
        json={"status": "archived"},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 400


def test_update_someone_elses_course(client: TestClient, make_user, make_course, auth_headers):
    owner = make_user(UserRole.TEACHER)
    other = make_user(UserRole.TEACHER)
    course = make_course(owner)

    response = client.put(
        f"/api/teacher/courses/{course.id}", json={"title": "Mine now"}, headers=auth_headers(other)
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Access denied"


def test_list_courses_with_filters(client: TestClient, teacher, make_course, make_task, make_user, auth_headers):
    python = make_course(teacher, title="Python", category="Programming")
    make_course(teacher, title="Design", category="Art")
    make_course(teacher, title="Old", category="Programming", status=CourseStatus.INACTIVE)
    student = make_user(UserRole.STUDENT)
    make_task(python, student, status=TaskStatus.COMPLETED)
    make_task(python, student)

    response = client.get(
        f"/api/teacher/courses/{teacher.id}",
        params={"category": "Programming", "status": "active"},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 200
    courses = response.json()
    assert [c["title"] for c in courses] == ["Python"]
    assert courses[0]["analytics"] == {
        "total_tasks": 2,
        "completed_tasks": 1,
        "avg_completion_rate": 50.0,
        "unique_students_assigned": 1,
    }


def test_course_students(client: TestClient, make_user, teacher, make_course, enroll, make_task, auth_headers):
    course = make_course(teacher)
    alice = make_user(UserRole.STUDENT, full_name="Alice")
    enroll(alice, course, progress=75)
    make_task(course, alice, status=TaskStatus.COMPLETED)
    make_task(course, alice, due_date=utc_today() - timedelta(days=1))

    response = client.get(
        f"/api/teacher/courses/{course.id}/students", headers=auth_headers(teacher)
    )
    assert response.status_code == 200
    [row] = response.json()
    assert row["full_name"] == "Alice"
    assert row["progress"] == 75.0
    assert row["completed_tasks"] == 1
    assert row["overdue_tasks"] == 1
    assert "password_hash" not in row


def test_course_students_of_other_teacher(client: TestClient, make_user, make_course, auth_headers):
    course = make_course(make_user(UserRole.TEACHER))
    other = make_user(UserRole.TEACHER)
    response = client.get(f"/api/teacher/courses/{course.id}/students", headers=auth_headers(other))
    assert response.status_code == 403


def test_materials_upload_checks_ownership(client: TestClient, make_user, make_course, auth_headers):
    owner = make_user(UserRole.TEACHER)
    course = make_course(owner)
    assert client.post(
        f"/api/teacher/courses/{course.id}/materials", headers=auth_headers(owner)
    ).status_code == 200
    assert client.post(
        f"/api/teacher/courses/{course.id}/materials",
        headers=auth_headers(make_user(UserRole.TEACHER)),
    ).status_code == 403


def test_library_placeholder(client: TestClient, teacher, auth_headers):
    data = client.get(f"/api/teacher/library/{teacher.id}", headers=auth_headers(teacher)).json()
    assert data["materials"] == []
    assert data["teacherId"] == teacher.id
    assert data["categories"] == ["Documents", "Videos", "Images", "Audio"]


# === 任务 ===

def test_create_task(client: TestClient, session, teacher, student, make_course, auth_headers):
    course = make_course(teacher)
    due = (utc_today() + timedelta(days=7)).isoformat()
    response = client.post(
        "/api/teacher/tasks",
        json={
            "title": "Write a parser",
            "course_id": course.id,
            "priority": "high",
            "due_date": due,
            "assigned_to": student.id,
        },
        headers=auth_headers(teacher),
    )
    assert response.status_code == 201
    task = session.get(Task, response.json()["taskId"])
    assert task.priority == TaskPriority.HIGH
    assert task.status == TaskStatus.PENDING
    assert task.due_date.isoformat() == due
    assert task.assigned_to == student.id


def test_create_task_in_foreign_course(client: TestClient, make_user, make_course, auth_headers):
    course = make_course(make_user(UserRole.TEACHER))
    response = client.post(
        "/api/teacher/tasks",
        json={"title": "Sneaky", "course_id": course.id},
        headers=auth_headers(make_user(UserRole.TEACHER)),
    )
    assert response.status_code == 403


def test_create_task_validation(client: TestClient, teacher, make_course, auth_headers):
    course = make_course(teacher)
    headers = auth_headers(teacher)

    no_title = client.post("/api/teacher/tasks", json={"course_id": course.id}, headers=headers)
    assert no_title.status_code == 400

    bad_priority = client.post(
        "/api/teacher/tasks",
        json={"title": "x", "course_id": course.id, "priority": "urgent"},
        headers=headers,
    )
    assert bad_priority.status_code == 400


def test_list_tasks(client: TestClient, teacher, student, make_course, make_task, auth_headers):
    a = make_course(teacher, title="A")
    b = make_course(teacher, title="B")
    make_task(a, student, title="a-pending")
    make_task(a, student, title="a-done", status=TaskStatus.COMPLETED)
    make_task(b, student, title="b-pending")

    headers = auth_headers(teacher)
    everything = client.get(f"/api/teacher/tasks/{teacher.id}", headers=headers).json()
    assert len(everything) == 3
    assert everything[0]["assigned_student_email"] == student.email

    pending_in_a = client.get(
        f"/api/teacher/tasks/{teacher.id}",
        params={"status": "pending", "course_id": a.id},
        headers=headers,
    ).json()
    assert [t["title"] for t in pending_in_a] == ["a-pending"]


def test_grade_task_echoes_payload(client: TestClient, teacher, student, make_course, make_task, make_user, auth_headers):
    task = make_task(make_course(teacher), student)
    response = client.post(
        f"/api/teacher/tasks/{task.id}/grade",
        json={"grade": "A", "feedback": "Well done"},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 200
    assert response.json()["taskId"] == task.id
    assert response.json()["grade"] == "A"

    other = make_user(UserRole.TEACHER)
    assert client.post(
        f"/api/teacher/tasks/{task.id}/grade", json={"grade": "F"}, headers=auth_headers(other)
    ).status_code == 403


# === 仪表盘与分析 ===

def test_teacher_dashboard(client: TestClient, make_user, teacher, make_course, enroll, make_task, auth_headers):
    course = make_course(teacher)
    s1 = make_user(UserRole.STUDENT)
    s2 = make_user(UserRole.STUDENT)
    enroll(s1, course, progress=40)
    enroll(s2, course, progress=100, status=EnrollmentStatus.COMPLETED)
    make_task(course, s1, due_date=utc_today() - timedelta(days=1))
    make_task(course, s2, status=TaskStatus.COMPLETED)

    data = client.get(f"/api/teacher/dashboard/{teacher.id}", headers=auth_headers(teacher)).json()

    assert data["courses"][0]["enrolled_students"] == 2
    assert data["courses"][0]["completed_students"] == 1
    assert data["stats"]["total_students"] == 2
    assert data["stats"]["total_completions"] == 1
    assert data["stats"]["avg_course_progress"] == 70.0
    assert data["stats"]["total_tasks_assigned"] == 2
    assert len(data["recentActivities"]) == 2
    assert data["taskStats"] == {
        "total_tasks": 2,
        "pending_tasks": 1,
        "in_progress_tasks": 0,
        "completed_tasks": 1,
        "overdue_tasks": 1,
    }


def test_analytics(client: TestClient, make_user, teacher, make_course, enroll, auth_headers):
    fast = make_course(teacher, title="Fast")
    slow = make_course(teacher, title="Slow")
    s1 = make_user(UserRole.STUDENT)
    s2 = make_user(UserRole.STUDENT)
    enroll(s1, fast, progress=100, status=EnrollmentStatus.COMPLETED, enrolled_at=ago(days=3))
    enroll(s2, fast, progress=80)
    enroll(s1, slow, progress=10, enrolled_at=ago(days=90))

    headers = auth_headers(teacher)
    data = client.get(f"/api/teacher/analytics/{teacher.id}", headers=headers).json()

    assert sum(row["enrollments"] for row in data["enrollmentTrends"]) == 2
    assert sum(row["completions"] for row in data["completionTrends"]) == 1
    assert [row["title"] for row in data["coursePerformance"]] == ["Fast", "Slow"]
    assert data["coursePerformance"][0]["recent_completions"] == 1

    narrowed = client.get(
        f"/api/teacher/analytics/{teacher.id}",
        params={"courseId": slow.id, "period": 120},
        headers=headers,
    ).json()
    assert [row["title"] for row in narrowed["coursePerformance"]] == ["Slow"]
    assert sum(row["enrollments"] for row in narrowed["enrollmentTrends"]) == 1
    assert narrowed["completionTrends"] == []


def test_analytics_foreign_course(client: TestClient, make_user, teacher, make_course, auth_headers):
    foreign = make_course(make_user(UserRole.TEACHER))
    response = client.get(
        f"/api/teacher/analytics/{teacher.id}",
        params={"courseId": foreign.id},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 404


def test_analytics_of_another_teachers_course(client: TestClient, make_user, make_course, enroll, auth_headers):
    owner = make_user(UserRole.TEACHER)
    course = make_course(owner, title="Owner course")
    enroll(make_user(UserRole.STUDENT), course, progress=30)
    intruder = make_user(UserRole.TEACHER)

    response = client.get(
        f"/api/teacher/analytics/{owner.id}",
        params={"courseId": course.id},
        headers=auth_headers(intruder),
    )
    assert response.status_code == 404

    response = client.get(f"/api/teacher/analytics/{owner.id}", headers=auth_headers(intruder))
    assert response.status_code == 403


def test_admin_can_view_teacher_analytics(client: TestClient, make_user, make_course, auth_headers):
    owner = make_user(UserRole.TEACHER)
    course = make_course(owner, title="Owner course")
    admin = make_user(UserRole.ADMIN)

    response = client.get(
        f"/api/teacher/analytics/{owner.id}",
        params={"courseId": course.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert [row["title"] for row in response.json()["coursePerformance"]] == ["Owner course"]
