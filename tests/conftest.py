import itertools
import os

# 导入应用之前设置，模块级的 app 也会使用内存库
os.environ.setdefault("EDUHUB_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("EDUHUB_BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from eduhub.config import Settings
from eduhub.db import Base, create_db_engine, get_db, make_session_factory
from eduhub.main import create_app
from eduhub.models import (
    Course,
    CourseEnrollment,
    CourseStatus,
    EnrollmentStatus,
    Group,
    GroupMember,
    GroupMemberRole,
    GroupStatus,
    Task,
    TaskStatus,
    User,
    UserRole,
)
from eduhub.security import create_token, hash_password

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite:///:memory:",
        jwt_secret_key="test-secret",
        bcrypt_rounds=4,
        seed_on_startup=True,
        log_level="WARNING",
    )


@pytest.fixture
def engine(settings):
    # Use in-memory SQLite (StaticPool) to ensure isolation
    engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    """
    Create a fresh database session for each test.
    """
    db = make_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine)


@pytest.fixture
def client(app, session):
    """
    Create a TestClient that shares the test session through get_db.
    """
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# === 数据工厂 ===

@pytest.fixture
def make_user(session, settings):
    counter = itertools.count(1)

    def _make(role=UserRole.STUDENT, email=None, password=DEFAULT_PASSWORD, full_name=None):
        n = next(counter)
        user = User(
            full_name=full_name or f"{role.value.title()} {n}",
            email=email or f"{role.value}{n}@example.com",
            password_hash=hash_password(password, settings),
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def auth_headers(settings):
    def _headers(user):
        token = create_token(user.id, user.email, user.role, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT)


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.TEACHER)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def make_course(session):
    def _make(teacher, title="Python Basics", category="Programming", status=CourseStatus.ACTIVE):
        course = Course(title=title, category=category, teacher_id=teacher.id, status=status)
        session.add(course)
        session.commit()
        session.refresh(course)
        return course

    return _make


@pytest.fixture
def enroll(session):
    def _enroll(user, course, progress=0.0, status=EnrollmentStatus.ACTIVE, **fields):
        enrollment = CourseEnrollment(
            course_id=course.id, user_id=user.id, progress=progress, status=status, **fields
        )
        session.add(enrollment)
        session.commit()
        session.refresh(enrollment)
        return enrollment

    return _enroll


@pytest.fixture
def make_group(session):
    def _make(leader=None, name="Study Group", status=GroupStatus.ACTIVE):
        group = Group(name=name, status=status, created_by=leader.id if leader else None)
        session.add(group)
        session.flush()
        if leader is not None:
            session.add(
                GroupMember(group_id=group.id, user_id=leader.id, role=GroupMemberRole.LEADER)
            )
        session.commit()
        session.refresh(group)
        return group

    return _make


@pytest.fixture
def add_member(session):
    def _add(group, user, role=GroupMemberRole.MEMBER):
        member = GroupMember(group_id=group.id, user_id=user.id, role=role)
        session.add(member)
        session.commit()
        return member

    return _add


@pytest.fixture
def make_task(session):
    def _make(course, assignee=None, title="Homework", status=TaskStatus.PENDING, **fields):
        task = Task(
            title=title,
            course_id=course.id,
            assigned_to=assignee.id if assignee else None,
            status=status,
            **fields,
        )
        session.add(task)
        session.commit()
        session.refresh(task)
        return task

    return _make
