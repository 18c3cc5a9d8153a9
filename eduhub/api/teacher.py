"""教师专区API（教师与管理员可用）。"""

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from eduhub.access import Capability, get_app_settings, has_capability, require_teacher
from eduhub.config import Settings
from eduhub.db import get_db
from eduhub.security import TokenClaims
from eduhub.services.teacher import TeacherService

router = APIRouter()


def get_teacher_service(settings: Settings = Depends(get_app_settings)) -> TeacherService:
    return TeacherService(settings)


# === Schemas ===

class CourseCreateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


class CourseUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None


class TaskCreateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    course_id: Optional[int] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    assigned_to: Optional[int] = None


class GradeRequest(BaseModel):
    grade: Optional[Any] = None
    feedback: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class CourseCreatedResponse(BaseModel):
    message: str
    courseId: int


class TaskCreatedResponse(BaseModel):
    message: str
    taskId: int


# === API 端点 ===

@router.get("/dashboard/{user_id}")
def get_dashboard(
    user_id: int,
    _: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    return service.get_teacher_dashboard(db, user_id)


@router.get("/courses/{user_id}")
def list_courses(
    user_id: int,
    category: Optional[str] = Query(None, description="按类别过滤"),
    course_status: Optional[str] = Query(None, alias="status", description="active / inactive"),
    _: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    """教师课程列表，附带每门课的任务统计。"""
    return service.list_teacher_courses(db, user_id, category, course_status)


@router.post("/courses", response_model=CourseCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreateRequest,
    claims: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    course = service.create_course(
        db, claims.userId, payload.title, payload.category, payload.description
    )
    return {"message": "Course created successfully", "courseId": course.id}


@router.put("/courses/{course_id}", response_model=MessageResponse)
def update_course(
    course_id: int,
    payload: CourseUpdateRequest,
    claims: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    service.update_course(
        db,
        claims.userId,
        course_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        status=payload.status,
    )
    return {"message": "Course updated successfully"}


@router.post("/courses/{course_id}/materials")
def upload_materials(
    course_id: int,
    claims: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    return service.upload_materials(db, claims.userId, course_id)


@router.get("/courses/{course_id}/students")
def get_course_students(
    course_id: int,
    claims: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    return service.get_course_students(db, claims.userId, course_id)


@router.post("/tasks", response_model=TaskCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreateRequest,
    claims: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    """在自己的课程下布置任务。"""
    task = service.create_task(
        db,
        claims.userId,
        course_id=payload.course_id,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        due_date=payload.due_date,
        assigned_to=payload.assigned_to,
    )
    return {"message": "Task created successfully", "taskId": task.id}


@router.get("/tasks/{user_id}")
def list_tasks(
    user_id: int,
    task_status: Optional[str] = Query(None, alias="status"),
    course_id: Optional[int] = Query(None),
    _: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    return service.list_teacher_tasks(db, user_id, task_status, course_id)


@router.post("/tasks/{task_id}/grade")
def grade_task(
    task_id: int,
    payload: GradeRequest,
    claims: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    return service.grade_task(db, claims.userId, task_id, payload.grade, payload.feedback)


@router.get("/library/{user_id}")
def get_library(
    user_id: int,
    _: TokenClaims = Depends(require_teacher),
    service: TeacherService = Depends(get_teacher_service),
):
    return service.library(user_id)


@router.get("/analytics/{user_id}")
def get_analytics(
    user_id: int,
    course_id: Optional[int] = Query(None, alias="courseId"),
    period: int = Query(30, ge=1, le=365, description="趋势窗口（天）"),
    claims: TokenClaims = Depends(require_teacher),
    db: Session = Depends(get_db),
    service: TeacherService = Depends(get_teacher_service),
):
    """选课/完成趋势与课程表现，可限定到单门课程。"""
    return service.get_analytics(
        db,
        user_id,
        course_id,
        period,
        viewer_id=claims.userId,
        viewer_is_admin=has_capability(claims.role, Capability.ADMIN_AREA),
    )
