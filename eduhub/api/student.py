"""学生专区API。"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from eduhub.access import get_app_settings, require_student
from eduhub.config import Settings
from eduhub.db import get_db
from eduhub.security import TokenClaims
from eduhub.services.student import StudentService

router = APIRouter()


def get_student_service(settings: Settings = Depends(get_app_settings)) -> StudentService:
    return StudentService(settings)


# === Schemas ===

class ProgressUpdateRequest(BaseModel):
    progress: Optional[float] = None


class CreateGroupRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class CreateGroupResponse(BaseModel):
    message: str
    groupId: int


# === API 端点 ===

@router.get("/dashboard/{user_id}")
def get_dashboard(
    user_id: int,
    _: TokenClaims = Depends(require_student),
    db: Session = Depends(get_db),
    service: StudentService = Depends(get_student_service),
):
    """学生首页所需的全部数据。"""
    return service.get_student_dashboard(db, user_id)


@router.post("/courses/{course_id}/enroll", response_model=MessageResponse)
def enroll(
    course_id: int,
    claims: TokenClaims = Depends(require_student),
    db: Session = Depends(get_db),
    service: StudentService = Depends(get_student_service),
):
    service.enroll(db, claims.userId, course_id)
    return {"message": "Successfully enrolled in course"}


@router.put("/courses/{course_id}/progress", response_model=MessageResponse)
def update_progress(
    course_id: int,
    payload: ProgressUpdateRequest,
    claims: TokenClaims = Depends(require_student),
    db: Session = Depends(get_db),
    service: StudentService = Depends(get_student_service),
):
    service.update_progress(db, claims.userId, course_id, payload.progress)
    return {"message": "Progress updated successfully"}


@router.post("/groups", response_model=CreateGroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(
    payload: CreateGroupRequest,
    claims: TokenClaims = Depends(require_student),
    db: Session = Depends(get_db),
    service: StudentService = Depends(get_student_service),
):
    """创建小组，创建者自动成为组长。"""
    group = service.create_group(db, claims.userId, payload.name, payload.description)
    return {"message": "Group created successfully", "groupId": group.id}


@router.post("/groups/{group_id}/join", response_model=MessageResponse)
def join_group(
    group_id: int,
    claims: TokenClaims = Depends(require_student),
    db: Session = Depends(get_db),
    service: StudentService = Depends(get_student_service),
):
    service.join_group(db, claims.userId, group_id)
    return {"message": "Successfully joined group"}


@router.post("/groups/{group_id}/leave", response_model=MessageResponse)
def leave_group(
    group_id: int,
    claims: TokenClaims = Depends(require_student),
    db: Session = Depends(get_db),
    service: StudentService = Depends(get_student_service),
):
    service.leave_group(db, claims.userId, group_id)
    return {"message": "Successfully left group"}


@router.put("/tasks/{task_id}/complete", response_model=MessageResponse)
def complete_task(
    task_id: int,
    claims: TokenClaims = Depends(require_student),
    db: Session = Depends(get_db),
    service: StudentService = Depends(get_student_service),
):
    service.complete_task(db, claims.userId, task_id)
    return {"message": "Task marked as completed"}
