"""成就目录初始化、发放与检查。

``check_achievements`` 是普通函数，显式接收 Session 和用户 id，
在更新课程进度后调用；发放失败只记录日志，不影响调用方。
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from eduhub.models import (
    CERTIFIED_ACHIEVEMENT_ID,
    CODE_MASTER_ACHIEVEMENT_ID,
    PRESET_ACHIEVEMENTS,
    Achievement,
    CourseEnrollment,
    EnrollmentStatus,
    Task,
    TaskStatus,
    UserAchievement,
)

logger = logging.getLogger(__name__)

COMPLETED_COURSES_THRESHOLD = 10
COMPLETED_TASKS_THRESHOLD = 100


def seed_achievements(db: Session) -> int:
    """写入缺失的预置成就，返回新增条数。已存在的 id 不会被覆盖。"""

    existing = {row[0] for row in db.query(Achievement.id).all()}
    created = 0
    for data in PRESET_ACHIEVEMENTS:
        if data["id"] in existing:
            continue
        db.add(Achievement(**data))
        created += 1
    if created:
        db.commit()
    return created


def list_catalog(db: Session) -> list[Achievement]:
    return db.query(Achievement).order_by(Achievement.id.asc()).all()


def list_user_achievements(db: Session, user_id: int) -> list[dict]:
    rows = (
        db.query(Achievement, UserAchievement.earned_at)
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .filter(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.earned_at.desc())
        .all()
    )
    return [
        {
            "id": achievement.id,
            "title": achievement.title,
            "description": achievement.description,
            "icon": achievement.icon,
            "type": achievement.type.value,
            "earned_at": earned_at,
        }
        for achievement, earned_at in rows
    ]


def _has_achievement(db: Session, user_id: int, achievement_id: int) -> bool:
    return (
        db.query(UserAchievement.id)
        .filter(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_id == achievement_id,
        )
        .first()
        is not None
    )


def award_achievement(db: Session, user_id: int, achievement_id: int) -> bool:
    """幂等发放成就。已拥有或被唯一约束拒绝时返回 False。"""

    if _has_achievement(db, user_id, achievement_id):
        return False

    db.add(UserAchievement(user_id=user_id, achievement_id=achievement_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False

    logger.info("Awarded achievement %s to user %s", achievement_id, user_id)
    return True


def check_achievements(db: Session, user_id: int) -> list[int]:
    """按完成课程数/完成任务数检查阈值并发放成就，返回本次新发放的成就 id。"""

    awarded: list[int] = []
    try:
        completed_courses = (
            db.query(func.count(CourseEnrollment.id))
            .filter(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.status == EnrollmentStatus.COMPLETED,
            )
            .scalar()
            or 0
        )
        if completed_courses >= COMPLETED_COURSES_THRESHOLD:
            if award_achievement(db, user_id, CERTIFIED_ACHIEVEMENT_ID):
                awarded.append(CERTIFIED_ACHIEVEMENT_ID)

        completed_tasks = (
            db.query(func.count(Task.id))
            .filter(Task.assigned_to == user_id, Task.status == TaskStatus.COMPLETED)
            .scalar()
            or 0
        )
        if completed_tasks >= COMPLETED_TASKS_THRESHOLD:
            if award_achievement(db, user_id, CODE_MASTER_ACHIEVEMENT_ID):
                awarded.append(CODE_MASTER_ACHIEVEMENT_ID)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Achievement check failed for user %s", user_id)
    return awarded
