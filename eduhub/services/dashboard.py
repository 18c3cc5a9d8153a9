"""仪表盘聚合查询：统计、动态流、学习进度与推荐。

所有查询只读、幂等；缺失的聚合值一律降级为 0 或空列表。
"""

from __future__ import annotations

import math
import random
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy import and_, case, distinct, func, select
from sqlalchemy.orm import Session

from eduhub.config import Settings
from eduhub.models import (
    Achievement,
    Course,
    CourseEnrollment,
    CourseStatus,
    EnrollmentStatus,
    Group,
    GroupMember,
    GroupMemberRole,
    GroupStatus,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    UserAchievement,
)
from eduhub.services.common import as_float, as_int, date_key, days_ago, utc_today

STREAK_LOOKBACK_DAYS = 30
STREAK_WINDOW_DAYS = 28
HOURS_PER_PROGRESS_POINT = 2

# 动态类型 -> (图标, 颜色)
ACTIVITY_STYLES = {
    "course": ("fa-graduation-cap", "blue"),
    "task": ("fa-check-circle", "green"),
    "group": ("fa-user-plus", "purple"),
    "achievement": ("fa-trophy", "yellow"),
}


# === 共用查询 ===

def member_count_subquery():
    return (
        select(
            GroupMember.group_id.label("group_id"),
            func.count(GroupMember.id).label("member_count"),
        )
        .group_by(GroupMember.group_id)
        .subquery()
    )


def active_project_subquery():
    return (
        select(
            Project.group_id.label("group_id"),
            func.count(Project.id).label("project_count"),
        )
        .where(Project.status == ProjectStatus.ACTIVE)
        .group_by(Project.group_id)
        .subquery()
    )


def joinable_groups(
    db: Session,
    user_id: int,
    member_limit: int,
    limit: int,
    fewest_members_first: bool = False,
) -> List[Dict[str, Any]]:
    """用户尚未加入、未满员的活跃小组。"""

    members = member_count_subquery()
    projects = active_project_subquery()
    member_count = func.coalesce(members.c.member_count, 0)
    joined = select(GroupMember.group_id).where(GroupMember.user_id == user_id)

    ordering = member_count.asc() if fewest_members_first else member_count.desc()
    rows = (
        db.query(
            Group.id,
            Group.name,
            Group.description,
            Group.logo,
            member_count.label("member_count"),
            func.coalesce(projects.c.project_count, 0).label("active_projects"),
        )
        .outerjoin(members, members.c.group_id == Group.id)
        .outerjoin(projects, projects.c.group_id == Group.id)
        .filter(
            Group.status == GroupStatus.ACTIVE,
            Group.id.not_in(joined),
            member_count < member_limit,
        )
        .order_by(ordering, Group.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": row.id,
            "name": row.name,
            "description": row.description,
            "logo": row.logo,
            "member_count": as_int(row.member_count),
            "active_projects": as_int(row.active_projects),
        }
        for row in rows
    ]


def study_days(db: Session, user_id: int) -> List[str]:
    """最近 28 天内有选课活动的日期（降序）。

    先取 30 天窗口内的不同日期，再截取最近 28 天。
    """

    day = func.date(CourseEnrollment.enrolled_at)
    rows = (
        db.query(day)
        .filter(
            CourseEnrollment.user_id == user_id,
            CourseEnrollment.enrolled_at >= days_ago(STREAK_LOOKBACK_DAYS),
        )
        .distinct()
        .all()
    )
    cutoff = (utc_today() - timedelta(days=STREAK_WINDOW_DAYS)).isoformat()
    days = {key for key in (date_key(row[0]) for row in rows) if key and key >= cutoff}
    return sorted(days, reverse=True)


def estimated_study_hours(db: Session, user_id: int) -> int:
    """估算学习时长：活跃选课的进度 × 2 求和。"""

    total = (
        db.query(func.sum(CourseEnrollment.progress * HOURS_PER_PROGRESS_POINT))
        .filter(
            CourseEnrollment.user_id == user_id,
            CourseEnrollment.status == EnrollmentStatus.ACTIVE,
        )
        .scalar()
    )
    # 0.5 向上取整
    return math.floor(as_float(total) + 0.5)


class DashboardService:
    """通用仪表盘（学生首页）数据。"""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def get_stats(self, db: Session, user_id: int) -> Dict[str, Any]:
        today = utc_today()
        week_ago = days_ago(7)
        month_ago = days_ago(30)

        course_row = (
            db.query(
                func.count(distinct(CourseEnrollment.course_id)),
                func.avg(CourseEnrollment.progress),
                func.count(case((CourseEnrollment.enrolled_at >= week_ago, 1))),
            )
            .filter(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.status == EnrollmentStatus.ACTIVE,
            )
            .one()
        )
        completed_courses = (
            db.query(func.count(CourseEnrollment.id))
            .filter(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.status == EnrollmentStatus.COMPLETED,
            )
            .scalar()
        )

        task_row = (
            db.query(
                func.count(Task.id),
                func.count(
                    case((and_(Task.status == TaskStatus.PENDING, Task.due_date <= today), 1))
                ),
                func.count(case((Task.status == TaskStatus.IN_PROGRESS, 1))),
                func.count(
                    case(
                        (and_(Task.status == TaskStatus.COMPLETED, Task.updated_at >= week_ago), 1)
                    )
                ),
                func.count(
                    case((Task.due_date.between(today, today + timedelta(days=7)), 1))
                ),
            )
            .filter(Task.assigned_to == user_id)
            .one()
        )

        group_row = (
            db.query(
                func.count(GroupMember.id),
                func.count(case((GroupMember.role == GroupMemberRole.LEADER, 1))),
                func.count(case((GroupMember.joined_at >= month_ago, 1))),
            )
            .join(Group, Group.id == GroupMember.group_id)
            .filter(GroupMember.user_id == user_id, Group.status == GroupStatus.ACTIVE)
            .one()
        )

        achievement_row = (
            db.query(
                func.count(UserAchievement.id),
                func.count(case((UserAchievement.earned_at >= month_ago, 1))),
            )
            .filter(UserAchievement.user_id == user_id)
            .one()
        )

        days = study_days(db, user_id)

        return {
            "courses": {
                "active": as_int(course_row[0]),
                "completed": as_int(completed_courses),
                "avg_progress": as_float(course_row[1], 2),
                "new_this_week": as_int(course_row[2]),
            },
            "tasks": {
                "total": as_int(task_row[0]),
                "overdue": as_int(task_row[1]),
                "in_progress": as_int(task_row[2]),
                "completed_this_week": as_int(task_row[3]),
                "due_this_week": as_int(task_row[4]),
            },
            "groups": {
                "active": as_int(group_row[0]),
                "leading": as_int(group_row[1]),
                "new_this_month": as_int(group_row[2]),
            },
            "learning": {
                "current_streak": len(days),
                "estimated_hours": estimated_study_hours(db, user_id),
                "last_study_date": days[0] if days else None,
            },
            "achievements": {
                "total": as_int(achievement_row[0]),
                "earned_this_month": as_int(achievement_row[1]),
            },
        }

    def get_activity(self, db: Session, user_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        """合并四类最近动态，按时间降序取前 ``limit`` 条。

        每个来源都各取 ``limit`` 条，合并后的前 ``limit`` 条因此是精确的。
        """

        enrollments = (
            db.query(CourseEnrollment.enrolled_at, Course.title)
            .join(Course, Course.id == CourseEnrollment.course_id)
            .filter(CourseEnrollment.user_id == user_id)
            .order_by(CourseEnrollment.enrolled_at.desc())
            .limit(limit)
            .all()
        )
        tasks = (
            db.query(Task.updated_at, Task.title)
            .filter(Task.assigned_to == user_id, Task.status == TaskStatus.COMPLETED)
            .order_by(Task.updated_at.desc())
            .limit(limit)
            .all()
        )
        joins = (
            db.query(GroupMember.joined_at, Group.name)
            .join(Group, Group.id == GroupMember.group_id)
            .filter(GroupMember.user_id == user_id)
            .order_by(GroupMember.joined_at.desc())
            .limit(limit)
            .all()
        )
        awards = (
            db.query(UserAchievement.earned_at, Achievement.title)
            .join(Achievement, Achievement.id == UserAchievement.achievement_id)
            .filter(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.earned_at.desc())
            .limit(limit)
            .all()
        )

        activities = (
            [_activity("course", ts, title, "enrolled") for ts, title in enrollments]
            + [_activity("task", ts, title, TaskStatus.COMPLETED.value) for ts, title in tasks]
            + [_activity("group", ts, title, "joined") for ts, title in joins]
            + [_activity("achievement", ts, title, "earned") for ts, title in awards]
        )
        activities.sort(key=lambda item: item["timestamp"], reverse=True)
        return activities[:limit]

    def get_progress(self, db: Session, user_id: int, days: int = 30) -> List[Dict[str, Any]]:
        """按天统计窗口内的选课数量与平均进度。"""

        day = func.date(CourseEnrollment.enrolled_at)
        rows = (
            db.query(day, func.count(CourseEnrollment.id), func.avg(CourseEnrollment.progress))
            .filter(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.enrolled_at >= days_ago(days),
            )
            .group_by(day)
            .order_by(day.asc())
            .all()
        )
        return [
            {
                "date": date_key(row[0]),
                "courses_enrolled": as_int(row[1]),
                "avg_progress": as_float(row[2], 2),
            }
            for row in rows
        ]

    def get_recommendations(self, db: Session, user_id: int) -> Dict[str, Any]:
        overdue = (
            db.query(Task.id, Task.title, Task.due_date)
            .filter(
                Task.assigned_to == user_id,
                Task.status == TaskStatus.PENDING,
                Task.due_date < utc_today(),
            )
            .order_by(Task.due_date.asc())
            .limit(3)
            .all()
        )

        enrolled = select(CourseEnrollment.course_id).where(CourseEnrollment.user_id == user_id)
        candidates = (
            db.query(Course.id, Course.title, Course.category)
            .filter(Course.status == CourseStatus.ACTIVE, Course.id.not_in(enrolled))
            .all()
        )
        picked = random.sample(candidates, min(3, len(candidates)))

        return {
            "overdue_tasks": [
                {"id": row.id, "title": row.title, "due_date": row.due_date} for row in overdue
            ],
            "recommended_courses": [
                {"id": row.id, "title": row.title, "category": row.category} for row in picked
            ],
            "available_groups": joinable_groups(
                db, user_id, self.settings.group_member_limit, limit=3
            ),
        }


def _activity(kind: str, timestamp: Any, title: str, action: str) -> Dict[str, Any]:
    icon, color = ACTIVITY_STYLES[kind]
    return {
        "type": kind,
        "timestamp": timestamp,
        "title": title,
        "action": action,
        "icon": icon,
        "color": color,
    }
