"""学生端：个人仪表盘、选课、进度、小组与任务。"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eduhub.config import Settings
from eduhub.db import unit_of_work
from eduhub.errors import ConflictError, NotFoundError, ValidationError
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
    UserAchievement,
)
from eduhub.services.achievements import check_achievements, list_user_achievements
from eduhub.services.common import as_float, as_int, days_until, utc_today
from eduhub.services.dashboard import (
    active_project_subquery,
    estimated_study_hours,
    joinable_groups,
    member_count_subquery,
    study_days,
)

logger = logging.getLogger(__name__)

RECENT_ACHIEVEMENTS = 10
RECOMMENDED_COURSES = 5
AVAILABLE_GROUPS = 5


class StudentService:
    """学生专区的读写操作。"""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    # === 仪表盘 ===

    def get_student_dashboard(self, db: Session, user_id: int) -> Dict[str, Any]:
        return {
            "courses": self._enrolled_courses(db, user_id),
            "groups": self._my_groups(db, user_id),
            "tasks": self._my_tasks(db, user_id),
            "achievements": list_user_achievements(db, user_id)[:RECENT_ACHIEVEMENTS],
            "stats": self._learning_stats(db, user_id),
            "recommendedCourses": self._recommended_courses(db, user_id),
            "availableGroups": joinable_groups(
                db,
                user_id,
                self.settings.group_member_limit,
                limit=AVAILABLE_GROUPS,
                fewest_members_first=True,
            ),
        }

    def _enrolled_courses(self, db: Session, user_id: int) -> List[Dict[str, Any]]:
        today = utc_today()
        task_counts = (
            select(
                Task.course_id.label("course_id"),
                func.count(case((Task.status == TaskStatus.PENDING, 1))).label("pending"),
                func.count(
                    case((and_(Task.status == TaskStatus.PENDING, Task.due_date <= today), 1))
                ).label("overdue"),
            )
            .where(Task.assigned_to == user_id)
            .group_by(Task.course_id)
            .subquery()
        )
        rows = (
            db.query(
                Course,
                CourseEnrollment.progress,
                CourseEnrollment.enrolled_at,
                CourseEnrollment.status,
                User.full_name,
                func.coalesce(task_counts.c.pending, 0),
                func.coalesce(task_counts.c.overdue, 0),
            )
            .join(Course, Course.id == CourseEnrollment.course_id)
            .outerjoin(User, User.id == Course.teacher_id)
            .outerjoin(task_counts, task_counts.c.course_id == Course.id)
            .filter(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.status == EnrollmentStatus.ACTIVE,
            )
            .order_by(CourseEnrollment.enrolled_at.desc())
            .all()
        )
        return [
            {
                "id": course.id,
                "title": course.title,
                "description": course.description,
                "category": course.category,
                "avatar": course.avatar,
                "progress": as_float(progress),
                "enrolled_at": enrolled_at,
                "enrollment_status": status.value,
                "teacher_name": teacher_name,
                "pending_tasks": as_int(pending),
                "overdue_tasks": as_int(overdue),
            }
            for course, progress, enrolled_at, status, teacher_name, pending, overdue in rows
        ]

    def _my_groups(self, db: Session, user_id: int) -> List[Dict[str, Any]]:
        members = member_count_subquery()
        projects = active_project_subquery()
        rows = (
            db.query(
                Group,
                GroupMember.role,
                GroupMember.joined_at,
                func.coalesce(members.c.member_count, 0),
                func.coalesce(projects.c.project_count, 0),
            )
            .join(Group, Group.id == GroupMember.group_id)
            .outerjoin(members, members.c.group_id == Group.id)
            .outerjoin(projects, projects.c.group_id == Group.id)
            .filter(GroupMember.user_id == user_id, Group.status == GroupStatus.ACTIVE)
            .order_by(GroupMember.joined_at.desc())
            .all()
        )
        return [
            {
                "id": group.id,
                "name": group.name,
                "description": group.description,
                "logo": group.logo,
                "status": group.status.value,
                "student_role": role.value,
                "joined_at": joined_at,
                "total_members": as_int(total_members),
                "active_projects": as_int(active_projects),
            }
            for group, role, joined_at, total_members, active_projects in rows
        ]

    def _my_tasks(self, db: Session, user_id: int) -> List[Dict[str, Any]]:
        """任务按 逾期 → 进行中 → 待办 → 其他 排序，同组内按截止日期升序。"""

        today = utc_today()
        urgency = case(
            (and_(Task.status == TaskStatus.PENDING, Task.due_date < today), 1),
            (Task.status == TaskStatus.IN_PROGRESS, 2),
            (Task.status == TaskStatus.PENDING, 3),
            else_=4,
        )
        rows = (
            db.query(Task, Course.title)
            .outerjoin(Course, Course.id == Task.course_id)
            .filter(Task.assigned_to == user_id)
            .order_by(urgency, Task.due_date.asc())
            .all()
        )
        return [
            {
                "id": task.id,
                "title": task.title,
                "description": task.description,
                "priority": task.priority.value,
                "status": task.status.value,
                "due_date": task.due_date,
                "course_title": course_title,
                "days_until_due": days_until(task.due_date),
            }
            for task, course_title in rows
        ]

    def _learning_stats(self, db: Session, user_id: int) -> Dict[str, Any]:
        enrollment_row = (
            db.query(
                func.count(case((CourseEnrollment.status == EnrollmentStatus.ACTIVE, 1))),
                func.count(case((CourseEnrollment.status == EnrollmentStatus.COMPLETED, 1))),
                func.avg(
                    case(
                        (CourseEnrollment.status == EnrollmentStatus.ACTIVE, CourseEnrollment.progress)
                    )
                ),
            )
            .filter(CourseEnrollment.user_id == user_id)
            .one()
        )
        active_groups = (
            db.query(func.count(GroupMember.id))
            .join(Group, Group.id == GroupMember.group_id)
            .filter(GroupMember.user_id == user_id, Group.status == GroupStatus.ACTIVE)
            .scalar()
        )
        total_achievements = (
            db.query(func.count(UserAchievement.id))
            .filter(UserAchievement.user_id == user_id)
            .scalar()
        )
        return {
            "enrolled_courses": as_int(enrollment_row[0]),
            "completed_courses": as_int(enrollment_row[1]),
            "avg_progress": as_float(enrollment_row[2], 2),
            "active_groups": as_int(active_groups),
            "total_achievements": as_int(total_achievements),
            "estimated_study_hours": estimated_study_hours(db, user_id),
            "current_streak": len(study_days(db, user_id)),
        }

    def _recommended_courses(self, db: Session, user_id: int) -> List[Dict[str, Any]]:
        """未选的活跃课程，按在读人数降序。"""

        enrolled_students = (
            select(
                CourseEnrollment.course_id.label("course_id"),
                func.count(CourseEnrollment.id).label("students"),
            )
            .where(CourseEnrollment.status == EnrollmentStatus.ACTIVE)
            .group_by(CourseEnrollment.course_id)
            .subquery()
        )
        students = func.coalesce(enrolled_students.c.students, 0)
        mine = select(CourseEnrollment.course_id).where(CourseEnrollment.user_id == user_id)
        rows = (
            db.query(Course, User.full_name, students)
            .outerjoin(User, User.id == Course.teacher_id)
            .outerjoin(enrolled_students, enrolled_students.c.course_id == Course.id)
            .filter(Course.status == CourseStatus.ACTIVE, Course.id.not_in(mine))
            .order_by(students.desc(), Course.id.asc())
            .limit(RECOMMENDED_COURSES)
            .all()
        )
        return [
            {
                "id": course.id,
                "title": course.title,
                "description": course.description,
                "category": course.category,
                "avatar": course.avatar,
                "teacher_name": teacher_name,
                "enrolled_students": as_int(count),
            }
            for course, teacher_name, count in rows
        ]

    # === 课程 ===

    def _get_enrollment(
        self, db: Session, user_id: int, course_id: int
    ) -> Optional[CourseEnrollment]:
        return (
            db.query(CourseEnrollment)
            .filter(CourseEnrollment.course_id == course_id, CourseEnrollment.user_id == user_id)
            .first()
        )

    def enroll(self, db: Session, user_id: int, course_id: int) -> CourseEnrollment:
        if self._get_enrollment(db, user_id, course_id):
            raise ConflictError("Already enrolled in this course")

        course = db.get(Course, course_id)
        if not course or course.status != CourseStatus.ACTIVE:
            raise NotFoundError("Course not found or inactive")

        enrollment = CourseEnrollment(course_id=course_id, user_id=user_id)
        db.add(enrollment)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("Already enrolled in this course") from exc
        db.refresh(enrollment)
        logger.info("User %s enrolled in course %s", user_id, course_id)
        return enrollment

    def update_progress(
        self, db: Session, user_id: int, course_id: int, progress: Optional[float]
    ) -> CourseEnrollment:
        """更新进度；达到 100 视为完成，随后检查成就。"""

        if progress is None or not 0 <= progress <= 100:
            raise ValidationError("Progress must be between 0 and 100", field="progress")

        enrollment = self._get_enrollment(db, user_id, course_id)
        if not enrollment:
            raise ValidationError("Not enrolled in this course")

        enrollment.progress = float(progress)
        enrollment.status = (
            EnrollmentStatus.COMPLETED if progress >= 100 else EnrollmentStatus.ACTIVE
        )
        db.commit()
        db.refresh(enrollment)

        check_achievements(db, user_id)
        return enrollment

    # === 小组 ===

    def create_group(
        self, db: Session, user_id: int, name: Optional[str], description: Optional[str] = None
    ) -> Group:
        if not name or not name.strip():
            raise ValidationError("Group name is required", field="name")

        with unit_of_work(db):
            group = Group(name=name.strip(), description=description, created_by=user_id)
            db.add(group)
            db.flush()
            db.add(GroupMember(group_id=group.id, user_id=user_id, role=GroupMemberRole.LEADER))

        db.refresh(group)
        logger.info("User %s created group %s", user_id, group.id)
        return group

    def _get_membership(self, db: Session, user_id: int, group_id: int) -> Optional[GroupMember]:
        return (
            db.query(GroupMember)
            .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
            .first()
        )

    def join_group(self, db: Session, user_id: int, group_id: int) -> GroupMember:
        if self._get_membership(db, user_id, group_id):
            raise ConflictError("Already a member of this group")

        group = db.get(Group, group_id)
        if not group or group.status != GroupStatus.ACTIVE:
            raise NotFoundError("Group not found or inactive")

        # 并发加入时上限检查不是原子的
        members = (
            db.query(func.count(GroupMember.id)).filter(GroupMember.group_id == group_id).scalar()
        )
        if as_int(members) >= self.settings.group_member_limit:
            raise ConflictError("Group is full")

        membership = GroupMember(group_id=group_id, user_id=user_id, role=GroupMemberRole.MEMBER)
        db.add(membership)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("Already a member of this group") from exc
        db.refresh(membership)
        return membership

    def leave_group(self, db: Session, user_id: int, group_id: int) -> None:
        """退出小组。

        唯一的组长在还有其他成员时不能退出；没有其他成员时允许退出，小组随之无组长。
        """

        membership = self._get_membership(db, user_id, group_id)
        if not membership:
            raise ValidationError("Not a member of this group")

        if membership.role == GroupMemberRole.LEADER:
            others = db.query(GroupMember.role).filter(
                GroupMember.group_id == group_id, GroupMember.user_id != user_id
            )
            other_roles = [row[0] for row in others.all()]
            if other_roles and GroupMemberRole.LEADER not in other_roles:
                raise ConflictError(
                    "Group leader cannot leave while other members remain",
                    {"group_id": group_id},
                )

        db.delete(membership)
        db.commit()
        logger.info("User %s left group %s", user_id, group_id)

    # === 任务 ===

    def complete_task(self, db: Session, user_id: int, task_id: int) -> Task:
        task = (
            db.query(Task).filter(Task.id == task_id, Task.assigned_to == user_id).first()
        )
        if not task:
            raise NotFoundError("Task not found")

        task.status = TaskStatus.COMPLETED
        db.commit()
        db.refresh(task)

        check_achievements(db, user_id)
        return task
