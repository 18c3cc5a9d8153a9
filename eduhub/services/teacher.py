"""教师端：课程管理、任务布置与教学分析。"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, distinct, func, select
from sqlalchemy.orm import Session

from eduhub.config import Settings
from eduhub.errors import AccessDeniedError, NotFoundError, ValidationError
from eduhub.models import (
    Course,
    CourseEnrollment,
    CourseStatus,
    EnrollmentStatus,
    Task,
    TaskPriority,
    TaskStatus,
    User,
)
from eduhub.services.common import as_float, as_int, date_key, days_ago, utc_today

logger = logging.getLogger(__name__)

RECENT_ENROLLMENTS = 10
LIBRARY_CATEGORIES = ["Documents", "Videos", "Images", "Audio"]


def _parse_enum(enum_cls, value: Optional[str], field: str):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}", field=field) from None


def _enrollment_stats_subquery():
    """按课程汇总选课情况：人数、完成人数、平均进度、本周新增。"""

    return (
        select(
            CourseEnrollment.course_id.label("course_id"),
            func.count(CourseEnrollment.id).label("enrolled_students"),
            func.count(
                case((CourseEnrollment.status == EnrollmentStatus.COMPLETED, 1))
            ).label("completed_students"),
            func.avg(CourseEnrollment.progress).label("avg_progress"),
            func.count(
                case((CourseEnrollment.enrolled_at >= days_ago(7), 1))
            ).label("new_enrollments_this_week"),
        )
        .group_by(CourseEnrollment.course_id)
        .subquery()
    )


class TeacherService:
    """教师专区的读写操作；管理员与教师共用同一套逻辑。"""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _owned_course(self, db: Session, teacher_id: int, course_id: Optional[int]) -> Course:
        course = db.get(Course, course_id) if course_id is not None else None
        if not course or course.teacher_id != teacher_id:
            raise AccessDeniedError("Access denied", {"course_id": course_id})
        return course

    def _courses_with_stats(
        self,
        db: Session,
        teacher_id: int,
        category: Optional[str] = None,
        status: Optional[CourseStatus] = None,
    ) -> List[Dict[str, Any]]:
        stats = _enrollment_stats_subquery()
        query = (
            db.query(
                Course,
                func.coalesce(stats.c.enrolled_students, 0),
                func.coalesce(stats.c.completed_students, 0),
                stats.c.avg_progress,
                func.coalesce(stats.c.new_enrollments_this_week, 0),
            )
            .outerjoin(stats, stats.c.course_id == Course.id)
            .filter(Course.teacher_id == teacher_id)
        )
        if category:
            query = query.filter(Course.category == category)
        if status is not None:
            query = query.filter(Course.status == status)

        rows = query.order_by(Course.created_at.desc(), Course.id.desc()).all()
        return [
            {
                "id": course.id,
                "title": course.title,
                "description": course.description,
                "category": course.category,
                "avatar": course.avatar,
                "status": course.status.value,
                "created_at": course.created_at,
                "enrolled_students": as_int(enrolled),
                "completed_students": as_int(completed),
                "avg_progress": as_float(avg_progress, 2),
                "new_enrollments_this_week": as_int(new_this_week),
            }
            for course, enrolled, completed, avg_progress, new_this_week in rows
        ]

    # === 仪表盘 ===

    def get_teacher_dashboard(self, db: Session, teacher_id: int) -> Dict[str, Any]:
        return {
            "courses": self._courses_with_stats(db, teacher_id),
            "stats": self._overall_stats(db, teacher_id),
            "recentActivities": self._recent_enrollments(db, teacher_id),
            "taskStats": self._task_stats(db, teacher_id),
        }

    def _overall_stats(self, db: Session, teacher_id: int) -> Dict[str, Any]:
        total_courses = (
            db.query(func.count(Course.id)).filter(Course.teacher_id == teacher_id).scalar()
        )
        enrollment_row = (
            db.query(
                func.count(distinct(CourseEnrollment.user_id)),
                func.count(case((CourseEnrollment.status == EnrollmentStatus.COMPLETED, 1))),
                func.avg(CourseEnrollment.progress),
            )
            .join(Course, Course.id == CourseEnrollment.course_id)
            .filter(Course.teacher_id == teacher_id)
            .one()
        )
        task_row = (
            db.query(
                func.count(Task.id),
                func.count(case((Task.status == TaskStatus.COMPLETED, 1))),
            )
            .join(Course, Course.id == Task.course_id)
            .filter(Course.teacher_id == teacher_id)
            .one()
        )
        return {
            "total_courses": as_int(total_courses),
            "total_students": as_int(enrollment_row[0]),
            "total_completions": as_int(enrollment_row[1]),
            "avg_course_progress": as_float(enrollment_row[2], 2),
            "total_tasks_assigned": as_int(task_row[0]),
            "total_tasks_completed": as_int(task_row[1]),
        }

    def _recent_enrollments(self, db: Session, teacher_id: int) -> List[Dict[str, Any]]:
        rows = (
            db.query(
                CourseEnrollment.enrolled_at,
                CourseEnrollment.progress,
                Course.title,
                User.full_name,
            )
            .join(Course, Course.id == CourseEnrollment.course_id)
            .join(User, User.id == CourseEnrollment.user_id)
            .filter(Course.teacher_id == teacher_id)
            .order_by(CourseEnrollment.enrolled_at.desc())
            .limit(RECENT_ENROLLMENTS)
            .all()
        )
        return [
            {
                "activity_type": "enrollment",
                "timestamp": enrolled_at,
                "course_title": course_title,
                "student_name": student_name,
                "student_progress": as_float(progress),
            }
            for enrolled_at, progress, course_title, student_name in rows
        ]

    def _task_stats(self, db: Session, teacher_id: int) -> Dict[str, Any]:
        row = (
            db.query(
                func.count(Task.id),
                func.count(case((Task.status == TaskStatus.PENDING, 1))),
                func.count(case((Task.status == TaskStatus.IN_PROGRESS, 1))),
                func.count(case((Task.status == TaskStatus.COMPLETED, 1))),
                func.count(
                    case(
                        (and_(Task.due_date < utc_today(), Task.status != TaskStatus.COMPLETED), 1)
                    )
                ),
            )
            .join(Course, Course.id == Task.course_id)
            .filter(Course.teacher_id == teacher_id)
            .one()
        )
        return {
            "total_tasks": as_int(row[0]),
            "pending_tasks": as_int(row[1]),
            "in_progress_tasks": as_int(row[2]),
            "completed_tasks": as_int(row[3]),
            "overdue_tasks": as_int(row[4]),
        }

    # === 课程 ===

    def list_teacher_courses(
        self,
        db: Session,
        teacher_id: int,
        category: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """教师的课程列表，每门课附带任务完成情况。"""

        course_status = _parse_enum(CourseStatus, status, "status")
        courses = self._courses_with_stats(db, teacher_id, category, course_status)
        if not courses:
            return courses

        rows = (
            db.query(
                Task.course_id,
                func.count(Task.id),
                func.count(case((Task.status == TaskStatus.COMPLETED, 1))),
                func.count(distinct(Task.assigned_to)),
            )
            .filter(Task.course_id.in_([course["id"] for course in courses]))
            .group_by(Task.course_id)
            .all()
        )
        by_course = {row[0]: row for row in rows}
        for course in courses:
            row = by_course.get(course["id"])
            total = as_int(row[1]) if row else 0
            completed = as_int(row[2]) if row else 0
            course["analytics"] = {
                "total_tasks": total,
                "completed_tasks": completed,
                "avg_completion_rate": round(completed * 100 / total, 2) if total else 0.0,
                "unique_students_assigned": as_int(row[3]) if row else 0,
            }
        return courses

    def create_course(
        self,
        db: Session,
        teacher_id: int,
        title: Optional[str],
        category: Optional[str],
        description: Optional[str] = None,
    ) -> Course:
        if not title or not category:
            raise ValidationError("Title and category are required")

        course = Course(
            title=title, description=description, category=category, teacher_id=teacher_id
        )
        db.add(course)
        db.commit()
        db.refresh(course)
        logger.info("Teacher %s created course %s", teacher_id, course.id)
        return course

    def update_course(
        self,
        db: Session,
        teacher_id: int,
        course_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Course:
        """只更新传入的字段；非本人课程一律拒绝。"""

        course = self._owned_course(db, teacher_id, course_id)
        course_status = _parse_enum(CourseStatus, status, "status")

        if title is not None:
            if not title.strip():
                raise ValidationError("Title cannot be empty", field="title")
            course.title = title
        if description is not None:
            course.description = description
        if category is not None:
            course.category = category
        if course_status is not None:
            course.status = course_status

        db.commit()
        db.refresh(course)
        return course

    def get_course_students(
        self, db: Session, teacher_id: int, course_id: int
    ) -> List[Dict[str, Any]]:
        self._owned_course(db, teacher_id, course_id)

        today = utc_today()
        task_counts = (
            select(
                Task.assigned_to.label("user_id"),
                func.count(case((Task.status == TaskStatus.COMPLETED, 1))).label("completed"),
                func.count(
                    case((and_(Task.status == TaskStatus.PENDING, Task.due_date <= today), 1))
                ).label("overdue"),
            )
            .where(Task.course_id == course_id)
            .group_by(Task.assigned_to)
            .subquery()
        )
        rows = (
            db.query(
                User,
                CourseEnrollment.progress,
                CourseEnrollment.enrolled_at,
                CourseEnrollment.status,
                func.coalesce(task_counts.c.completed, 0),
                func.coalesce(task_counts.c.overdue, 0),
            )
            .join(CourseEnrollment, CourseEnrollment.user_id == User.id)
            .outerjoin(task_counts, task_counts.c.user_id == User.id)
            .filter(CourseEnrollment.course_id == course_id)
            .order_by(CourseEnrollment.enrolled_at.desc())
            .all()
        )
        return [
            {
                "id": user.id,
                "full_name": user.full_name,
                "email": user.email,
                "phone": user.phone,
                "avatar": user.avatar,
                "progress": as_float(progress),
                "enrolled_at": enrolled_at,
                "enrollment_status": status.value,
                "completed_tasks": as_int(completed),
                "overdue_tasks": as_int(overdue),
            }
            for user, progress, enrolled_at, status, completed, overdue in rows
        ]

    def upload_materials(self, db: Session, teacher_id: int, course_id: int) -> Dict[str, Any]:
        # 课程资料还没有存储表，只做归属校验
        self._owned_course(db, teacher_id, course_id)
        return {
            "message": "Material upload is not available yet",
            "courseId": course_id,
        }

    def library(self, teacher_id: int) -> Dict[str, Any]:
        return {
            "message": "Library is not available yet",
            "teacherId": teacher_id,
            "materials": [],
            "categories": list(LIBRARY_CATEGORIES),
        }

    # === 任务 ===

    def create_task(
        self,
        db: Session,
        teacher_id: int,
        course_id: Optional[int],
        title: Optional[str],
        description: Optional[str] = None,
        priority: Optional[str] = None,
        due_date: Optional[date] = None,
        assigned_to: Optional[int] = None,
    ) -> Task:
        self._owned_course(db, teacher_id, course_id)

        if not title or not title.strip():
            raise ValidationError("Task title is required", field="title")
        task_priority = _parse_enum(TaskPriority, priority, "priority") or TaskPriority.MEDIUM

        if assigned_to is not None and db.get(User, assigned_to) is None:
            raise NotFoundError("Assigned user not found", {"assigned_to": assigned_to})

        task = Task(
            title=title.strip(),
            description=description,
            course_id=course_id,
            priority=task_priority,
            due_date=due_date,
            assigned_to=assigned_to,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        logger.info("Teacher %s created task %s in course %s", teacher_id, task.id, course_id)
        return task

    def list_teacher_tasks(
        self,
        db: Session,
        teacher_id: int,
        status: Optional[str] = None,
        course_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        task_status = _parse_enum(TaskStatus, status, "status")

        query = (
            db.query(Task, Course.title, User.full_name, User.email)
            .join(Course, Course.id == Task.course_id)
            .outerjoin(User, User.id == Task.assigned_to)
            .filter(Course.teacher_id == teacher_id)
        )
        if task_status is not None:
            query = query.filter(Task.status == task_status)
        if course_id is not None:
            query = query.filter(Task.course_id == course_id)

        rows = query.order_by(Task.due_date.asc(), Task.id.asc()).all()
        return [
            {
                "id": task.id,
                "title": task.title,
                "description": task.description,
                "course_id": task.course_id,
                "assigned_to": task.assigned_to,
                "priority": task.priority.value,
                "status": task.status.value,
                "due_date": task.due_date,
                "created_at": task.created_at,
                "course_title": course_title,
                "assigned_student_name": student_name,
                "assigned_student_email": student_email,
            }
            for task, course_title, student_name, student_email in rows
        ]

    def grade_task(
        self,
        db: Session,
        teacher_id: int,
        task_id: int,
        grade: Optional[Any] = None,
        feedback: Optional[str] = None,
    ) -> Dict[str, Any]:
        """校验任务归属后原样返回评分；提交记录表尚未建立，不落库。"""

        owned = (
            db.query(Task.id)
            .join(Course, Course.id == Task.course_id)
            .filter(Task.id == task_id, Course.teacher_id == teacher_id)
            .first()
        )
        if not owned:
            raise AccessDeniedError("Access denied", {"task_id": task_id})

        return {
            "message": "Grade received; submissions are not stored yet",
            "taskId": task_id,
            "grade": grade,
            "feedback": feedback,
        }

    # === 分析 ===

    def get_analytics(
        self,
        db: Session,
        teacher_id: int,
        course_id: Optional[int] = None,
        period: int = 30,
        viewer_id: Optional[int] = None,
        viewer_is_admin: bool = False,
    ) -> Dict[str, Any]:
        """选课趋势、完成趋势与课程表现。

        ``viewer_id`` 是调用者，缺省时视为 ``teacher_id`` 本人。指定 ``course_id``
        时三部分都只统计该课程，且课程必须属于调用者（管理员可查看路径中教师的课程）。
        非管理员只能查看自己的分析数据。
        """

        viewer = teacher_id if viewer_id is None else viewer_id
        if course_id is not None:
            course = db.get(Course, course_id)
            owners = {viewer, teacher_id} if viewer_is_admin else {viewer}
            if not course or course.teacher_id not in owners:
                raise NotFoundError("Course not found", {"course_id": course_id})
        if viewer != teacher_id and not viewer_is_admin:
            raise AccessDeniedError("Access denied", {"teacher_id": teacher_id})

        window_start = days_ago(period)
        scope = [Course.teacher_id == teacher_id]
        if course_id is not None:
            scope.append(Course.id == course_id)

        enrolled_day = func.date(CourseEnrollment.enrolled_at)
        enrollment_trends = (
            db.query(enrolled_day, func.count(CourseEnrollment.id))
            .join(Course, Course.id == CourseEnrollment.course_id)
            .filter(*scope, CourseEnrollment.enrolled_at >= window_start)
            .group_by(enrolled_day)
            .order_by(enrolled_day.asc())
            .all()
        )

        completed_day = func.date(CourseEnrollment.updated_at)
        completion_trends = (
            db.query(completed_day, func.count(CourseEnrollment.id))
            .join(Course, Course.id == CourseEnrollment.course_id)
            .filter(
                *scope,
                CourseEnrollment.status == EnrollmentStatus.COMPLETED,
                CourseEnrollment.updated_at >= window_start,
            )
            .group_by(completed_day)
            .order_by(completed_day.asc())
            .all()
        )

        avg_progress = func.avg(CourseEnrollment.progress)
        performance = (
            db.query(
                Course.id,
                Course.title,
                Course.category,
                func.count(CourseEnrollment.id),
                func.count(case((CourseEnrollment.status == EnrollmentStatus.COMPLETED, 1))),
                avg_progress,
                func.count(
                    case(
                        (
                            and_(
                                CourseEnrollment.status == EnrollmentStatus.COMPLETED,
                                CourseEnrollment.updated_at >= days_ago(30),
                            ),
                            1,
                        )
                    )
                ),
            )
            .outerjoin(CourseEnrollment, CourseEnrollment.course_id == Course.id)
            .filter(*scope)
            .group_by(Course.id, Course.title, Course.category)
            .order_by(func.coalesce(avg_progress, 0).desc(), Course.id.asc())
            .all()
        )

        return {
            "enrollmentTrends": [
                {"date": date_key(day), "enrollments": as_int(count)}
                for day, count in enrollment_trends
            ],
            "completionTrends": [
                {"date": date_key(day), "completions": as_int(count)}
                for day, count in completion_trends
            ],
            "coursePerformance": [
                {
                    "id": row[0],
                    "title": row[1],
                    "category": row[2],
                    "total_students": as_int(row[3]),
                    "completed_students": as_int(row[4]),
                    "avg_progress": as_float(row[5], 2),
                    "recent_completions": as_int(row[6]),
                }
                for row in performance
            ],
        }
