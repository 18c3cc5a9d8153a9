"""课程与选课模型定义。"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduhub.db import Base
from eduhub.models.enums import CourseStatus, EnrollmentStatus


class Course(Base):
    """课程 - 每门课程只属于一位教师。"""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    teacher_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    avatar: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[CourseStatus] = mapped_column(
        Enum(CourseStatus), default=CourseStatus.ACTIVE, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    teacher = relationship("User", foreign_keys=[teacher_id])
    enrollments = relationship("CourseEnrollment", back_populates="course")

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, title={self.title}, teacher_id={self.teacher_id})>"


class CourseEnrollment(Base):
    """学生与课程之间的选课及进度记录。

    同一学生对同一课程最多一条记录（唯一约束）。
    """

    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("course_id", "user_id", name="uq_course_enrollments_course_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    # 进度 0-100，两位小数
    progress: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), default=0.0, nullable=False
    )
    status: Mapped[EnrollmentStatus] = mapped_column(
        Enum(EnrollmentStatus), default=EnrollmentStatus.ACTIVE, nullable=False
    )

    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    # 教师分析里的完成趋势按这一列分桶
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    course = relationship("Course", back_populates="enrollments")
    user = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<CourseEnrollment(course_id={self.course_id}, user_id={self.user_id}, "
            f"progress={self.progress})>"
        )
