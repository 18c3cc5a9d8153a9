"""核心 SQLAlchemy 模型定义。"""

from eduhub.models.achievement import (
    CERTIFIED_ACHIEVEMENT_ID,
    CODE_MASTER_ACHIEVEMENT_ID,
    PRESET_ACHIEVEMENTS,
    Achievement,
    UserAchievement,
)
from eduhub.models.course import Course, CourseEnrollment
from eduhub.models.enums import (
    AchievementType,
    CourseStatus,
    EnrollmentStatus,
    GroupMemberRole,
    GroupStatus,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from eduhub.models.group import Group, GroupMember, Project
from eduhub.models.task import Task
from eduhub.models.user import User

__all__ = [
    "Achievement",
    "AchievementType",
    "CERTIFIED_ACHIEVEMENT_ID",
    "CODE_MASTER_ACHIEVEMENT_ID",
    "Course",
    "CourseEnrollment",
    "CourseStatus",
    "EnrollmentStatus",
    "Group",
    "GroupMember",
    "GroupMemberRole",
    "GroupStatus",
    "PRESET_ACHIEVEMENTS",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "User",
    "UserAchievement",
    "UserRole",
]
