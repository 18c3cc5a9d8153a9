"""状态与类型枚举定义 - 角色、课程、选课、小组、任务、成就。"""

import enum


class UserRole(str, enum.Enum):
    """用户角色枚举。"""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class CourseStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class EnrollmentStatus(str, enum.Enum):
    """选课状态。

    进度达到 100 时 active → completed；dropped 目前没有接口会写入。
    """
    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"


class GroupStatus(str, enum.Enum):
    ACTIVE = "active"
    IN_DEVELOPMENT = "in_development"
    ON_HOLD = "on_hold"


class GroupMemberRole(str, enum.Enum):
    MEMBER = "member"
    LEADER = "leader"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"


class AchievementType(str, enum.Enum):
    """成就类型：课程类、团队类、个人类。"""
    COURSE = "course"
    TEAM = "team"
    PERSONAL = "personal"
