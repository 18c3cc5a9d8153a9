"""成就目录与用户成就模型定义。"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduhub.db import Base
from eduhub.models.enums import AchievementType


class Achievement(Base):
    """成就徽章 - 固定目录，不由用户创建。"""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    icon: Mapped[Optional[str]] = mapped_column(String(100))
    type: Mapped[AchievementType] = mapped_column(
        Enum(AchievementType), default=AchievementType.PERSONAL, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Achievement(id={self.id}, title={self.title})>"


class UserAchievement(Base):
    """用户获得的成就，(user_id, achievement_id) 唯一，保证重复发放是幂等的。"""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    achievement_id: Mapped[int] = mapped_column(ForeignKey("achievements.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    achievement = relationship("Achievement")


# 成就阈值对应的固定 id
CODE_MASTER_ACHIEVEMENT_ID = 2
CERTIFIED_ACHIEVEMENT_ID = 4

# 预置成就目录（用于初始化，id 固定）
PRESET_ACHIEVEMENTS = [
    {
        "id": 1,
        "title": "First Steps",
        "description": "Enrolled in your first course",
        "icon": "fa-shoe-prints",
        "type": AchievementType.PERSONAL,
    },
    {
        "id": CODE_MASTER_ACHIEVEMENT_ID,
        "title": "Code Master",
        "description": "Completed 100 tasks",
        "icon": "fa-code",
        "type": AchievementType.PERSONAL,
    },
    {
        "id": 3,
        "title": "Team Player",
        "description": "Joined a study group",
        "icon": "fa-users",
        "type": AchievementType.TEAM,
    },
    {
        "id": CERTIFIED_ACHIEVEMENT_ID,
        "title": "Certified",
        "description": "Completed 10 courses",
        "icon": "fa-certificate",
        "type": AchievementType.COURSE,
    },
    {
        "id": 5,
        "title": "Fast Learner",
        "description": "Finished a course within its first week",
        "icon": "fa-bolt",
        "type": AchievementType.COURSE,
    },
]
