"""成就目录与用户成就API。"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from eduhub.access import get_current_claims, require_admin
from eduhub.db import get_db
from eduhub.models import AchievementType
from eduhub.security import TokenClaims
from eduhub.services.achievements import list_catalog, list_user_achievements, seed_achievements

router = APIRouter()


# === Schemas ===

class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    type: AchievementType


class EarnedAchievementResponse(AchievementResponse):
    earned_at: datetime


class InitResponse(BaseModel):
    message: str
    created: int


# === API 端点 ===

@router.get("", response_model=List[AchievementResponse])
def list_achievements(db: Session = Depends(get_db)):
    """成就目录。"""
    return list_catalog(db)


@router.get("/{user_id}", response_model=List[EarnedAchievementResponse])
def get_user_achievements(
    user_id: int,
    _: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return list_user_achievements(db, user_id)


@router.post("/init", response_model=InitResponse)
def init_achievements(
    _: TokenClaims = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """补齐预置成就，可重复调用。"""
    created = seed_achievements(db)
    return {"message": "Achievements initialized", "created": created}
