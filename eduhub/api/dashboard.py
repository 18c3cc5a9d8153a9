"""通用仪表盘API：统计、动态、进度与推荐。"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from eduhub.access import dashboard_guard, get_app_settings
from eduhub.config import Settings
from eduhub.db import get_db
from eduhub.security import TokenClaims
from eduhub.services.dashboard import DashboardService

router = APIRouter()


def get_dashboard_service(settings: Settings = Depends(get_app_settings)) -> DashboardService:
    return DashboardService(settings)


# === API 端点 ===

@router.get("/stats/{user_id}")
def get_stats(
    user_id: int,
    _: Optional[TokenClaims] = Depends(dashboard_guard),
    db: Session = Depends(get_db),
    service: DashboardService = Depends(get_dashboard_service),
):
    """课程、任务、小组、学习与成就五组统计。"""
    return service.get_stats(db, user_id)


@router.get("/activity/{user_id}")
def get_activity(
    user_id: int,
    limit: int = Query(10, ge=1, le=100, description="返回的动态条数"),
    _: Optional[TokenClaims] = Depends(dashboard_guard),
    db: Session = Depends(get_db),
    service: DashboardService = Depends(get_dashboard_service),
):
    return service.get_activity(db, user_id, limit)


@router.get("/progress/{user_id}")
def get_progress(
    user_id: int,
    days: int = Query(30, ge=1, le=365, description="统计窗口（天）"),
    _: Optional[TokenClaims] = Depends(dashboard_guard),
    db: Session = Depends(get_db),
    service: DashboardService = Depends(get_dashboard_service),
):
    return service.get_progress(db, user_id, days)


@router.get("/recommendations/{user_id}")
def get_recommendations(
    user_id: int,
    _: Optional[TokenClaims] = Depends(dashboard_guard),
    db: Session = Depends(get_db),
    service: DashboardService = Depends(get_dashboard_service),
):
    return service.get_recommendations(db, user_id)
