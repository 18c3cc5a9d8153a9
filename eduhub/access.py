"""访问控制：Bearer Token 校验与基于角色的接口守卫。

角色通过 ``ROLE_CAPABILITIES`` 能力表映射为能力集合，守卫只检查能力，
不在各个接口里散落字符串比较。
"""

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from fastapi import Depends, Header, Request

from eduhub.config import Settings
from eduhub.errors import AccessDeniedError, AuthError
from eduhub.models import UserRole
from eduhub.security import TokenClaims, decode_token


class Capability(str, enum.Enum):
    STUDENT_AREA = "student_area"
    TEACHER_AREA = "teacher_area"
    ADMIN_AREA = "admin_area"


@dataclass(frozen=True)
class RoleProfile:
    capabilities: FrozenSet[Capability]
    dashboard: str


# 管理员使用教师仪表盘，但不能进入学生专区
ROLE_CAPABILITIES: Dict[UserRole, RoleProfile] = {
    UserRole.STUDENT: RoleProfile(
        capabilities=frozenset({Capability.STUDENT_AREA}),
        dashboard="student",
    ),
    UserRole.TEACHER: RoleProfile(
        capabilities=frozenset({Capability.TEACHER_AREA}),
        dashboard="teacher",
    ),
    UserRole.ADMIN: RoleProfile(
        capabilities=frozenset({Capability.TEACHER_AREA, Capability.ADMIN_AREA}),
        dashboard="teacher",
    ),
}


def has_capability(role: UserRole, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[role].capabilities


def dashboard_for(role: UserRole) -> str:
    return ROLE_CAPABILITIES[role].dashboard


def get_app_settings(request: Request) -> Settings:
    """FastAPI 依赖：当前应用实例的配置。"""

    return request.app.state.settings


def _extract_bearer(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Access token required")
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("Access token required")
    return token


def get_current_claims(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> TokenClaims:
    """任意已登录用户：解析并校验 Token。"""

    return decode_token(_extract_bearer(authorization), settings)


def _ensure_capability(claims: TokenClaims, capability: Capability, message: str) -> TokenClaims:
    if not has_capability(claims.role, capability):
        raise AccessDeniedError(message, {"role": claims.role.value})
    return claims


def require_student(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    """要求学生权限。"""
    return _ensure_capability(
        claims, Capability.STUDENT_AREA, "This resource requires student role"
    )


def require_teacher(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    """要求教师或管理员权限。"""
    return _ensure_capability(
        claims, Capability.TEACHER_AREA, "This resource requires teacher or admin role"
    )


def require_admin(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
    """要求管理员权限。"""
    return _ensure_capability(
        claims, Capability.ADMIN_AREA, "This resource requires admin role"
    )


def dashboard_guard(
    user_id: int,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> Optional[TokenClaims]:
    """仪表盘统计接口的守卫。

    ``open`` 模式下不做任何检查（与既有前端行为一致）；``owner`` 模式要求
    Token，且只能查看自己的数据，管理员除外。
    """

    if settings.dashboard_access == "open":
        return None

    claims = decode_token(_extract_bearer(authorization), settings)
    if claims.userId != user_id and not has_capability(claims.role, Capability.ADMIN_AREA):
        raise AccessDeniedError("Access denied", {"user_id": user_id})
    return claims
