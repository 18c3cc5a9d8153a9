"""用户认证API：注册、登录、个人资料与 Token 校验。"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from eduhub.access import dashboard_for, get_app_settings, get_current_claims
from eduhub.config import Settings
from eduhub.db import get_db
from eduhub.models import UserRole
from eduhub.security import TokenClaims
from eduhub.services.auth import AuthService

router = APIRouter()


def get_auth_service(settings: Settings = Depends(get_app_settings)) -> AuthService:
    return AuthService(settings)


# === Schemas ===

class RegisterRequest(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None


class PasswordChangeRequest(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class UserResponse(BaseModel):
    """对外暴露的用户信息，不含密码哈希。"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    avatar: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class LoginResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class ProfileResponse(BaseModel):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class VerifyResponse(BaseModel):
    valid: bool
    user: TokenClaims
    dashboard: str


# === API 端点 ===

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """用户注册，默认角色为学生。"""
    user = service.register(
        db,
        full_name=payload.full_name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        role=payload.role,
    )
    return {"message": "User registered successfully", "user": user}


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    token, user = service.login(db, payload.email, payload.password, payload.role)
    return {"message": "Login successful", "token": token, "user": user}


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    return {"user": service.get_profile(db, claims.userId)}


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """更新个人资料，只修改请求中给出的字段。"""
    user = service.update_profile(
        db,
        claims.userId,
        full_name=payload.full_name,
        email=payload.email,
        phone=payload.phone,
        bio=payload.bio,
    )
    return {"user": user}


@router.put("/password", response_model=MessageResponse)
def change_password(
    payload: PasswordChangeRequest,
    claims: TokenClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    service.change_password(db, claims.userId, payload.current_password, payload.new_password)
    return {"message": "Password changed successfully"}


@router.get("/verify", response_model=VerifyResponse)
def verify(claims: TokenClaims = Depends(get_current_claims)):
    """前端用来校验 Token，并告知应进入哪个仪表盘。"""
    return {"valid": True, "user": claims, "dashboard": dashboard_for(claims.role)}
