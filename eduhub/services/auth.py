"""账号注册、登录、资料与密码相关的业务逻辑。"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eduhub.config import Settings
from eduhub.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    RoleMismatchError,
    ValidationError,
)
from eduhub.models import User, UserRole
from eduhub.security import create_token, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
INVALID_CREDENTIALS = "Invalid email or password"


def _parse_role(value: Optional[str]) -> Optional[UserRole]:
    if value is None:
        return None
    try:
        return UserRole(value)
    except ValueError:
        return None


class AuthService:
    """封装凭据存储与 Token 签发。"""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _check_password_strength(self, password: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="password",
            )

    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    def register(
        self,
        db: Session,
        full_name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        phone: Optional[str] = None,
        role: Optional[str] = None,
    ) -> User:
        if not full_name or not email or not password:
            raise ValidationError("Name, email, and password are required")

        user_role = UserRole.STUDENT if role is None else _parse_role(role)
        if user_role is None:
            raise ValidationError("Invalid role specified", field="role")

        self._check_password_strength(password)

        if self.get_user_by_email(db, email):
            raise ConflictError("User with this email already exists")

        user = User(
            full_name=full_name,
            email=email,
            phone=phone,
            password_hash=hash_password(password, self.settings),
            role=user_role,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            # 并发注册同一邮箱时由唯一约束兜底
            db.rollback()
            raise ConflictError("User with this email already exists") from exc
        db.refresh(user)
        logger.info("Registered user %s as %s", user.id, user.role.value)
        return user

    def login(
        self,
        db: Session,
        email: Optional[str],
        password: Optional[str],
        role: Optional[str] = None,
    ) -> tuple[str, User]:
        """校验凭据并签发 Token。

        邮箱不存在与密码错误返回同一条错误信息；只有密码正确之后才会检查角色。
        """

        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self.get_user_by_email(db, email)
        if not user or not verify_password(password, user.password_hash, self.settings):
            raise AuthError(INVALID_CREDENTIALS)

        if role and _parse_role(role) != user.role:
            raise RoleMismatchError("Role mismatch", {"requested_role": role})

        token = create_token(user.id, user.email, user.role, self.settings)
        logger.info("User %s logged in", user.id)
        return token, user

    def get_profile(self, db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(
        self,
        db: Session,
        user_id: int,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        """只更新传入的字段；邮箱被其他账号占用时拒绝。"""

        user = self.get_profile(db, user_id)

        if email and email != user.email:
            taken = (
                db.query(User.id)
                .filter(User.email == email, User.id != user_id)
                .first()
            )
            if taken:
                raise ConflictError("Email is already taken")
            user.email = email

        if full_name:
            user.full_name = full_name
        if phone is not None:
            user.phone = phone
        if bio is not None:
            user.bio = bio

        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("Email is already taken") from exc
        db.refresh(user)
        return user

    def change_password(
        self,
        db: Session,
        user_id: int,
        current_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current and new passwords are required")

        user = self.get_profile(db, user_id)
        if not verify_password(current_password, user.password_hash, self.settings):
            raise AuthError("Current password is incorrect")

        self._check_password_strength(new_password)
        user.password_hash = hash_password(new_password, self.settings)
        db.commit()
        logger.info("User %s changed password", user_id)
