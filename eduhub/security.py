"""密码哈希与 JWT 签发/校验。

密码哈希使用 passlib 的 bcrypt 方案，Token 使用 python-jose 的 HS256 签名，
载荷固定包含 ``userId``、``email``、``role``。
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from eduhub.config import Settings, get_settings
from eduhub.errors import MalformedOrExpiredError
from eduhub.models import UserRole


class TokenClaims(BaseModel):
    """Token 中携带的身份信息。"""

    userId: int
    email: str
    role: UserRole


@lru_cache(maxsize=None)
def _password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return _password_context(settings.bcrypt_rounds).hash(password)


def verify_password(
    plain_password: str, hashed_password: str, settings: Optional[Settings] = None
) -> bool:
    settings = settings or get_settings()
    try:
        return _password_context(settings.bcrypt_rounds).verify(plain_password, hashed_password)
    except ValueError:
        # 库里存的不是合法的 bcrypt 哈希
        return False


def create_token(
    user_id: int,
    email: str,
    role: UserRole,
    settings: Optional[Settings] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """签发访问 Token，默认有效期取自配置（24 小时）。"""

    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.token_expire_hours))
    payload = {
        "sub": str(user_id),
        "userId": user_id,
        "email": email,
        "role": role.value,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Optional[Settings] = None) -> TokenClaims:
    """校验签名与有效期，返回载荷；任何失败都抛出 MalformedOrExpiredError。"""

    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError as exc:
        raise MalformedOrExpiredError("Token has expired") from exc
    except JWTError as exc:
        raise MalformedOrExpiredError("Invalid token") from exc

    try:
        return TokenClaims.model_validate(payload)
    except PydanticValidationError as exc:
        raise MalformedOrExpiredError("Invalid token") from exc
