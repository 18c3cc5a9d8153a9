"""领域异常体系及其到 HTTP 响应的映射。

服务层只抛出这里定义的异常；``register_exception_handlers`` 把它们统一转换为
``{"error": message}`` 的 JSON 响应，未预期的异常记录日志后返回 500。
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EduHubError(Exception):
    """所有领域异常的基类。"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(EduHubError):
    """入参缺失、格式错误或超出范围。"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class ConflictError(EduHubError):
    """重复的邮箱、选课或小组成员关系。"""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(EduHubError):
    """缺少凭据或凭据错误。"""

    status_code = status.HTTP_401_UNAUTHORIZED


class MalformedOrExpiredError(AuthError):
    """Token 签名无效、格式错误或已过期。"""


class AccessDeniedError(EduHubError):
    """已认证但角色不符或不是资源所有者。"""

    status_code = status.HTTP_403_FORBIDDEN


class RoleMismatchError(AccessDeniedError):
    """登录时指定的角色与账号角色不一致。"""


class NotFoundError(EduHubError):
    """引用的实体不存在或已停用。"""

    status_code = status.HTTP_404_NOT_FOUND


class InternalError(EduHubError):
    """未预期的持久化失败。"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


GENERIC_ERROR_MESSAGE = "Internal server error"


def _error_response(
    status_code: int, message: str, headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": message}, headers=headers
    )


async def handle_domain_error(request: Request, exc: EduHubError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(exc.status_code, GENERIC_ERROR_MESSAGE)

    logger.warning(
        "%s %s rejected (%s): %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return _error_response(exc.status_code, exc.message, headers)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体/参数校验失败按 ValidationError 处理（400）。"""

    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    logger.warning("%s %s invalid request: %s", request.method, request.url.path, message)
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EduHubError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected_error)
