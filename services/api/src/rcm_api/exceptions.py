"""应用异常处理注册。"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from rcm_api.core.config import get_settings
from rcm_api.errors import ConfigError
from rcm_api.models.enums import ErrorKind
from rcm_api.utils.response import DEFAULT_ERROR_MESSAGE, error_payload

logger = logging.getLogger("rcm_api.exceptions")

# 领域错误类别 → (HTTP 状态码, 错误码, 处理建议)。
# 约束冲突按校验类错误返回 400，驱动消息原样透传。
_KIND_RESPONSES: dict[ErrorKind, tuple[int, str, str]] = {
    ErrorKind.VALIDATION: (
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_FAILED",
        "请根据错误信息修正请求参数后重试。",
    ),
    ErrorKind.CONFLICT: (
        status.HTTP_400_BAD_REQUEST,
        "CONFLICT",
        "请检查 code 等唯一字段是否与已有数据重复。",
    ),
    ErrorKind.NOT_FOUND: (
        status.HTTP_404_NOT_FOUND,
        "NOT_FOUND",
        "请确认资源 ID 是否正确，或资源是否已被删除。",
    ),
    ErrorKind.TRANSIENT: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "STORE_UNAVAILABLE",
        "请稍后重试，若持续失败请检查数据库文件是否可用。",
    ),
}


def _default_http_error_code(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "BAD_REQUEST"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "NOT_FOUND"
    if status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return "METHOD_NOT_ALLOWED"
    if status_code == status.HTTP_413_CONTENT_TOO_LARGE:
        return "PAYLOAD_TOO_LARGE"
    if status_code == status.HTTP_422_UNPROCESSABLE_CONTENT:
        return "VALIDATION_ERROR"
    return "HTTP_ERROR"


def _default_http_message(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "请求参数不合法。"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "请求资源不存在。"
    if status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return "请求方法不被允许。"
    if status_code == status.HTTP_422_UNPROCESSABLE_CONTENT:
        return "请求参数校验失败。"
    return "请求处理失败。"


def _default_http_suggestion(status_code: int) -> str:
    if status_code == status.HTTP_404_NOT_FOUND:
        return "请确认请求路径与资源 ID 是否正确。"
    if status_code == status.HTTP_422_UNPROCESSABLE_CONTENT:
        return "请根据错误字段提示修正请求参数后重试。"
    return "请稍后重试，若持续失败请联系管理员。"


def _parse_http_detail(detail: object, status_code: int) -> tuple[str, str, dict[str, object]]:
    code = _default_http_error_code(status_code)
    message = _default_http_message(status_code)
    details: dict[str, object] = {
        "status_code": status_code,
        "reason": code.lower(),
        "suggestion": _default_http_suggestion(status_code),
    }

    if isinstance(detail, dict):
        code = str(detail.get("code") or code)
        message = str(detail.get("message") or detail.get("detail") or message)
        raw_details = detail.get("details")
        if isinstance(raw_details, dict):
            details.update(raw_details)
        elif raw_details is not None:
            details["details"] = raw_details
        return code, message, details

    if isinstance(detail, str) and detail.strip():
        return code, detail, details

    if detail is not None:
        details["detail"] = detail
    return code, message, details


async def http_exception_handler(request: Request, exc: HTTPException):
    """将协议异常统一包装为标准错误结构。"""
    code, message, details = _parse_http_detail(exc.detail, exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(request, code=code, message=message, details=details),
        headers=getattr(exc, "headers", None),
    )


async def config_error_handler(request: Request, exc: ConfigError):
    """按错误类别映射领域错误。"""
    status_code, code, suggestion = _KIND_RESPONSES[exc.kind]
    details: dict[str, object] = {
        "status_code": status_code,
        "kind": exc.kind.value,
        "reason": exc.kind.value,
        "suggestion": suggestion,
    }
    details.update(exc.details)
    # 数据库原始语句只在非生产环境返回。
    if get_settings().is_production:
        details.pop("statement", None)
    return JSONResponse(
        status_code=status_code,
        content=error_payload(request, code=code, message=exc.message, details=details),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """统一处理请求参数校验错误。"""
    normalized_errors = [
        {
            "field": ".".join(str(item) for item in err.get("loc", []) if item != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_payload(
            request,
            code="VALIDATION_ERROR",
            message="请求参数校验失败。",
            details={
                "status_code": status.HTTP_422_UNPROCESSABLE_CONTENT,
                "kind": ErrorKind.VALIDATION.value,
                "reason": "validation_error",
                "suggestion": _default_http_suggestion(status.HTTP_422_UNPROCESSABLE_CONTENT),
                "errors": normalized_errors,
            },
        ),
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    """处理未捕获异常，避免内部细节泄露。"""
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    details: dict[str, object] = {
        "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "reason": "unexpected_exception",
        "suggestion": "请稍后重试，若持续失败请联系管理员并提供 request_id。",
    }
    if not get_settings().is_production:
        details["exception"] = type(exc).__name__
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(request, code="INTERNAL_ERROR", message=DEFAULT_ERROR_MESSAGE, details=details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """集中注册异常处理器。"""
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(ConfigError)(config_error_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(unexpected_exception_handler)
