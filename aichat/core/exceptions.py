"""Exception handlers rendering every failure as the error envelope."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aichat.core.errors import AppError, ErrorCode, ErrorResponse
from aichat.core.logging import get_logger, request_id_ctx

logger = get_logger(__name__)

HTTP_STATUS_CODES = {
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    413: ErrorCode.REQUEST_TOO_LARGE,
    429: ErrorCode.RATE_LIMITED,
}


def error_response(
    status_code: int,
    code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the JSON error response for the current request."""
    request_id = request_id_ctx.get()
    body = ErrorResponse(code, message, request_id, details).to_dict()
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(body, status_code=status_code, headers=headers)


async def _on_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        422, ErrorCode.VALIDATION_ERROR, "Validation error", {"errors": exc.errors()}
    )


async def _on_http_exception(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    return error_response(exc.status_code, code, str(exc.detail or "HTTP error"))


async def _on_app_error(_request: Request, exc: AppError) -> JSONResponse:
    logger.warning(
        f"{type(exc).__name__}: {exc.message}",
        data={"code": exc.code.value, "status": exc.status_code, "details": exc.details},
    )
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        data={"method": request.method, "path": request.url.path},
    )
    return error_response(500, ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(StarletteHTTPException, _on_http_exception)
    app.add_exception_handler(AppError, _on_app_error)
    app.add_exception_handler(Exception, _on_unhandled)
