"""API errors and the exception handlers that render them as response envelopes."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.schemas.common import DEFAULT_MESSAGES, ApiResponse, ResponseStatus

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base for errors raised by route handlers; carries HTTP status and envelope tag."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    response_status: ResponseStatus = ResponseStatus.SERVER_ERROR

    def __init__(self, message: str | None = None) -> None:
        self.message = message or DEFAULT_MESSAGES[self.response_status]
        super().__init__(self.message)


class BadRequestError(ApiError):
    """Missing or malformed request parameters."""

    status_code = status.HTTP_400_BAD_REQUEST
    response_status = ResponseStatus.BAD_REQUEST


class RecordNotFoundError(ApiError):
    """Target entity does not exist (or is not visible to the caller)."""

    status_code = status.HTTP_404_NOT_FOUND
    response_status = ResponseStatus.RECORD_NOT_FOUND


class ValidationFailedError(ApiError):
    """Well-formed request rejected by a data rule (e.g. duplicate email)."""

    status_code = 422
    response_status = ResponseStatus.VALIDATION_ERROR


def _envelope(
    status_code: int,
    response_status: ResponseStatus,
    message: str | None = None,
    data: object = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ApiResponse(
        status=response_status,
        message=message or DEFAULT_MESSAGES[response_status],
        data=data,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body),
        headers=headers,
    )


def _status_for_http_code(code: int) -> ResponseStatus:
    if code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        return ResponseStatus.UNAUTHORIZED
    if code == status.HTTP_404_NOT_FOUND:
        return ResponseStatus.RECORD_NOT_FOUND
    if code == 422:
        return ResponseStatus.VALIDATION_ERROR
    if code >= 500:
        return ResponseStatus.SERVER_ERROR
    return ResponseStatus.BAD_REQUEST


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return _envelope(exc.status_code, exc.response_status, exc.message)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request bodies that fail their schema are structural errors: 400 BAD_REQUEST."""
    fields = sorted(
        {".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors()}
    )
    message = "Insufficient or invalid request parameters: " + ", ".join(fields)
    return _envelope(status.HTTP_400_BAD_REQUEST, ResponseStatus.BAD_REQUEST, message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else None
    return _envelope(
        exc.status_code,
        _status_for_http_code(exc.status_code),
        message,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the failure, return the generic message only."""
    logger.exception(
        "Unhandled error",
        extra={"path": request.url.path, "method": request.method},
    )
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, ResponseStatus.SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
