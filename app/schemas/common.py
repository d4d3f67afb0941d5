"""Response envelope shared by every endpoint: {status, message, data}."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ResponseStatus(str, Enum):
    """Status tag carried in every response body."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SERVER_ERROR = "SERVER_ERROR"


DEFAULT_MESSAGES: dict[ResponseStatus, str] = {
    ResponseStatus.SUCCESS: "Your request is successfully executed.",
    ResponseStatus.FAILURE: "Some error occurred while performing action.",
    ResponseStatus.BAD_REQUEST: "Request parameters are invalid or missing.",
    ResponseStatus.UNAUTHORIZED: "You are not authorized to access the request.",
    ResponseStatus.RECORD_NOT_FOUND: "Record(s) not found with specified criteria.",
    ResponseStatus.VALIDATION_ERROR: "Invalid data, validation failed.",
    ResponseStatus.SERVER_ERROR: "Internal server error.",
}


class ApiResponse(BaseModel):
    """JSON envelope. `status` distinguishes soft failures (FAILURE, HTTP 200) from errors."""

    status: ResponseStatus = Field(description="Outcome tag")
    message: str = Field(description="Human-readable outcome")
    data: Any = Field(default=None, description="Payload, if any")


def success(data: Any = None, message: str | None = None) -> ApiResponse:
    return ApiResponse(
        status=ResponseStatus.SUCCESS,
        message=message or DEFAULT_MESSAGES[ResponseStatus.SUCCESS],
        data=data,
    )


def failure(message: str | None = None, data: Any = None) -> ApiResponse:
    """Soft failure: expected business rejection, still sent with HTTP 200."""
    return ApiResponse(
        status=ResponseStatus.FAILURE,
        message=message or DEFAULT_MESSAGES[ResponseStatus.FAILURE],
        data=data,
    )
