"""Pydantic request/response schemas."""

from app.schemas.account import AccountPage, AccountRead, Paginator
from app.schemas.auth import CurrentUser, ResetOutcome
from app.schemas.common import ApiResponse, ResponseStatus
from app.schemas.health import HealthResponse

__all__ = [
    "AccountPage",
    "AccountRead",
    "ApiResponse",
    "CurrentUser",
    "HealthResponse",
    "Paginator",
    "ResetOutcome",
    "ResponseStatus",
]
