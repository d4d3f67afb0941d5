"""Auth endpoints (register, login, password reset) and auth dependencies."""

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db
from app.core.errors import BadRequestError, RecordNotFoundError, ValidationFailedError
from app.core.security import create_access_token, decode_access_token
from app.models import Account
from app.schemas.account import AccountRead
from app.schemas.auth import (
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ResetOutcome,
    ResetPasswordRequest,
    ValidateOtpRequest,
)
from app.schemas.common import ApiResponse, failure, success
from app.services.accounts import AccountConflictError, authenticate, create_account
from app.services.password_reset import (
    AccountNotFoundError,
    InvalidInputError,
    issue_reset_code,
    reset_password,
    validate_reset_code,
)

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def _outcome_response(outcome: ResetOutcome) -> ApiResponse:
    if outcome.success:
        return success(message=outcome.reason)
    return failure(message=outcome.reason)


@router.post("/register", response_model=ApiResponse)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Create a new account with role 'user'."""
    try:
        account = create_account(db, body.model_dump())
    except AccountConflictError as e:
        raise ValidationFailedError(e.message) from e
    return success(data=AccountRead.model_validate(account))


@router.post("/login", response_model=ApiResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """
    Authenticate with username (or email) and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    account = authenticate(db, body.username, body.password)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        )
    token = create_access_token(sub=account.id, role=account.role)
    return success(
        data=LoginResponse(
            id=account.id,
            username=account.username,
            email=account.email,
            role=account.role,
            access_token=token,
        )
    )


@router.post("/forgot-password", response_model=ApiResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Issue a reset code and send it to the account email. The code is never returned."""
    try:
        outcome = issue_reset_code(db, body.email, get_settings())
    except InvalidInputError as e:
        raise BadRequestError(e.message) from e
    except AccountNotFoundError as e:
        raise RecordNotFoundError(e.message) from e
    return _outcome_response(outcome)


@router.post("/validate-otp", response_model=ApiResponse)
def validate_otp(
    body: ValidateOtpRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Check a reset code without consuming it. A wrong or expired code returns FAILURE."""
    try:
        outcome = validate_reset_code(db, body.otp, email=body.email)
    except InvalidInputError as e:
        raise BadRequestError(e.message) from e
    return _outcome_response(outcome)


@router.put("/reset-password", response_model=ApiResponse)
def put_reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Consume a reset code and set a new password. A wrong or expired code returns FAILURE."""
    try:
        outcome = reset_password(db, body.code, body.new_password, email=body.email)
    except InvalidInputError as e:
        raise BadRequestError(e.message) from e
    return _outcome_response(outcome)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT for a usable account. Raises 401 if missing or invalid."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )
    account = db.get(Account, account_id)
    if account is None or not account.is_usable:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser.model_validate(account)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated account with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != "admin":
        logger.info("Admin route refused", extra={"account_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
