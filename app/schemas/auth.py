"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clean_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("email must be a valid email address")
    return v


class LoginRequest(BaseModel):
    """Credentials for login. `username` may also be the account email."""

    username: str = Field(..., min_length=1, max_length=255, description="Username or email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class LoginResponse(BaseModel):
    """Account summary plus JWT access token returned after successful login."""

    id: int
    username: str
    email: str
    role: str
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class RegisterRequest(BaseModel):
    """Self-registration; the new account always gets role 'user'."""

    username: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    mobile_no: str | None = Field(default=None, max_length=32)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _clean_email(v)


class ForgotPasswordRequest(BaseModel):
    """Start a password reset for the account with this email."""

    email: str = Field(..., min_length=1, max_length=255)


class ValidateOtpRequest(BaseModel):
    """Check a reset code. `email` optionally scopes the match to one account."""

    otp: str = Field(..., min_length=1)
    email: str | None = Field(default=None, max_length=255)


class ResetPasswordRequest(BaseModel):
    """Consume a reset code and set a new password."""

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., min_length=1)
    new_password: str = Field(..., alias="newPassword", min_length=1, max_length=128)
    email: str | None = Field(default=None, max_length=255)


class ResetOutcome(BaseModel):
    """Result of a reset-flow step. success=False is a soft failure, not an error."""

    success: bool
    reason: str


class CurrentUser(BaseModel):
    """Authenticated account (id, username, email, role) for dependency injection."""

    id: int
    username: str
    email: str
    role: str

    class Config:
        from_attributes = True
