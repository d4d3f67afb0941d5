"""Request/response schemas for account endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Scalar values accepted in equality filters (query / where / filter).
FilterValue = str | int | bool | None


def _clean_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("email must be a valid email address")
    return v


def _reject_null(v, field: str):
    # Omitted fields are skipped; an explicit null would violate NOT NULL.
    if v is None:
        raise ValueError(f"{field} may not be null")
    return v


class AccountRead(BaseModel):
    """Account as returned by the API; never includes password or reset fields."""

    id: int
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    mobile_no: str | None = None
    role: str
    is_active: bool
    is_deleted: bool
    added_by: int | None = None
    updated_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class AccountCreate(BaseModel):
    """Admin-side account creation."""

    username: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    mobile_no: str | None = Field(default=None, max_length=32)
    role: Literal["user", "admin"] = "user"
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _clean_email(v)


class AccountUpdate(BaseModel):
    """Full update: every editable field is required."""

    username: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    first_name: str | None = Field(..., max_length=255)
    last_name: str | None = Field(..., max_length=255)
    mobile_no: str | None = Field(..., max_length=32)
    role: Literal["user", "admin"]
    is_active: bool

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _clean_email(v)


class AccountPartialUpdate(BaseModel):
    """Partial update: only fields present in the request are written."""

    username: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=3, max_length=255)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    mobile_no: str | None = Field(default=None, max_length=32)
    role: Literal["user", "admin"] | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str:
        return _clean_email(_reject_null(v, "email"))

    @field_validator("username", "role", "is_active")
    @classmethod
    def validate_not_null(cls, v, info: ValidationInfo):
        return _reject_null(v, info.field_name)


class AccountProfileUpdate(BaseModel):
    """Self-service profile edit; role, status and password are not editable here."""

    username: str | None = Field(default=None, min_length=1, max_length=255)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    mobile_no: str | None = Field(default=None, max_length=32)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str:
        return _reject_null(v, "username")


class BulkCreateRequest(BaseModel):
    data: list[AccountCreate] = Field(..., min_length=1, max_length=100)


class PageOptions(BaseModel):
    """Pagination options. sort: column name, '-' prefix for descending."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort: str = Field(default="id", min_length=1, max_length=64)


class FindAllRequest(BaseModel):
    query: dict[str, FilterValue] = Field(default_factory=dict)
    options: PageOptions = Field(default_factory=PageOptions)
    is_count_only: bool = False


class CountRequest(BaseModel):
    where: dict[str, FilterValue] = Field(default_factory=dict)


class BulkUpdateRequest(BaseModel):
    filter: dict[str, FilterValue] = Field(default_factory=dict)
    data: AccountPartialUpdate


class IdsRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)
    is_warning: bool = False


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(..., alias="oldPassword", min_length=1, max_length=128)
    new_password: str = Field(..., alias="newPassword", min_length=8, max_length=128)


class Paginator(BaseModel):
    item_count: int
    per_page: int
    page_count: int
    current_page: int
    has_prev_page: bool
    has_next_page: bool
    prev: int | None = None
    next: int | None = None


class AccountPage(BaseModel):
    data: list[AccountRead]
    paginator: Paginator
